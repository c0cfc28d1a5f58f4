"""Pairing module for proxylens.

Provides the sending side of the pairing exchange:
- Pairing code formatting
- QR code rendering
- Pairing session management
"""

from .code import PairingCode, PairingCodeFormatter
from .qr_renderer import CodeRenderer, QrRenderer
from .session import PairingSession, SessionOutcome, SessionState

__all__ = [
    "CodeRenderer",
    "PairingCode",
    "PairingCodeFormatter",
    "PairingSession",
    "QrRenderer",
    "SessionOutcome",
    "SessionState",
]
