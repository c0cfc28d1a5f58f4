"""QR code rendering for pairing codes.

Renders the pairing code JSON as a QR code in the terminal, a PNG file, or
an HTML page. A renderer is also told when the session fails after the code
was shown, so a stale code never stays up silently.
"""

import base64
import html
import io
import logging
from pathlib import Path
from typing import Callable, Optional, Protocol

import qrcode
from qrcode.main import QRCode

from proxylens.pairing.code import PairingCode

logger = logging.getLogger(__name__)

ERROR_CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}

DISPLAY_MODES = ("terminal", "png", "html")


class CodeRenderer(Protocol):
    """Protocol for whatever shows the pairing code to the user."""

    def show_code(self, code: PairingCode) -> None:
        """Display a pairing code."""
        ...

    def show_error(self, message: str) -> None:
        """Report that pairing failed; any displayed code is stale."""
        ...


class QrRenderer:
    """Render pairing codes as QR codes.

    Modes:
    - terminal: ASCII art written through ``echo``
    - png: image saved to ``output_path``
    - html: standalone page saved to ``output_path``
    """

    def __init__(
        self,
        display_mode: str = "terminal",
        output_path: Optional[str] = None,
        error_correction: str = "L",
        echo: Callable[[str], None] = print,
    ):
        """Initialize renderer.

        Args:
            display_mode: One of 'terminal', 'png', 'html'.
            output_path: Target file for 'png' and 'html' modes.
            error_correction: QR error correction level (L, M, Q, H).
            echo: Sink for terminal output.

        Raises:
            ValueError: On an unknown mode or level, or a missing output path.
        """
        if display_mode not in DISPLAY_MODES:
            raise ValueError(f"Unknown display mode: {display_mode}")
        if display_mode != "terminal" and not output_path:
            raise ValueError(f"Display mode '{display_mode}' needs an output path")
        level = ERROR_CORRECTION_LEVELS.get(error_correction.upper())
        if level is None:
            raise ValueError(f"Unknown error correction level: {error_correction}")

        self.display_mode = display_mode
        self.output_path = output_path
        self._level = level
        self._echo = echo
        self.shown: Optional[PairingCode] = None

    def _create_qr(self, code: PairingCode) -> QRCode:
        qr = qrcode.QRCode(
            version=None,  # Auto-size
            error_correction=self._level,
            box_size=10,
            border=4,
        )
        qr.add_data(code.to_json())
        qr.make(fit=True)
        return qr

    def to_terminal(self, code: PairingCode) -> str:
        """Generate ASCII art for terminal display."""
        qr = self._create_qr(code)
        output = io.StringIO()
        qr.print_ascii(out=output, invert=True)
        return output.getvalue()

    def to_png(self, code: PairingCode, path: str) -> None:
        """Save QR code as PNG file."""
        qr = self._create_qr(code)
        img = qr.make_image(fill_color="black", back_color="white")
        img.save(path)

    def to_html(self, code: PairingCode) -> str:
        """Generate an HTML page with the embedded QR code."""
        qr = self._create_qr(code)
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        img_b64 = base64.b64encode(buffer.getvalue()).decode("ascii")

        return _page(
            "Scan to Pair",
            f'<img src="data:image/png;base64,{img_b64}" alt="QR Code">',
        )

    def show_code(self, code: PairingCode) -> None:
        """Display the code in the configured mode."""
        if self.display_mode == "terminal":
            self._echo(self.to_terminal(code))
        elif self.display_mode == "png":
            self.to_png(code, self.output_path)
            self._echo(f"QR code saved to {self.output_path}")
        else:
            Path(self.output_path).write_text(self.to_html(code))
            self._echo(f"QR code page saved to {self.output_path}")
        self.shown = code

    def show_error(self, message: str) -> None:
        """Report failure and withdraw any code already shown."""
        if self.shown is not None:
            logger.info("Withdrawing stale pairing code")
            if self.display_mode == "png":
                Path(self.output_path).unlink(missing_ok=True)
            elif self.display_mode == "html":
                Path(self.output_path).write_text(
                    _page("Pairing failed", f"<p>{html.escape(message)}</p>")
                )
            self.shown = None
        self._echo(f"Pairing failed: {message}")


def _page(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <title>{title}</title>
    <style>
        body {{
            display: flex;
            flex-direction: column;
            align-items: center;
            justify-content: center;
            height: 100vh;
            margin: 0;
            background: #1a1a1a;
            color: #fff;
            font-family: system-ui, sans-serif;
        }}
        img {{ border: 10px solid white; border-radius: 10px; }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    {body}
</body>
</html>
"""
