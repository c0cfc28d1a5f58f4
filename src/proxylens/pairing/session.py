"""Pairing session state machine.

A session sends one captured login page to one paired device:

    INITIALIZING -> AWAITING_CHANNEL -> WRITING -> COMPLETED

Any non-terminal state may move to FAILED.

Keys are generated and the envelope is fully built before the first
network request. Sessions are single use; a failed session is never
resumed and a new one gets fresh keys.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Optional

from proxylens.config import Config
from proxylens.crypto import KeyMaterial, generate_key_material, generate_secret_bytes
from proxylens.page import PageSource
from proxylens.pairing.code import PairingCodeFormatter
from proxylens.pairing.qr_renderer import CodeRenderer
from proxylens.payload import EncryptedEnvelope, SecurePayloadBuilder
from proxylens.rendezvous.client import ChannelClient, ChannelHandle
from proxylens.result import Failure, FailureKind

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Pairing session states."""

    INITIALIZING = auto()
    AWAITING_CHANNEL = auto()
    WRITING = auto()
    COMPLETED = auto()
    FAILED = auto()


VALID_TRANSITIONS = {
    SessionState.INITIALIZING: {SessionState.AWAITING_CHANNEL, SessionState.FAILED},
    SessionState.AWAITING_CHANNEL: {SessionState.WRITING, SessionState.FAILED},
    SessionState.WRITING: {SessionState.COMPLETED, SessionState.FAILED},
    SessionState.COMPLETED: set(),
    SessionState.FAILED: set(),
}


@dataclass
class SessionOutcome:
    """How a session ended.

    Attributes:
        state: COMPLETED or FAILED.
        channel: Channel the envelope went to, if one was acquired.
        failure: The network failure, if that is why the session failed.
    """

    state: SessionState
    channel: Optional[ChannelHandle] = None
    failure: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.state == SessionState.COMPLETED


@dataclass
class PairingSession:
    """One pairing attempt.

    Attributes:
        page: Source of the login page to send.
        config: Configuration (domain, payload limit).
        session_id: Short random identifier used in logs.
        created_at: Unix timestamp when session was created.
        state: Current state.
        keys: Session keys; dropped once the session ends.
        envelope: Encrypted payload, built during initialization.
        channel: Channel acquired from the directory.
    """

    page: PageSource
    config: Config = field(default_factory=Config)
    key_factory: Callable[[], KeyMaterial] = generate_key_material
    formatter: PairingCodeFormatter = field(default_factory=PairingCodeFormatter)
    session_id: str = field(default_factory=lambda: generate_secret_bytes(4).hex())
    created_at: float = field(default_factory=time.time)
    state: SessionState = SessionState.INITIALIZING

    keys: Optional[KeyMaterial] = field(default=None, repr=False)
    envelope: Optional[EncryptedEnvelope] = field(default=None, repr=False)
    channel: Optional[ChannelHandle] = None
    failure: Optional[Failure] = None

    def transition_to(self, new_state: SessionState) -> None:
        """Transition to a new state with validation.

        Raises:
            ValueError: If transition is not valid from current state.
        """
        if new_state not in VALID_TRANSITIONS[self.state]:
            raise ValueError(f"Invalid transition: {self.state} -> {new_state}")

        logger.debug(f"Session {self.session_id}: {self.state.name} -> {new_state.name}")
        self.state = new_state
        if new_state in (SessionState.COMPLETED, SessionState.FAILED):
            self.keys = None

    @property
    def is_finished(self) -> bool:
        return self.state in (SessionState.COMPLETED, SessionState.FAILED)

    def prepare(self) -> EncryptedEnvelope:
        """Generate keys and build the envelope.

        Idempotent while INITIALIZING.

        Raises:
            RandomSourceError: If no secure random source is available.
            EncodingError: If the payload cannot be encoded.
        """
        if self.state != SessionState.INITIALIZING:
            raise RuntimeError(f"Cannot prepare session in state {self.state.name}")
        if self.envelope is not None:
            return self.envelope

        try:
            self.keys = self.key_factory()
            payload = self.page.capture().to_payload()
            builder = SecurePayloadBuilder(self.config.max_plaintext_bytes)
            self.envelope = builder.build(payload, self.keys)
        except Exception:
            logger.error(f"Session {self.session_id}: could not build payload")
            self.transition_to(SessionState.FAILED)
            raise

        return self.envelope

    async def run(self, client: ChannelClient, renderer: CodeRenderer) -> SessionOutcome:
        """Run the session to completion.

        Args:
            client: Rendezvous client (already entered).
            renderer: Shows the pairing code, and any failure.

        Returns:
            SessionOutcome with the terminal state.

        Raises:
            RandomSourceError, EncodingError: From initialization; the
                session is FAILED and nothing was sent.
            asyncio.CancelledError: If the task is cancelled; the session
                is FAILED.
            Exception: Anything the renderer raises (e.g. ``OSError`` when
                the output file cannot be written); the session is FAILED.
            RuntimeError: If the session already ran.
        """
        if self.state != SessionState.INITIALIZING:
            raise RuntimeError(f"Session {self.session_id} already ran")

        try:
            envelope = self.prepare()
        except Exception as e:
            renderer.show_error(str(e))
            raise

        try:
            self.transition_to(SessionState.AWAITING_CHANNEL)
            acquired = await client.acquire_channel(self.config.rendezvous.domain)
            if not acquired.ok:
                return self._fail(acquired, renderer)

            self.channel = acquired.value
            code = self.formatter.format(
                self.channel, self.keys.encryption_key, self.keys.auth_key
            )
            renderer.show_code(code)
            self.transition_to(SessionState.WRITING)

            written = await client.write_envelope(self.channel, envelope)
            if not written.ok:
                return self._fail(written, renderer)
        except asyncio.CancelledError:
            self._fail(Failure(FailureKind.CANCELLED, "Session cancelled"), renderer)
            raise
        except Exception as e:
            # Renderer or formatter errors still end the session
            if not self.is_finished:
                logger.error(f"Session {self.session_id} failed in {self.state.name}: {e}")
                self.transition_to(SessionState.FAILED)
                renderer.show_error(str(e))
            raise

        # Reading the peer's reply is not part of this protocol yet
        self.transition_to(SessionState.COMPLETED)
        logger.info(f"Session {self.session_id}: payload written to {self.channel.address}")
        return SessionOutcome(state=self.state, channel=self.channel)

    def _fail(self, failure: Failure, renderer: CodeRenderer) -> SessionOutcome:
        logger.error(
            f"Session {self.session_id} failed in {self.state.name}: "
            f"{failure.kind.value} {failure.message}"
        )
        self.failure = failure
        self.transition_to(SessionState.FAILED)
        renderer.show_error(failure.message or failure.kind.value)
        return SessionOutcome(state=self.state, channel=self.channel, failure=failure)
