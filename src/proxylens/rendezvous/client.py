"""Client for rendezvous channels.

A directory service hands out fresh channels:

    GET  https://{domain}/new      -> 200, body is the channel token
    POST https://{domain}/{token}  -> 200 once the data is stored

Every request is single-shot. Failures come back as ``Failure`` values and
are never retried here.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from proxylens.config import DEFAULT_RENDEZVOUS_DOMAIN
from proxylens.payload import EncryptedEnvelope
from proxylens.result import Failure, FailureKind, Result, Success

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelHandle:
    """A rendezvous channel handed out by the directory.

    Attributes:
        token: Channel identifier returned by the directory.
        address: Fully qualified URL to read from and write to.
    """

    token: str
    address: str


class ChannelClient:
    """Acquires rendezvous channels and exchanges data through them.

    Features:
    - Configurable per-request timeout, reported as FailureKind.TIMEOUT
    - No retries; callers decide what a failure means
    - Context manager for session lifecycle
    """

    REQUEST_TIMEOUT = 10.0  # seconds

    def __init__(
        self,
        domain: str = DEFAULT_RENDEZVOUS_DOMAIN,
        timeout: float = REQUEST_TIMEOUT,
        http_session: Optional[aiohttp.ClientSession] = None,
        scheme: str = "https",
    ):
        """Initialize client.

        Args:
            domain: Directory service domain (host[:port]).
            timeout: Total timeout for each request, in seconds.
            http_session: Optional aiohttp session (for testing).
            scheme: URL scheme; only plain-HTTP test servers change it.
        """
        self._domain = domain.strip("/")
        self._timeout = timeout
        self._scheme = scheme
        self._session = http_session
        self._owns_session = http_session is None

    async def __aenter__(self):
        """Enter async context, creating session if needed."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *args):
        """Exit async context, closing owned session."""
        await self.close()

    @property
    def domain(self) -> str:
        """The default directory domain."""
        return self._domain

    @property
    def timeout(self) -> float:
        """Per-request timeout in seconds."""
        return self._timeout

    def _base_url(self, domain: str) -> str:
        return f"{self._scheme}://{domain.strip('/')}"

    def _client_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self._timeout)

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("Client not initialized - use async context manager")
        return self._session

    async def acquire_channel(self, domain: Optional[str] = None) -> Result[ChannelHandle]:
        """Request a new channel from the directory.

        Args:
            domain: Directory domain; defaults to the client's domain.

        Returns:
            Success(ChannelHandle) or Failure.
        """
        session = self._require_session()
        base = self._base_url(domain or self._domain)
        url = f"{base}/new"

        logger.info(f"Requesting new rendezvous channel from {domain or self._domain}")
        try:
            async with session.get(url, timeout=self._client_timeout()) as resp:
                if resp.status != 200:
                    logger.warning(f"Directory returned {resp.status}")
                    return Failure(
                        FailureKind.BAD_STATUS,
                        f"Directory returned {resp.status}",
                        status=resp.status,
                    )
                token = (await resp.text()).strip()
        except asyncio.TimeoutError:
            logger.warning(f"Channel request timed out after {self._timeout}s")
            return Failure(FailureKind.TIMEOUT, f"Timed out after {self._timeout}s")
        except aiohttp.ClientError as e:
            logger.warning(f"Channel request failed: {e}")
            return Failure(FailureKind.NETWORK_ERROR, str(e))

        if not token:
            logger.warning("Directory returned an empty channel token")
            return Failure(FailureKind.EMPTY_TOKEN, "Empty channel token")

        handle = ChannelHandle(token=token, address=f"{base}/{token}")
        logger.info(f"Acquired rendezvous channel {handle.address}")
        return Success(handle)

    async def write_envelope(
        self, handle: ChannelHandle, envelope: EncryptedEnvelope
    ) -> Result[None]:
        """Write an envelope to a channel.

        The response body is not read.

        Returns:
            Success(None) on HTTP 200, otherwise Failure.
        """
        session = self._require_session()
        body = envelope.to_json().encode("utf-8")

        logger.info(f"Writing data to {handle.address}")
        try:
            async with session.post(
                handle.address,
                data=body,
                headers={"Content-Type": "application/octet-stream"},
                timeout=self._client_timeout(),
            ) as resp:
                if resp.status != 200:
                    logger.warning(f"Channel write returned {resp.status}")
                    return Failure(
                        FailureKind.BAD_STATUS,
                        f"Channel returned {resp.status}",
                        status=resp.status,
                    )
        except asyncio.TimeoutError:
            logger.warning(f"Channel write timed out after {self._timeout}s")
            return Failure(FailureKind.TIMEOUT, f"Timed out after {self._timeout}s")
        except aiohttp.ClientError as e:
            logger.warning(f"Channel write failed: {e}")
            return Failure(FailureKind.NETWORK_ERROR, str(e))

        logger.debug(f"Wrote {len(body)} bytes")
        return Success(None)

    async def read_channel(self, handle: ChannelHandle) -> Result[bytes]:
        """Read whatever the peer left on a channel.

        Returns:
            Success(raw body) on HTTP 200, otherwise Failure.
        """
        session = self._require_session()

        logger.info(f"Reading data from {handle.address}")
        try:
            async with session.get(
                handle.address, timeout=self._client_timeout()
            ) as resp:
                if resp.status != 200:
                    logger.warning(f"Channel read returned {resp.status}")
                    return Failure(
                        FailureKind.BAD_STATUS,
                        f"Channel returned {resp.status}",
                        status=resp.status,
                    )
                return Success(await resp.read())
        except asyncio.TimeoutError:
            logger.warning(f"Channel read timed out after {self._timeout}s")
            return Failure(FailureKind.TIMEOUT, f"Timed out after {self._timeout}s")
        except aiohttp.ClientError as e:
            logger.warning(f"Channel read failed: {e}")
            return Failure(FailureKind.NETWORK_ERROR, str(e))

    async def close(self) -> None:
        """Close the HTTP session if owned."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None
