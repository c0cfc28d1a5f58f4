"""Base exceptions for proxylens."""


class ProxyLensError(Exception):
    """Base exception for all proxylens errors."""

    pass


class RandomSourceError(ProxyLensError):
    """No cryptographically secure random source is available."""

    pass


class EncodingError(ProxyLensError):
    """Payload could not be encoded (bad key lengths, oversized plaintext)."""

    pass


class CryptoError(ProxyLensError):
    """Envelope verification or decryption failed."""

    pass


class ChannelError(ProxyLensError):
    """Rendezvous channel operation failed."""

    def __init__(self, kind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind
