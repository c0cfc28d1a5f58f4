"""Cryptographic operations for proxylens.

This module provides:
- Secure random byte generation (no fallback source)
- Per-session key material
- Destination commitments (SHA-256 of the URL without its query)
- AES-CBC with PKCS#7 padding
- HMAC-SHA256 for envelope integrity

Security notes:
- Uses `cryptography` library for the block cipher
- Encryption key is 16 bytes (AES-128), the peer's JCE policy caps key size
- IV is generated as 32 bytes; only the first block is fed to CBC
- Constant-time comparison for HMAC verification
"""

import base64
import hashlib
import hmac
import secrets
from dataclasses import dataclass

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from proxylens.errors import CryptoError, EncodingError, RandomSourceError

__all__ = [
    "CryptoError",
    "KeyMaterial",
    "generate_secret_bytes",
    "generate_key_material",
    "commit",
    "cbc_iv",
    "encrypt_cbc",
    "decrypt_cbc",
    "compute_hmac",
    "verify_hmac",
]

# Constants
ENCRYPTION_KEY_LENGTH = 16  # 128 bits
IV_LENGTH = 32  # as generated and transmitted
AUTH_KEY_LENGTH = 32  # 256 bits
BLOCK_SIZE = 16  # AES block, bytes
MAC_LENGTH = 32  # HMAC-SHA256 digest


def generate_secret_bytes(length: int) -> bytes:
    """Generate ``length`` cryptographically secure random bytes.

    Uses Python's `secrets` module (the OS CSPRNG). If the platform has no
    secure source the error propagates; there is no weaker fallback.

    Args:
        length: Number of bytes, must be >= 0.

    Returns:
        Exactly ``length`` random bytes.

    Raises:
        ValueError: If length is negative.
        RandomSourceError: If no secure random source is available.
    """
    if length < 0:
        raise ValueError("length must be non-negative")
    try:
        return secrets.token_bytes(length)
    except (NotImplementedError, OSError) as e:
        raise RandomSourceError(f"Secure random source unavailable: {e}") from e


@dataclass(frozen=True)
class KeyMaterial:
    """Symmetric keys for one pairing session.

    Attributes:
        encryption_key: 16-byte AES key.
        iv: 32-byte initialization vector (first 16 bytes drive CBC).
        auth_key: 32-byte HMAC key.
    """

    encryption_key: bytes
    iv: bytes
    auth_key: bytes

    def __post_init__(self) -> None:
        if len(self.encryption_key) != ENCRYPTION_KEY_LENGTH:
            raise EncodingError(
                f"Encryption key must be {ENCRYPTION_KEY_LENGTH} bytes, "
                f"got {len(self.encryption_key)}"
            )
        if len(self.iv) != IV_LENGTH:
            raise EncodingError(f"IV must be {IV_LENGTH} bytes, got {len(self.iv)}")
        if len(self.auth_key) != AUTH_KEY_LENGTH:
            raise EncodingError(
                f"Auth key must be {AUTH_KEY_LENGTH} bytes, got {len(self.auth_key)}"
            )

    def __repr__(self) -> str:
        return "KeyMaterial(<redacted>)"


def generate_key_material() -> KeyMaterial:
    """Generate fresh session keys.

    Raises:
        RandomSourceError: If no secure random source is available.
    """
    return KeyMaterial(
        encryption_key=generate_secret_bytes(ENCRYPTION_KEY_LENGTH),
        iv=generate_secret_bytes(IV_LENGTH),
        auth_key=generate_secret_bytes(AUTH_KEY_LENGTH),
    )


def commit(destination: str) -> str:
    """Compute the commitment of a destination URL.

    The commitment is the base64-encoded SHA-256 hash of the URL with the
    query string (everything from the first ``?``) removed.

    Args:
        destination: Absolute URL, typically a form action.

    Returns:
        Standard base64 string (44 chars).

    Raises:
        EncodingError: If the URL cannot be encoded as UTF-8.
    """
    prefix = destination.split("?", 1)[0]
    try:
        encoded = prefix.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(f"Destination is not valid UTF-8 text: {e.reason}") from e
    digest = hashlib.sha256(encoded).digest()
    return base64.b64encode(digest).decode("ascii")


def cbc_iv(iv: bytes) -> bytes:
    """Return the block-sized IV actually used by CBC.

    Raises:
        EncodingError: If the IV is shorter than one block.
    """
    if len(iv) < BLOCK_SIZE:
        raise EncodingError(f"IV must be at least {BLOCK_SIZE} bytes")
    return iv[:BLOCK_SIZE]


def encrypt_cbc(key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    """Encrypt plaintext using AES-CBC with PKCS#7 padding.

    Args:
        key: 16-byte AES key.
        iv: IV of at least one block; extra bytes are ignored.
        plaintext: Data to encrypt (can be empty).

    Returns:
        Ciphertext, a non-zero multiple of 16 bytes.

    Raises:
        EncodingError: If key or IV has the wrong length.
    """
    if len(key) != ENCRYPTION_KEY_LENGTH:
        raise EncodingError(f"Key must be {ENCRYPTION_KEY_LENGTH} bytes")

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(cbc_iv(iv))).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def decrypt_cbc(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
    """Decrypt AES-CBC ciphertext and strip PKCS#7 padding.

    Raises:
        EncodingError: If key or IV has the wrong length.
        CryptoError: If the ciphertext is malformed or padding is invalid.
    """
    if len(key) != ENCRYPTION_KEY_LENGTH:
        raise EncodingError(f"Key must be {ENCRYPTION_KEY_LENGTH} bytes")
    if not ciphertext or len(ciphertext) % BLOCK_SIZE:
        raise CryptoError("Ciphertext length is not a multiple of the block size")

    decryptor = Cipher(algorithms.AES(key), modes.CBC(cbc_iv(iv))).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    try:
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise CryptoError(f"Decryption failed: {e}") from e


def compute_hmac(key: bytes, data: bytes) -> bytes:
    """Compute HMAC-SHA256.

    Args:
        key: HMAC key (32 bytes for envelopes).
        data: Data to authenticate.

    Returns:
        32-byte HMAC digest.
    """
    return hmac.new(key, data, hashlib.sha256).digest()


def verify_hmac(key: bytes, data: bytes, expected: bytes) -> bool:
    """Verify HMAC-SHA256 in constant time.

    Returns:
        True if HMAC is valid, False otherwise.
    """
    computed = compute_hmac(key, data)
    return hmac.compare_digest(computed, expected)
