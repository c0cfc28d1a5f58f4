"""Secure payload construction.

The captured login page is serialized to compact JSON, encrypted with
AES-CBC and authenticated with HMAC-SHA256 over ``iv || ciphertext``.
The resulting envelope is what gets written to the rendezvous channel:

    {"iv": <base64>, "ciphertext": <base64>, "mac": <base64>}
"""

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass

from proxylens.crypto import (
    KeyMaterial,
    compute_hmac,
    decrypt_cbc,
    encrypt_cbc,
    verify_hmac,
)
from proxylens.errors import CryptoError, EncodingError

logger = logging.getLogger(__name__)

DEFAULT_MAX_PLAINTEXT_BYTES = 1024 * 1024

_NEWLINE_INDENT = re.compile(r"\n\s+")
_WHITESPACE_RUN = re.compile(r"\s+")


def minify_html(html: str) -> str:
    """Return a whitespace-minified version of an HTML string.

    Whitespace following a newline is dropped, then every remaining run of
    whitespace becomes a single space.
    """
    html = _NEWLINE_INDENT.sub("\n", html)
    return _WHITESPACE_RUN.sub(" ", html)


@dataclass(frozen=True)
class SecurePayload:
    """Plaintext fields handed to the paired device.

    Attributes:
        destination_url: Address of the page the form was captured from.
        destination_commitment: Commitment of the form action.
        form_markup: Outer HTML of the login form.
        cookies: Cookie string of the page.
    """

    destination_url: str
    destination_commitment: str
    form_markup: str
    cookies: str

    def __repr__(self) -> str:
        return f"SecurePayload(destination_url={self.destination_url!r}, ...)"

    def to_json(self) -> bytes:
        """Serialize to the plaintext wire format (UTF-8 JSON, stable keys)."""
        document = {
            "sa": self.destination_url,
            "sc": self.destination_commitment,
            "lf": minify_html(self.form_markup),
            "cs": self.cookies,
        }
        text = json.dumps(document, separators=(",", ":"), ensure_ascii=False)
        try:
            return text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise EncodingError(f"Payload is not valid UTF-8 text: {e.reason}") from e


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@dataclass(frozen=True)
class EncryptedEnvelope:
    """Transport envelope written to the rendezvous channel."""

    iv: bytes
    ciphertext: bytes
    mac: bytes

    def to_json(self) -> str:
        """Serialize to the transport message."""
        return json.dumps(
            {
                "iv": _b64(self.iv),
                "ciphertext": _b64(self.ciphertext),
                "mac": _b64(self.mac),
            },
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, data: str | bytes) -> "EncryptedEnvelope":
        """Parse a transport message.

        Raises:
            EncodingError: If the message is not valid JSON, lacks a field,
                or a field is not valid base64.
        """
        try:
            document = json.loads(data)
        except (ValueError, UnicodeDecodeError) as e:
            raise EncodingError(f"Invalid envelope JSON: {e}") from e
        if not isinstance(document, dict):
            raise EncodingError("Envelope must be a JSON object")

        fields = {}
        for name in ("iv", "ciphertext", "mac"):
            value = document.get(name)
            if not isinstance(value, str):
                raise EncodingError(f"Envelope field '{name}' missing or not a string")
            try:
                fields[name] = base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise EncodingError(f"Envelope field '{name}' is not base64") from e
        return cls(**fields)


class SecurePayloadBuilder:
    """Encrypts and authenticates a SecurePayload.

    Usage:
        builder = SecurePayloadBuilder()
        envelope = builder.build(payload, keys)
        body = envelope.to_json()
    """

    def __init__(self, max_plaintext_bytes: int = DEFAULT_MAX_PLAINTEXT_BYTES):
        """Initialize builder.

        Args:
            max_plaintext_bytes: Largest serialized payload accepted.
        """
        self.max_plaintext_bytes = max_plaintext_bytes

    def build(self, fields: SecurePayload, keys: KeyMaterial) -> EncryptedEnvelope:
        """Build the encrypted envelope for a payload.

        Args:
            fields: Plaintext payload.
            keys: Session key material.

        Returns:
            EncryptedEnvelope whose mac covers iv || ciphertext.

        Raises:
            EncodingError: If the plaintext is too large.
        """
        plaintext = fields.to_json()
        if len(plaintext) > self.max_plaintext_bytes:
            raise EncodingError(
                f"Payload is {len(plaintext)} bytes, "
                f"limit is {self.max_plaintext_bytes}"
            )

        ciphertext = encrypt_cbc(keys.encryption_key, keys.iv, plaintext)
        mac = compute_hmac(keys.auth_key, keys.iv + ciphertext)

        logger.debug(
            f"Built envelope: {len(plaintext)} plaintext bytes, "
            f"{len(ciphertext)} ciphertext bytes"
        )
        return EncryptedEnvelope(iv=keys.iv, ciphertext=ciphertext, mac=mac)


def open_envelope(envelope: EncryptedEnvelope, keys: KeyMaterial) -> bytes:
    """Verify and decrypt an envelope.

    The MAC is checked before any decryption is attempted.

    Returns:
        The serialized plaintext exactly as it was passed to encryption.

    Raises:
        CryptoError: If the MAC does not verify or decryption fails.
    """
    if not verify_hmac(keys.auth_key, envelope.iv + envelope.ciphertext, envelope.mac):
        raise CryptoError("Envelope MAC verification failed")
    return decrypt_cbc(keys.encryption_key, envelope.iv, envelope.ciphertext)
