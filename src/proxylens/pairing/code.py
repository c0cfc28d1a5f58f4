"""Pairing code contents.

The pairing code is the out-of-band half of the exchange: it carries the
channel address and the symmetric keys, never the payload. Serialized as
compact JSON:

    {"t": "PA", "ta": <address>,
     "ek": "AES/CBC/PKCS7Padding/<b64 key>", "mk": "HmacSHA256/<b64 key>"}
"""

import base64
import json
from dataclasses import dataclass

from proxylens.crypto import AUTH_KEY_LENGTH, ENCRYPTION_KEY_LENGTH
from proxylens.errors import EncodingError
from proxylens.rendezvous.client import ChannelHandle

PROTOCOL_TAG = "PA"
CIPHER_DESCRIPTOR = "AES/CBC/PKCS7Padding/"
MAC_DESCRIPTOR = "HmacSHA256/"


@dataclass(frozen=True)
class PairingCode:
    """Public parameters shown to the paired device."""

    protocol_tag: str
    channel_address: str
    encryption_key_descriptor: str
    auth_key_descriptor: str

    def __repr__(self) -> str:
        return f"PairingCode(channel_address={self.channel_address!r}, ...)"

    def to_json(self) -> str:
        return json.dumps(
            {
                "t": self.protocol_tag,
                "ta": self.channel_address,
                "ek": self.encryption_key_descriptor,
                "mk": self.auth_key_descriptor,
            },
            separators=(",", ":"),
        )


class PairingCodeFormatter:
    """Builds PairingCode values from a channel and session keys."""

    def format(
        self, handle: ChannelHandle, encryption_key: bytes, auth_key: bytes
    ) -> PairingCode:
        """Format the pairing code.

        Raises:
            EncodingError: If either key has the wrong length.
        """
        if len(encryption_key) != ENCRYPTION_KEY_LENGTH:
            raise EncodingError(f"Encryption key must be {ENCRYPTION_KEY_LENGTH} bytes")
        if len(auth_key) != AUTH_KEY_LENGTH:
            raise EncodingError(f"Auth key must be {AUTH_KEY_LENGTH} bytes")

        return PairingCode(
            protocol_tag=PROTOCOL_TAG,
            channel_address=handle.address,
            encryption_key_descriptor=CIPHER_DESCRIPTOR
            + base64.b64encode(encryption_key).decode("ascii"),
            auth_key_descriptor=MAC_DESCRIPTOR
            + base64.b64encode(auth_key).decode("ascii"),
        )
