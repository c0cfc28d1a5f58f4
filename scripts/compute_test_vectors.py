#!/usr/bin/env python3
"""
Compute envelope, commitment and pairing code test vectors.

Standalone on purpose: it does not import proxylens, so the vectors it
writes check the package against an independent rendition of the wire
format. Output goes to test-vectors/envelope.json.
"""

import base64
import hashlib
import hmac
import json
import re
import sys
from pathlib import Path
from urllib.parse import urljoin

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

ENCRYPTION_KEY = bytes(range(0x00, 0x10))
IV = bytes(range(0x10, 0x30))
AUTH_KEY = bytes(range(0x30, 0x50))


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def commit(destination: str) -> str:
    return b64(hashlib.sha256(destination.split("?", 1)[0].encode("utf-8")).digest())


def minify(html: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"\n\s+", "\n", html))


def plaintext(sa: str, sc: str, lf: str, cs: str) -> bytes:
    doc = {"sa": sa, "sc": sc, "lf": minify(lf), "cs": cs}
    return json.dumps(doc, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def seal(data: bytes) -> dict:
    padder = padding.PKCS7(128).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = Cipher(algorithms.AES(ENCRYPTION_KEY), modes.CBC(IV[:16])).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    mac = hmac.new(AUTH_KEY, IV + ciphertext, hashlib.sha256).digest()
    return {
        "expected_plaintext_b64": b64(data),
        "expected_iv_b64": b64(IV),
        "expected_ciphertext_b64": b64(ciphertext),
        "expected_mac_b64": b64(mac),
    }


def compute_envelope_vectors() -> list:
    vectors = []

    payload = {"sa": "https://a", "sc": "abc", "lf": "<form></form>", "cs": "session=1"}
    vectors.append({"id": "minimal_payload", "payload": payload, **seal(plaintext(**payload))})

    page = {
        "document_url": "https://bank.example/login?next=%2F",
        "form_action": "/login?next=%2F",
        "form_markup": '<form>\n    <input name="u">\n\t<input  name="p">\n</form>',
        "cookies": "name=José",
    }
    action = urljoin(page["document_url"], page["form_action"])
    data = plaintext(page["document_url"], commit(action), page["form_markup"], page["cookies"])
    vectors.append({"id": "minified_form_utf8_cookie", "page": page, **seal(data)})

    return vectors


def compute_commitment_vectors() -> list:
    cases = [
        ("query_stripped_x", "https://bank.example/login?x=1"),
        ("query_stripped_y", "https://bank.example/login?y=2"),
        ("no_query", "https://bank.example/login"),
        ("short", "https://a"),
        ("empty", ""),
        ("only_query", "?a=b"),
        ("trailing_slash", "https://example.com/?q"),
    ]
    return [{"id": i, "destination": d, "expected": commit(d)} for i, d in cases]


def compute_pairing_code_vectors() -> list:
    address = "https://rendezvous.mypico.org/abc123"
    code = {
        "t": "PA",
        "ta": address,
        "ek": "AES/CBC/PKCS7Padding/" + b64(ENCRYPTION_KEY),
        "mk": "HmacSHA256/" + b64(AUTH_KEY),
    }
    return [
        {
            "id": "pairing_code_1",
            "channel_address": address,
            "expected_json": json.dumps(code, separators=(",", ":")),
        }
    ]


def main() -> int:
    out = Path(__file__).parent.parent / "test-vectors" / "envelope.json"
    document = {
        "description": (
            "Envelope and commitment vectors. Keys and IV are hex; outputs are "
            "standard base64. CBC uses the first 16 bytes of the 32-byte IV; the "
            "MAC covers the full IV followed by the ciphertext."
        ),
        "keys": {
            "encryption_key_hex": ENCRYPTION_KEY.hex(),
            "iv_hex": IV.hex(),
            "auth_key_hex": AUTH_KEY.hex(),
        },
        "envelope_vectors": compute_envelope_vectors(),
        "commitment_vectors": compute_commitment_vectors(),
        "pairing_code_vectors": compute_pairing_code_vectors(),
    }
    out.write_text(json.dumps(document, indent=2, ensure_ascii=False) + "\n")
    print(f"Wrote {out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
