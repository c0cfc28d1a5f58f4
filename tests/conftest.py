"""Pytest configuration and shared fixtures."""

import asyncio
import json
from pathlib import Path

import pytest
import pytest_asyncio

from proxylens.crypto import KeyMaterial
from proxylens.page import CapturedPage

VECTORS_FILE = Path(__file__).parent.parent / "test-vectors" / "envelope.json"


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    from proxylens.logging import reset_logging

    reset_logging()
    yield
    reset_logging()


@pytest_asyncio.fixture(autouse=True, loop_scope="function")
async def cleanup_aiohttp_sessions():
    """Give aiohttp sessions time to clean up their connectors."""
    yield
    await asyncio.sleep(0)


@pytest.fixture
def vectors():
    """Load envelope test vectors."""
    with open(VECTORS_FILE, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def fixed_keys(vectors):
    """Key material from the test vectors."""
    keys = vectors["keys"]
    return KeyMaterial(
        encryption_key=bytes.fromhex(keys["encryption_key_hex"]),
        iv=bytes.fromhex(keys["iv_hex"]),
        auth_key=bytes.fromhex(keys["auth_key_hex"]),
    )


@pytest.fixture
def random_keys():
    """Fresh random key material."""
    from proxylens.crypto import generate_key_material

    return generate_key_material()


@pytest.fixture
def login_page():
    """A captured login page."""
    return CapturedPage(
        form_markup='<form action="/session">\n  <input name="user">\n</form>',
        document_url="https://bank.example/login?x=1",
        form_action="/session?ref=home",
        cookies="session=1; theme=dark",
    )
