"""End-to-end tests against a local rendezvous server.

The server mimics the directory and channel endpoints:
GET /new hands out a token, POST /{token} stores a body,
GET /{token} returns it.
"""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp import test_utils

from proxylens.config import Config, RendezvousConfig
from proxylens.crypto import generate_key_material
from proxylens.page import CapturedPage
from proxylens.pairing.session import PairingSession, SessionState
from proxylens.payload import EncryptedEnvelope, open_envelope
from proxylens.rendezvous.client import ChannelClient
from proxylens.result import FailureKind


class RendezvousState:
    """What the fake server saw."""

    def __init__(self):
        self.channels = {}
        self.writes = []
        self.new_status = 200
        self.delay = 0.0


def make_app(state: RendezvousState) -> web.Application:
    async def new_channel(request):
        if state.delay:
            await asyncio.sleep(state.delay)
        if state.new_status != 200:
            return web.Response(status=state.new_status)
        token = f"chan{len(state.channels)}"
        state.channels[token] = None
        return web.Response(text=token)

    async def write_channel(request):
        token = request.match_info["token"]
        if token not in state.channels:
            return web.Response(status=404)
        body = await request.read()
        state.channels[token] = body
        state.writes.append((token, request.headers.get("Content-Type"), body))
        return web.Response(text="ok")

    async def read_channel(request):
        body = state.channels.get(request.match_info["token"])
        if body is None:
            return web.Response(status=404)
        return web.Response(body=body)

    app = web.Application()
    app.router.add_get("/new", new_channel)
    app.router.add_post("/{token}", write_channel)
    app.router.add_get("/{token}", read_channel)
    return app


class RecordingRenderer:
    def __init__(self):
        self.codes = []
        self.errors = []

    def show_code(self, code):
        self.codes.append(code)

    def show_error(self, message):
        self.errors.append(message)


@pytest.fixture
def state():
    return RendezvousState()


@pytest_asyncio.fixture
async def server(state):
    server = test_utils.TestServer(make_app(state))
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def domain(server):
    return f"{server.host}:{server.port}"


class TestRendezvousExchange:
    """Client against a real HTTP server."""

    @pytest.mark.asyncio
    async def test_acquire_write_read(self, state, domain):
        """A written envelope can be read back byte for byte."""
        envelope = EncryptedEnvelope(iv=b"i" * 32, ciphertext=b"c" * 32, mac=b"m" * 32)

        async with ChannelClient(domain=domain, scheme="http") as client:
            handle = (await client.acquire_channel()).unwrap()
            (await client.write_envelope(handle, envelope)).unwrap()
            body = (await client.read_channel(handle)).unwrap()

        assert handle.address == f"http://{domain}/chan0"
        assert EncryptedEnvelope.from_json(body) == envelope
        assert state.writes[0][1] == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_directory_error(self, state, domain):
        """A 500 from the directory is reported, not raised."""
        state.new_status = 500

        async with ChannelClient(domain=domain, scheme="http") as client:
            result = await client.acquire_channel()

        assert result.kind is FailureKind.BAD_STATUS

    @pytest.mark.asyncio
    async def test_slow_directory_times_out(self, state, domain):
        """A directory slower than the timeout yields TIMEOUT."""
        state.delay = 1.0

        async with ChannelClient(domain=domain, timeout=0.1, scheme="http") as client:
            result = await client.acquire_channel()

        assert result.kind is FailureKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_connection_refused(self, unused_tcp_port):
        """Nothing listening is a NETWORK_ERROR."""
        async with ChannelClient(
            domain=f"127.0.0.1:{unused_tcp_port}", timeout=2.0, scheme="http"
        ) as client:
            result = await client.acquire_channel()

        assert result.kind is FailureKind.NETWORK_ERROR


class TestPairingSessionE2E:
    """Full pairing session against the local server."""

    @pytest.mark.asyncio
    async def test_session_completes_and_peer_can_decrypt(self, state, domain):
        """The paired device can open what the session wrote."""
        issued = []

        def key_factory():
            keys = generate_key_material()
            issued.append(keys)
            return keys

        page = CapturedPage(
            form_markup="<form>\n  <input name='u'>\n</form>",
            document_url="https://bank.example/login",
            cookies="sid=42",
        )
        config = Config(rendezvous=RendezvousConfig(domain=domain))
        renderer = RecordingRenderer()
        session = PairingSession(page=page, config=config, key_factory=key_factory)

        async with ChannelClient(domain=domain, scheme="http") as client:
            outcome = await session.run(client, renderer)

        assert outcome.state is SessionState.COMPLETED
        assert len(state.writes) == 1
        assert len(renderer.codes) == 1
        assert renderer.codes[0].channel_address == outcome.channel.address

        token, _, body = state.writes[0]
        assert outcome.channel.token == token
        plaintext = open_envelope(EncryptedEnvelope.from_json(body), issued[0])
        assert plaintext == page.to_payload().to_json()

    @pytest.mark.asyncio
    async def test_directory_failure_shows_no_code(self, state, domain):
        """When the directory fails, no code is shown and nothing is written."""
        state.new_status = 503
        config = Config(rendezvous=RendezvousConfig(domain=domain))
        renderer = RecordingRenderer()
        session = PairingSession(
            page=CapturedPage(form_markup="<form></form>", document_url="https://a/"),
            config=config,
        )

        async with ChannelClient(domain=domain, scheme="http") as client:
            outcome = await session.run(client, renderer)

        assert outcome.state is SessionState.FAILED
        assert renderer.codes == []
        assert len(renderer.errors) == 1
        assert state.writes == []
