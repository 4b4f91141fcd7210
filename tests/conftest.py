import asyncio
import json

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from slpcheck.errors import SlpError
from slpcheck.protocol import build_frame, pack_varint, read_frame
from slpcheck.resolver import DohResolver, Endpoint

STATUS = {
    "version": {"name": "1.20.4", "protocol": 765},
    "players": {"max": 20, "online": 3, "sample": [{"name": "Notch", "id": "069a79f4-44e9-4726-a5be-fca90e38aaf5"}]},
    "description": {"text": "A server"},
}


def status_frame(status) -> bytes:
    raw = status if isinstance(status, bytes) else json.dumps(status).encode("utf8")
    return build_frame(0x00, pack_varint(len(raw)) + raw)


class FakeDohResolver(DohResolver):
    """Answers DoH lookups from a dict of (name, type) -> data."""

    def __init__(self, answers=None):
        super().__init__()
        self.answers = answers or {}
        self.queries = []

    async def lookup(self, name, rdtype):
        self.queries.append((name, rdtype))
        return self.answers.get((name, rdtype))


class FixedResolver(DohResolver):
    """Sends every hostname to the same endpoint."""

    def __init__(self, host, port):
        super().__init__()
        self.host = host
        self.port = port

    async def resolve(self, hostname, port=None):
        return Endpoint(self.host, self.port, hostname)


class MockSlpServer:
    """
    Minimal status server. Records the frames it receives and answers with `reply`
    once the handshake, status request and ping arrived.
    """

    def __init__(self, reply: bytes | None = None, close_after_reply=False):
        self.reply = reply
        self.close_after_reply = close_after_reply
        self.received = []
        self.hangups = 0
        self.server = None
        self.port = None

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        try:
            for _ in range(3):
                self.received.append(await read_frame(reader))
            if self.reply is not None:
                writer.write(self.reply)
                await writer.drain()
            if not self.close_after_reply:
                # Wait for the client to hang up
                await reader.read()
                self.hangups += 1
        except (ConnectionError, SlpError):
            pass
        finally:
            writer.close()

    async def start(self):
        self.server = await asyncio.start_server(self.handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]
        return self

    async def stop(self):
        self.server.close()
        await self.server.wait_closed()


@pytest_asyncio.fixture
async def slp_server():
    """Factory starting mock status servers, all stopped at teardown."""
    servers = []

    async def start(reply=None, close_after_reply=False):
        server = await MockSlpServer(reply, close_after_reply).start()
        servers.append(server)
        return server

    yield start
    for server in servers:
        await server.stop()


class MockDoh:
    def __init__(self):
        self.records = {}
        self.requests = []
        self.fail_types = set()
        self.server = None

    async def dns_query(self, request: web.Request):
        name = request.query["name"]
        rdtype = request.query["type"]
        self.requests.append((name, rdtype, request.headers.get("Accept")))
        if rdtype in self.fail_types:
            raise web.HTTPInternalServerError()

        body = {
            "Status": 0,
            "TC": False,
            "RD": True,
            "RA": True,
            "AD": False,
            "CD": False,
            "Question": [{"name": name, "type": 5 if rdtype == "CNAME" else 33}],
        }
        data = self.records.get((name, rdtype))
        if data is not None:
            body["Answer"] = [{"name": name, "type": 5 if rdtype == "CNAME" else 33, "TTL": 300, "data": data}]
        return web.json_response(body, content_type="application/dns-json")

    @property
    def url(self) -> str:
        return str(self.server.make_url("/dns-query"))


@pytest_asyncio.fixture
async def doh_server():
    doh = MockDoh()
    app = web.Application()
    app.router.add_get("/dns-query", doh.dns_query)
    doh.server = TestServer(app)
    await doh.server.start_server()
    yield doh
    await doh.server.close()


@pytest.fixture
def status():
    return json.loads(json.dumps(STATUS))
