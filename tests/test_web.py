import pytest
from aiohttp.test_utils import TestClient, TestServer

from slpcheck.web import create_app

from .conftest import FakeDohResolver, FixedResolver, status_frame
from .test_checker import checker_for


async def get(app, **params):
    async with TestClient(TestServer(app)) as client:
        resp = await client.get("/", params=params)
        assert resp.status == 200
        assert resp.headers["Access-Control-Allow-Methods"] == "GET"
        assert resp.content_type == "application/json"
        return await resp.json()


@pytest.mark.asyncio
async def test_status_route(slp_server, status):
    server = await slp_server(status_frame(status))
    app = create_app(checker_for(FixedResolver("127.0.0.1", server.port)))

    body = await get(app, address="mock.test", version="1.20.4")

    assert body == {"success": True, "message": f"127.0.0.1:{server.port} connected", "data": status}


@pytest.mark.asyncio
async def test_port_is_forwarded():
    resolver = FakeDohResolver()
    checker = checker_for(resolver)
    seen = []

    async def resolve(hostname, port=None):
        seen.append((hostname, port))

    resolver.resolve = resolve
    body = await get(create_app(checker), address="mock.test", port="25570")

    assert seen == [("mock.test", 25570)]
    assert body == {"success": False, "message": "DNS resolve failed"}


@pytest.mark.asyncio
async def test_missing_address_param():
    body = await get(create_app())
    assert body == {"success": False, "message": "address params not found"}


@pytest.mark.asyncio
@pytest.mark.parametrize("port", ["abc", "-1", "70000"])
async def test_invalid_port(port):
    body = await get(create_app(checker_for(FakeDohResolver())), address="mock.test", port=port)
    assert body == {"success": False, "message": f"invalid port: {port}"}
