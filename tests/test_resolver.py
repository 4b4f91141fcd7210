import aiohttp
import pytest

from slpcheck.resolver import DohResolver, Endpoint

from .conftest import FakeDohResolver


@pytest.mark.asyncio
async def test_cname_wins_over_srv():
    resolver = FakeDohResolver(
        {
            ("play.example.com", "CNAME"): "mc-eu-1.hosting.net.",
            ("_minecraft._tcp.play.example.com", "SRV"): "0 0 25566 mc.example.net.",
        }
    )
    endpoint = await resolver.resolve("play.example.com", 25570)
    assert endpoint == Endpoint("mc-eu-1.hosting.net", 25570, "mc-eu-1.hosting.net")
    assert resolver.queries == [("play.example.com", "CNAME")]


@pytest.mark.asyncio
async def test_cname_without_port_uses_default():
    resolver = FakeDohResolver({("play.example.com", "CNAME"): "mc-eu-1.hosting.net."})
    endpoint = await resolver.resolve("play.example.com")
    assert (endpoint.host, endpoint.port) == ("mc-eu-1.hosting.net", 25565)


@pytest.mark.asyncio
@pytest.mark.parametrize("port", [None, 25565, 30000])
async def test_srv_overrides_port(port):
    resolver = FakeDohResolver({("_minecraft._tcp.example.net", "SRV"): "0 0 25566 mc.example.net."})
    endpoint = await resolver.resolve("example.net", port)
    assert endpoint == Endpoint("mc.example.net", 25566, "example.net")
    assert resolver.queries == [("example.net", "CNAME"), ("_minecraft._tcp.example.net", "SRV")]


@pytest.mark.asyncio
async def test_nothing_found():
    resolver = FakeDohResolver()
    assert await resolver.resolve("nowhere.example", 25565) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("data", ["not a srv record", "0 0 25566 ."])
async def test_unusable_srv_answer(data):
    resolver = FakeDohResolver({("_minecraft._tcp.example.net", "SRV"): data})
    assert await resolver.resolve("example.net") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("address", ["127.0.0.1", "::1"])
async def test_ip_literal_needs_no_lookup(address):
    resolver = FakeDohResolver()
    assert await resolver.resolve(address, 25570) == Endpoint(address, 25570, address)
    assert await resolver.resolve(address) == Endpoint(address, 25565, address)
    assert resolver.queries == []


@pytest.mark.asyncio
async def test_internationalized_name_is_queried_as_punycode():
    resolver = FakeDohResolver()
    await resolver.resolve("bücher.example")
    assert resolver.queries[0] == ("xn--bcher-kva.example", "CNAME")


@pytest.mark.asyncio
async def test_invalid_hostname_is_not_queried():
    resolver = FakeDohResolver()
    assert await resolver.resolve("bad..name") is None
    assert resolver.queries == []


def test_strategies_are_tried_in_order():
    resolver = FakeDohResolver()
    assert [s.__name__ for s in resolver.strategies] == ["resolve_literal", "resolve_cname", "resolve_srv"]


@pytest.mark.asyncio
async def test_lookup_over_http(doh_server):
    doh_server.records[("_minecraft._tcp.example.net", "SRV")] = "5 10 25566 mc.example.net."
    async with aiohttp.ClientSession() as session:
        resolver = DohResolver(session, doh_server.url)
        endpoint = await resolver.resolve("example.net", 25565)

    assert endpoint == Endpoint("mc.example.net", 25566, "example.net")
    assert doh_server.requests == [
        ("example.net", "CNAME", "application/dns-json"),
        ("_minecraft._tcp.example.net", "SRV", "application/dns-json"),
    ]


@pytest.mark.asyncio
async def test_http_failure_falls_through(doh_server):
    doh_server.fail_types.add("CNAME")
    doh_server.records[("example.net", "CNAME")] = "ignored.example."
    doh_server.records[("_minecraft._tcp.example.net", "SRV")] = "0 0 25566 mc.example.net."
    async with DohResolver(doh_url=doh_server.url) as resolver:
        endpoint = await resolver.resolve("example.net")
    assert endpoint == Endpoint("mc.example.net", 25566, "example.net")


@pytest.mark.asyncio
async def test_unreachable_doh_means_not_found(unused_tcp_port):
    async with DohResolver(doh_url=f"http://127.0.0.1:{unused_tcp_port}/dns-query", timeout=1) as resolver:
        assert await resolver.resolve("example.net") is None
