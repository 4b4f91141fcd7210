# slpcheck - A Minecraft server list ping client with DNS-over-HTTPS discovery
# Copyright (C) 2016-2023 Lloyd Dilley, Felix Ern (MindSolve)
# http://www.dilley.me/
#
# Secondary optimization and customization are carried out by @molanp.
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along
# with this program; if not, write to the Free Software Foundation, Inc.,
# 51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
"""
Locate the server behind a user supplied hostname.

Lookups go through a public DNS-over-HTTPS resolver speaking the JSON API
(`Accept: application/dns-json`), e.g.

    GET https://cloudflare-dns.com/dns-query?name=example.com&type=SRV

The resolver tries an ordered chain of strategies and keeps the first endpoint found.
"""
import asyncio
import ipaddress
import logging
from typing import Awaitable, Callable, NamedTuple

import aiohttp
import dns.exception
import dns.rdata
import dns.rdataclass
import dns.rdatatype
import idna

logger = logging.getLogger(__name__)


class Endpoint(NamedTuple):
    """Where to open the connection, and which address to announce in the handshake."""

    host: str
    port: int
    refer: str

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


Strategy = Callable[[str, int | None], Awaitable[Endpoint | None]]


class DohResolver:
    DEFAULT_TCP_PORT = 25565
    """port used when neither the caller nor a SRV record gives one"""
    DEFAULT_DOH_URL = "https://cloudflare-dns.com/dns-query"
    """public DNS-over-HTTPS endpoint speaking the JSON API"""
    DEFAULT_TIMEOUT = 5.0
    """timeout in seconds of a single DoH request"""
    SRV_SERVICE = "_minecraft._tcp"

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        doh_url: str = DEFAULT_DOH_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """
        :param session: Optional aiohttp session to send the DoH requests with. One is created
            on first use (and closed by `close()`) if omitted.
        :param doh_url: URL of the DNS-over-HTTPS JSON endpoint.
        :param timeout: Timeout in seconds of each DoH request.
        """
        self._session = session
        self._owns_session = session is None
        self.doh_url = doh_url
        self.timeout = timeout

        self.strategies: tuple[Strategy, ...] = (
            self.resolve_literal,
            self.resolve_cname,
            self.resolve_srv,
        )
        """lookups tried in order, the first one returning an endpoint wins"""

    @property
    def session(self) -> aiohttp.ClientSession:
        "Get the aiohttp session"
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "DohResolver":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def resolve(self, hostname: str, port: int | None = None) -> Endpoint | None:
        """
        Resolve a hostname to a connectable endpoint.

        :param hostname: Hostname or IP address given by the user.
        :param port: Optional explicit port. A SRV record overrides it.
        :return: The endpoint, or None if no strategy found one.
        """
        for strategy in self.strategies:
            endpoint = await strategy(hostname, port)
            if endpoint is not None:
                logger.debug("%s resolved to %s by %s", hostname, endpoint, strategy.__name__)
                return endpoint

        logger.info("Could not resolve %s", hostname)
        return None

    async def resolve_literal(self, hostname: str, port: int | None) -> Endpoint | None:
        """IP addresses need no lookup."""
        try:
            ipaddress.ip_address(hostname)
        except ValueError:
            return None
        return Endpoint(hostname, port or self.DEFAULT_TCP_PORT, hostname)

    async def resolve_cname(self, hostname: str, port: int | None) -> Endpoint | None:
        """Follow a CNAME alias. The port stays the one given by the caller."""
        name = self._to_ascii(hostname)
        if name is None:
            return None

        data = await self.lookup(name, "CNAME")
        if data is None:
            return None

        try:
            rdata = dns.rdata.from_text(dns.rdataclass.IN, dns.rdatatype.CNAME, data)
        except dns.exception.DNSException as err:
            logger.warning("Ignoring unparsable CNAME answer %r for %s: %s", data, name, err)
            return None

        alias = rdata.target.to_text(omit_final_dot=True)
        return Endpoint(alias, port or self.DEFAULT_TCP_PORT, alias)

    async def resolve_srv(self, hostname: str, port: int | None) -> Endpoint | None:
        """
        Look for a `_minecraft._tcp` SRV record. Its target and port replace the
        hostname and any explicit port.
        """
        name = self._to_ascii(hostname)
        if name is None:
            return None

        data = await self.lookup(f"{self.SRV_SERVICE}.{name}", "SRV")
        if data is None:
            return None

        # "priority weight port target"
        try:
            rdata = dns.rdata.from_text(dns.rdataclass.IN, dns.rdatatype.SRV, data)
        except dns.exception.DNSException as err:
            logger.warning("Ignoring unparsable SRV answer %r for %s: %s", data, name, err)
            return None

        target = rdata.target.to_text(omit_final_dot=True)
        # A target of "." means the service is explicitly not available
        if not target or target == ".":
            return None
        return Endpoint(target, rdata.port, hostname)

    async def lookup(self, name: str, rdtype: str) -> str | None:
        """
        Send one DoH query and return the `data` field of the first answer.

        Any failure of the request itself counts as "no answer".

        :param name: Fully qualified name, in ASCII.
        :param rdtype: Record type, "CNAME" or "SRV".
        """
        params = {"name": name, "type": rdtype}
        headers = {"Accept": "application/dns-json"}
        try:
            async with self.session.get(
                self.doh_url,
                params=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                resp.raise_for_status()
                # The JSON API answers with "application/dns-json"
                payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as err:
            logger.warning("DoH %s lookup of %s failed: %s", rdtype, name, err)
            return None

        if not isinstance(payload, dict):
            return None
        answers = payload.get("Answer")
        if not answers or not isinstance(answers[0], dict):
            return None

        data = answers[0].get("data")
        logger.debug("DoH %s %s -> %r", rdtype, name, data)
        return data if isinstance(data, str) and data else None

    @staticmethod
    def _to_ascii(hostname: str) -> str | None:
        try:
            return idna.encode(hostname, uts46=True).decode("ascii")
        except idna.IDNAError:
            logger.info("%s is not a valid domain name", hostname)
            return None
