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
import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from .errors import ConnStatus, DnsResolutionFailed, MissingParameter, SlpError, check_port
from .resolver import DohResolver, Endpoint
from .session import SlpSession
from .versions import resolve_protocol_version

logger = logging.getLogger(__name__)


class ServerStatus:
    """
    Human friendly view of a status response.

    The raw JSON stays available as `payload`, this only picks out the well known fields.
    """

    def __init__(self, payload: Any) -> None:
        self.payload = payload
        """the status object as sent by the server"""
        self.version: str | None = None
        """server version"""
        self.protocol_version: int | None = None
        """server protocol version"""
        self.motd: str | None = None
        """message of the day, unchanged server response (including formatting codes/JSON)"""
        self.stripped_motd: str | None = None
        """message of the day, stripped of all formatting ("human-readable")"""
        self.current_players: int = -1
        """current number of players online"""
        self.max_players: int = -1
        """maximum player capacity"""
        self.player_list: list[str] | None = None
        """sample of online players, may be empty even if "current_players" is over 0"""
        self.favicon_b64: str | None = None
        """base64-encoded favicon data URI"""
        self.favicon: bytes | None = None
        """decoded favicon (PNG) data"""

        if isinstance(payload, dict):
            self.__parse_payload(payload)

    @staticmethod
    def motd_strip_formatting(raw_motd: str | dict | list) -> str:
        """
        Function for stripping all formatting codes from a motd. Supports Json Chat components (as dict) and
        the legacy formatting codes.

        :param raw_motd: The raw MOTD, either as a string or dict (from "json.loads()")
        """
        stripped_motd = ""

        if isinstance(raw_motd, str):
            stripped_motd = re.sub(r"§.", "", raw_motd)

        elif isinstance(raw_motd, list):
            for sub in raw_motd:
                stripped_motd += ServerStatus.motd_strip_formatting(sub)

        elif isinstance(raw_motd, dict):
            stripped_motd = ServerStatus.motd_strip_formatting(raw_motd.get("text", ""))

            extra = raw_motd.get("extra")
            if isinstance(extra, list):
                for sub in extra:
                    stripped_motd += ServerStatus.motd_strip_formatting(sub)

        return stripped_motd

    def __parse_payload(self, payload: dict) -> None:
        version = payload.get("version")
        if not isinstance(version, dict):
            version = {}
        self.version = version.get("name")
        self.protocol_version = version.get("protocol")

        # The motd might be a string directly, not a json object
        description = payload.get("description", "")
        if isinstance(description, str):
            self.motd = description
        else:
            self.motd = json.dumps(description)
        self.stripped_motd = self.motd_strip_formatting(description)

        players = payload.get("players")
        if not isinstance(players, dict):
            players = {}
        self.max_players = players.get("max", -1)
        self.current_players = players.get("online", -1)

        # There may be a "sample" field in the "players" object that contains a sample list of online players
        sample = players.get("sample")
        if isinstance(sample, list):
            self.player_list = [player["name"] for player in sample if isinstance(player, dict) and "name" in player]

        self.favicon_b64 = payload.get("favicon")
        if isinstance(self.favicon_b64, str) and "base64," in self.favicon_b64:
            try:
                self.favicon = base64.b64decode(self.favicon_b64.split("base64,")[1])
            except ValueError:
                self.favicon = None


@dataclass(frozen=True)
class QueryOutcome:
    """Result of one status query. `data` holds the status object on success."""

    success: bool
    message: str
    data: Any = None
    connection_status: ConnStatus = ConnStatus.SUCCESS

    @classmethod
    def failure(cls, err: SlpError) -> "QueryOutcome":
        return cls(False, str(err), None, err.status)

    @property
    def status(self) -> ServerStatus | None:
        return ServerStatus(self.data) if self.success else None

    def to_dict(self) -> dict:
        result = {"success": self.success, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


class Checker:
    def __init__(
        self,
        resolver: DohResolver | None = None,
        connect_timeout: float = SlpSession.DEFAULT_CONNECT_TIMEOUT,
        response_timeout: float = SlpSession.DEFAULT_RESPONSE_TIMEOUT,
        write_delay: float = SlpSession.DEFAULT_WRITE_DELAY,
    ):
        """Initializes Checker.

        Args:
            resolver (DohResolver, optional): Resolver locating the servers. A default one is
                created (and closed by `close()`) if omitted.
            connect_timeout (float, optional): Seconds to wait for the TCP connection. Defaults to 1.
            response_timeout (float, optional): Seconds to wait for the status response. Defaults to 0.5.
            write_delay (float, optional): Seconds to pause between two written frames. Defaults to 0.1.
        """
        self._owns_resolver = resolver is None
        self.resolver = resolver if resolver is not None else DohResolver()
        self.connect_timeout = connect_timeout
        self.response_timeout = response_timeout
        self.write_delay = write_delay

    async def close(self) -> None:
        if self._owns_resolver:
            await self.resolver.close()

    async def __aenter__(self) -> "Checker":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def query(
        self,
        address: str | None,
        port: int | None = None,
        protocol_version: str | int | None = None,
    ) -> QueryOutcome:
        """
        Query the status of a server. Never raises, every failure ends up in the outcome.

        Args:
            address (str): Hostname or IP address of the server.
            port (int, optional): Port of the server. None or 0 means auto-detect (SRV record or 25565).
            protocol_version (str | int, optional): Release name or protocol number to announce.
                Defaults to the latest known release.

        Returns:
            QueryOutcome: `success`, a `message` naming the failed stage, and the status object as `data`.
        """
        try:
            endpoint, payload = await self._query(address, port, protocol_version)
        except SlpError as err:
            logger.info("Status query of %s failed: %s", address, err)
            return QueryOutcome.failure(err)

        logger.info("Got status of %s from %s", address, endpoint)
        return QueryOutcome(True, f"{endpoint} connected", payload)

    async def _query(
        self, address: str | None, port: int | None, protocol_version: str | int | None
    ) -> tuple[Endpoint, Any]:
        if not address:
            raise MissingParameter()
        port = check_port(port)
        version = resolve_protocol_version(protocol_version)

        endpoint = await self.resolver.resolve(address, port)
        if endpoint is None:
            raise DnsResolutionFailed()

        session = await SlpSession.open(endpoint, self.connect_timeout, self.write_delay)
        async with session:
            await session.run_handshake(version, endpoint.refer, endpoint.port)
            payload = await session.read_status(self.response_timeout)

        return endpoint, payload
