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
One TCP connection to a Minecraft Java server, driving the status exchange:

    C -> S  handshake (next state: status)
    C -> S  status request
    C -> S  ping
    S -> C  status response (JSON)

See https://minecraft.wiki/w/Java_Edition_protocol/Server_List_Ping#Current
"""
import asyncio
import contextlib
import logging
from time import time
from typing import Any

from . import protocol
from .errors import (
    ConnectFailed,
    ConnectTimeout,
    ProtocolError,
    ResponseTimeout,
    TransportError,
)
from .resolver import Endpoint

logger = logging.getLogger(__name__)


class SlpSession:
    DEFAULT_CONNECT_TIMEOUT = 1.0
    """seconds to wait for the TCP connection"""
    DEFAULT_RESPONSE_TIMEOUT = 0.5
    """seconds to wait for the status response frame"""
    DEFAULT_WRITE_DELAY = 0.1
    """pause in seconds between two written frames, some servers handle the handshake asynchronously"""

    def __init__(
        self,
        endpoint: Endpoint,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        write_delay: float = DEFAULT_WRITE_DELAY,
    ) -> None:
        self.endpoint = endpoint
        self.reader = reader
        self.writer = writer
        self.write_delay = write_delay
        self.closed = False

    @classmethod
    async def open(
        cls,
        endpoint: Endpoint,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        write_delay: float = DEFAULT_WRITE_DELAY,
    ) -> "SlpSession":
        """
        Connect to the endpoint, giving up after `connect_timeout` seconds.

        :raise ConnectTimeout: if the timer fired first; the connection attempt is cancelled
        :raise ConnectFailed: if the socket could not be established
        """
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(endpoint.host, endpoint.port), connect_timeout
            )
        except asyncio.TimeoutError:
            logger.info("Connecting to %s timed out after %ss", endpoint, connect_timeout)
            raise ConnectTimeout() from None
        except OSError as err:
            logger.info("Error connecting to %s: %s", endpoint, err)
            raise ConnectFailed(str(err) or type(err).__name__) from err

        logger.info("Established connection to %s", endpoint)
        return cls(endpoint, reader, writer, write_delay)

    async def __aenter__(self) -> "SlpSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _send(self, packet: bytes) -> None:
        logger.debug("Sending %s", packet.hex(" "))
        try:
            self.writer.write(packet)
            await self.writer.drain()
        except OSError as err:
            raise TransportError(str(err) or type(err).__name__) from err

    async def run_handshake(self, protocol_version: int, server_address: str, server_port: int) -> None:
        """
        Write the handshake, status request and ping frames, pausing `write_delay` seconds between them.

        :param protocol_version: Protocol number announced in the handshake.
        :param server_address: Hostname announced in the handshake.
        :param server_port: Port announced in the handshake.
        """
        packets = (
            protocol.handshake_packet(protocol_version, server_address, server_port),
            protocol.status_request_packet(),
            # current unix timestamp in ms
            protocol.ping_packet(int(time() * 1000)),
        )
        for index, packet in enumerate(packets):
            if index and self.write_delay > 0:
                await asyncio.sleep(self.write_delay)
            await self._send(packet)

    async def read_status(self, response_timeout: float = DEFAULT_RESPONSE_TIMEOUT) -> Any:
        """
        Receive the status response and decode its JSON.

        The first frame received has to be the status response; a pong arriving first is rejected.

        :raise ResponseTimeout: if no complete response arrived within `response_timeout` seconds
        :raise FramingError: if the server closed the connection mid-frame
        :raise ProtocolError: if the response is not a status frame holding valid JSON
        """
        try:
            packet_id, payload = await asyncio.wait_for(
                protocol.read_frame(self.reader), response_timeout
            )
        except asyncio.TimeoutError:
            raise ResponseTimeout() from None
        except OSError as err:
            raise TransportError(str(err) or type(err).__name__) from err

        if packet_id != protocol.STATUS_RESPONSE_PACKET_ID:
            raise ProtocolError(f"expected a status response, got packet id {packet_id:#04x}")

        return protocol.decode_status_payload(payload)

    async def close(self) -> None:
        """Close the connection. Safe to call more than once, errors are ignored."""
        if self.closed:
            return
        self.closed = True

        self.writer.close()
        with contextlib.suppress(OSError):
            await self.writer.wait_closed()
        logger.debug("Closed connection to %s", self.endpoint)
