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
from enum import Enum


class ConnStatus(Enum):
    """
    Contains possible connection states.

    - `SUCCESS`: The SLP exchange succeeded (Request & response parsing OK)
    - `CONNFAIL`: The server could not be located or the socket could not be established.
    - `TIMEOUT`: The connection or the response timed out. (Server under too much load? Firewall rules OK?)
    - `UNKNOWN`: The connection was established, but the server answered something we could not parse.
    """

    def __str__(self) -> str:
        return str(self.name)

    SUCCESS = 0
    """The SLP exchange succeeded (Request & response parsing OK)"""

    CONNFAIL = -1
    """The server could not be located or the socket could not be established."""

    TIMEOUT = -2
    """The connection or the response timed out."""

    UNKNOWN = -3
    """The connection was established, but the server answered something we could not parse."""


class SlpError(Exception):
    """
    Base class of every failure raised while querying a server.

    `message` names the stage that failed and is what ends up in the result record.
    An optional detail is appended after a colon.
    """

    message = "query failed"
    status = ConnStatus.UNKNOWN

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(f"{self.message}: {detail}" if detail else self.message)


class MissingParameter(SlpError):
    message = "address params not found"
    status = ConnStatus.CONNFAIL


class UnknownProtocolVersion(SlpError):
    message = "unknown protocol version"
    status = ConnStatus.CONNFAIL


class DnsResolutionFailed(SlpError):
    """No fallback step of the resolver produced an endpoint."""

    message = "DNS resolve failed"
    status = ConnStatus.CONNFAIL


class ConnectTimeout(SlpError):
    message = "connection timed out"
    status = ConnStatus.TIMEOUT


class ResponseTimeout(SlpError):
    message = "server response timed out"
    status = ConnStatus.TIMEOUT


class FramingError(SlpError):
    """The stream closed before a complete frame (or VarInt) was received."""

    message = "server closed connection mid-frame"


class ProtocolError(SlpError):
    """The server sent bytes that do not form a valid status response."""

    message = "malformed server response"


class TransportError(SlpError):
    message = "transport error"
    status = ConnStatus.CONNFAIL


class ConnectFailed(TransportError):
    """The socket could not be established (refused, unreachable, ...)."""

    message = "connection failed"


class InvalidPort(SlpError):
    message = "invalid port"
    status = ConnStatus.CONNFAIL


def check_port(port: int | None) -> int | None:
    """
    Validate a caller supplied port. None and 0 mean auto-detect.

    :raise InvalidPort: if the port is not a TCP port number
    """
    if port is None:
        return None
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 0xFFFF:
        raise InvalidPort(str(port))
    return port
