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
slpcheck - Query the status of Minecraft Java servers with the Server List Ping protocol,
locating them through DNS-over-HTTPS (CNAME, then `_minecraft._tcp` SRV records).

    async with Checker() as checker:
        outcome = await checker.query("example.com")
"""
import logging

from .checker import Checker, QueryOutcome, ServerStatus
from .errors import (
    ConnectFailed,
    ConnectTimeout,
    ConnStatus,
    DnsResolutionFailed,
    FramingError,
    InvalidPort,
    MissingParameter,
    ProtocolError,
    ResponseTimeout,
    SlpError,
    TransportError,
    UnknownProtocolVersion,
)
from .resolver import DohResolver, Endpoint
from .session import SlpSession
from .versions import LATEST_PROTOCOL, PROTOCOL_VERSIONS, resolve_protocol_version

VERSION = "1.0.0"
"""The slpcheck version"""

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Checker",
    "ConnStatus",
    "ConnectFailed",
    "ConnectTimeout",
    "DnsResolutionFailed",
    "DohResolver",
    "Endpoint",
    "FramingError",
    "InvalidPort",
    "LATEST_PROTOCOL",
    "MissingParameter",
    "PROTOCOL_VERSIONS",
    "ProtocolError",
    "QueryOutcome",
    "ResponseTimeout",
    "ServerStatus",
    "SlpError",
    "SlpSession",
    "TransportError",
    "UnknownProtocolVersion",
    "resolve_protocol_version",
]
