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
"""Release name to protocol number table used to fill the handshake."""
from types import MappingProxyType

from .errors import UnknownProtocolVersion

PROTOCOL_VERSIONS = MappingProxyType(
    {
        "1.7.2": 4,
        "1.7.10": 5,
        "1.8": 47,
        "1.9": 107,
        "1.9.4": 110,
        "1.10": 210,
        "1.11": 315,
        "1.11.2": 316,
        "1.12": 335,
        "1.12.2": 340,
        "1.13": 393,
        "1.13.2": 404,
        "1.14": 477,
        "1.14.4": 498,
        "1.15": 573,
        "1.15.2": 578,
        "1.16": 735,
        "1.16.5": 754,
        "1.17": 755,
        "1.17.1": 756,
        "1.18": 757,
        "1.18.2": 758,
        "1.19": 759,
        "1.19.2": 760,
        "1.19.3": 761,
        "1.19.4": 762,
        "1.20": 763,
        "1.20.1": 763,
        "1.20.2": 764,
        "1.20.4": 765,
        "1.20.6": 766,
        "1.21": 767,
        "1.21.1": 767,
        "1.21.3": 768,
        "1.21.4": 769,
    }
)
"""Known releases, from https://minecraft.wiki/w/Protocol_version_numbers"""

LATEST_VERSION = "1.21.4"
LATEST_PROTOCOL = PROTOCOL_VERSIONS[LATEST_VERSION]


def resolve_protocol_version(token: str | int | None) -> int:
    """
    Turn a user supplied version token into a protocol number.

    Accepts a release name ("1.20.4"), a raw protocol number (765 or "765", "-1" included)
    or nothing, which selects the latest known release.

    :raise UnknownProtocolVersion: if the token is neither
    """
    if token is None or token == "":
        return LATEST_PROTOCOL
    if isinstance(token, str):
        token = token.strip()
        if token in PROTOCOL_VERSIONS:
            return PROTOCOL_VERSIONS[token]
        try:
            number = int(token)
        except ValueError:
            raise UnknownProtocolVersion(token) from None
    else:
        number = token

    # Protocol numbers are signed 32-bit
    if not -(1 << 31) <= number < (1 << 31):
        raise UnknownProtocolVersion(str(token))
    return number
