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
VarInt codec and packet framing of the Minecraft Java protocol, limited to
what the Server List Ping exchange needs.

See https://minecraft.wiki/w/Java_Edition_protocol/Server_List_Ping
"""
import asyncio
import json
import logging
import struct
from typing import Any

from .errors import FramingError, ProtocolError

logger = logging.getLogger(__name__)

SEGMENT_BITS = 0x7F
CONTINUE_BIT = 0x80

MAX_VARINT_BYTES = 5
"""a 32-bit value never needs more than 5 bytes"""
MAX_FRAME_LENGTH = 2097151
"""largest packet length the protocol allows (3-byte VarInt)"""

HANDSHAKE_PACKET_ID = 0x00
STATUS_REQUEST_PACKET_ID = 0x00
STATUS_RESPONSE_PACKET_ID = 0x00
PING_PACKET_ID = 0x01
NEXT_STATE_STATUS = 1


def pack_varint(value: int) -> bytes:
    """
    Pack an int into a VarInt.

    Negative values are packed as their 32-bit two's complement, so `-1` becomes
    `FF FF FF FF 0F` (the protocol version used when pinging to determine the version).

    :param value: Integer in the range [-2**31, 2**32)
    :return: 1 to 5 bytes
    """
    if not -(1 << 31) <= value < (1 << 32):
        raise ValueError(f"{value} does not fit in a VarInt")
    value &= 0xFFFFFFFF

    ordinal = bytearray()
    while value >= CONTINUE_BIT:
        ordinal.append((value & SEGMENT_BITS) | CONTINUE_BIT)
        value >>= 7
    ordinal.append(value)

    return bytes(ordinal)


def unpack_varint(data: bytes | bytearray) -> tuple[int, int, bytes]:
    """
    Unpack a VarInt from the start of a fully buffered byte string.

    :param data: Bytes starting with a VarInt
    :return: (value, number of bytes consumed, remaining bytes)
    """
    value = 0
    for position in range(MAX_VARINT_BYTES):
        if position >= len(data):
            raise FramingError("truncated VarInt")

        byte = data[position]
        value |= (byte & SEGMENT_BITS) << 7 * position

        if not byte & CONTINUE_BIT:
            consumed = position + 1
            return value & 0xFFFFFFFF, consumed, bytes(data[consumed:])

    raise ProtocolError("VarInt is too big")


async def read_varint(reader: asyncio.StreamReader) -> tuple[int, int]:
    """
    Unpack a VarInt streamed from a reader, one byte at a time.

    :param reader: Reader of an open connection
    :return: (value, number of bytes consumed)
    """
    value = 0
    for position in range(MAX_VARINT_BYTES):
        try:
            ordinal = await reader.readexactly(1)
        except asyncio.IncompleteReadError as err:
            raise FramingError("stream closed inside a VarInt") from err

        byte = ordinal[0]
        value |= (byte & SEGMENT_BITS) << 7 * position

        if not byte & CONTINUE_BIT:
            return value & 0xFFFFFFFF, position + 1

    raise ProtocolError("VarInt is too big")


def pack_string(value: str) -> bytes:
    """Pack a string as its UTF-8 bytes prefixed with their VarInt length."""
    encoded = value.encode("utf8")
    return pack_varint(len(encoded)) + encoded


def build_frame(packet_id: int, payload: bytes = b"") -> bytes:
    """
    Wrap a packet into a frame: `VarInt(len(body)) ++ body` where `body = VarInt(packet_id) ++ payload`.
    """
    body = pack_varint(packet_id) + payload
    return pack_varint(len(body)) + body


def _check_frame_length(length: int) -> None:
    # A frame always holds at least the packet id
    if length < 1:
        raise ProtocolError("empty frame")
    if length > MAX_FRAME_LENGTH:
        raise ProtocolError(f"frame of {length} bytes exceeds the protocol limit")


def _split_body(body: bytes) -> tuple[int, bytes]:
    try:
        packet_id, _, payload = unpack_varint(body)
    except FramingError as err:
        raise ProtocolError("frame body holds no complete packet id") from err
    return packet_id, payload


def parse_frame(frame: bytes | bytearray) -> tuple[int, bytes]:
    """
    Split a complete in-memory frame into its packet id and payload.

    :raise FramingError: if the buffer holds less than the declared length
    """
    length, _, body = unpack_varint(frame)
    _check_frame_length(length)
    if len(body) < length:
        raise FramingError(f"expected {length} bytes, got {len(body)}")

    return _split_body(bytes(body[:length]))


async def read_frame(reader: asyncio.StreamReader) -> tuple[int, bytes]:
    """
    Receive one full frame from the reader and return its packet id and payload.

    Waits until the whole declared length has arrived; never returns a short frame.

    :raise FramingError: if the stream closes before the frame is complete
    """
    length, _ = await read_varint(reader)
    _check_frame_length(length)
    logger.debug("Incoming frame is %d bytes long", length)

    try:
        body = await reader.readexactly(length)
    except asyncio.IncompleteReadError as err:
        raise FramingError(f"expected {length} bytes, got {len(err.partial)}") from err

    return _split_body(body)


def handshake_packet(protocol_version: int, server_address: str, server_port: int) -> bytes:
    """
    Build the handshake frame announcing the status intent.

    :param protocol_version: Protocol number the client pretends to speak
    :param server_address: Hostname announced to the server, encoded with UTF8
    :param server_port: Port announced to the server
    """
    req_data = pack_varint(protocol_version)
    req_data += pack_string(server_address)
    # Server port
    req_data += struct.pack(">H", server_port)
    # Next packet state (1 for status, 2 for login)
    req_data += pack_varint(NEXT_STATE_STATUS)

    return build_frame(HANDSHAKE_PACKET_ID, req_data)


def status_request_packet() -> bytes:
    return build_frame(STATUS_REQUEST_PACKET_ID)


def ping_packet(timestamp: int) -> bytes:
    """Ping frame carrying a timestamp in ms as signed long (64-bit) BE-encoded."""
    return build_frame(PING_PACKET_ID, struct.pack(">q", timestamp))


def decode_status_payload(payload: bytes) -> Any:
    """
    Decode the payload of a status response frame: `VarInt(jsonLength) ++ utf8(json)`.

    :raise ProtocolError: if the payload is short, not UTF-8 or not JSON
    """
    try:
        content_len, _, rest = unpack_varint(payload)
    except FramingError as err:
        raise ProtocolError("status payload is missing its length") from err
    if len(rest) < content_len:
        raise ProtocolError(f"status JSON declares {content_len} bytes, frame holds {len(rest)}")

    try:
        return json.loads(rest[:content_len].decode("utf8"))
    except UnicodeDecodeError as err:
        raise ProtocolError("status is not valid UTF-8") from err
    except json.JSONDecodeError as err:
        raise ProtocolError(f"status is not valid JSON ({err.msg})") from err
