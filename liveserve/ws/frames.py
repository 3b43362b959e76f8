"""
liveserve/ws/frames.py

Purpose:
    RFC 6455 frame encoding and decoding for the live-reload channel.

Supported subset:
    - Server frames are always FIN and never masked (no fragmentation).
    - Client frames are parsed for every opcode, but only CLOSE and PING
      produce a reaction. TEXT/BINARY/CONTINUATION payloads are read and
      dropped: no echo, no message reassembly.
    - Payload lengths use the full 7/16/64-bit ladder in both directions.
"""

from __future__ import annotations

import asyncio
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

from ..errors import ErrorCode, ProtocolError

# Inbound frames larger than this are refused; the browser client only ever
# sends control frames.
MAX_INBOUND_PAYLOAD = 16 * 1024 * 1024

FIN_BIT = 0x80
MASK_BIT = 0x80
OPCODE_MASK = 0x0F
LENGTH_MASK = 0x7F

LENGTH_16 = 126
LENGTH_64 = 127

# Close status codes used by the server
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_PROTOCOL_ERROR = 1002
CLOSE_TOO_BIG = 1009


class Opcode(IntEnum):
    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA


@dataclass(frozen=True)
class Frame:
    fin: bool
    opcode: Opcode
    masked: bool
    payload_length: int
    mask_key: Optional[bytes]
    payload: bytes

    @property
    def close_code(self) -> Optional[int]:
        """Status code carried by a CLOSE frame, if any."""
        if self.opcode != Opcode.CLOSE or len(self.payload) < 2:
            return None
        return struct.unpack("!H", self.payload[:2])[0]


def apply_mask(data: bytes, mask_key: bytes) -> bytes:
    """XOR each byte with mask_key[i % 4]. Masking and unmasking are the same operation."""
    if not data:
        return b""
    length = len(data)
    repeated = (mask_key * (length // 4 + 1))[:length]
    return (int.from_bytes(data, "big") ^ int.from_bytes(repeated, "big")).to_bytes(length, "big")


def _parse_opcode(value: int) -> Opcode:
    try:
        return Opcode(value)
    except ValueError:
        raise ProtocolError(f"Reserved opcode 0x{value:x}", ErrorCode.PROTOCOL_BAD_REQUEST)


def encode_frame(message: Union[str, bytes], opcode: Opcode = Opcode.TEXT) -> bytes:
    """
    Build a single unmasked FIN frame.

    Args:
        message: str payloads are UTF-8 encoded
        opcode: frame type (TEXT by default)
    """
    payload = message.encode("utf-8") if isinstance(message, str) else bytes(message)
    length = len(payload)
    first = FIN_BIT | int(opcode)

    if length < LENGTH_16:
        header = struct.pack("!BB", first, length)
    elif length < 65536:
        header = struct.pack("!BBH", first, LENGTH_16, length)
    else:
        header = struct.pack("!BBQ", first, LENGTH_64, length)

    return header + payload


def encode_close(code: int = CLOSE_NORMAL, reason: str = "") -> bytes:
    return encode_frame(struct.pack("!H", code) + reason.encode("utf-8"), Opcode.CLOSE)


def decode_frame(buffer: bytes) -> Frame:
    """
    Decode one complete frame from the start of buffer.

    Raises:
        ProtocolError: fewer bytes than the header or payload announces,
            or a reserved opcode
    """
    if len(buffer) < 2:
        raise ProtocolError("Frame shorter than 2 bytes", ErrorCode.PROTOCOL_TRUNCATED_FRAME)

    first, second = buffer[0], buffer[1]
    opcode = _parse_opcode(first & OPCODE_MASK)
    masked = bool(second & MASK_BIT)
    length = second & LENGTH_MASK
    offset = 2

    if length == LENGTH_16:
        if len(buffer) < offset + 2:
            raise ProtocolError("Truncated 16-bit length", ErrorCode.PROTOCOL_TRUNCATED_FRAME)
        length = struct.unpack_from("!H", buffer, offset)[0]
        offset += 2
    elif length == LENGTH_64:
        if len(buffer) < offset + 8:
            raise ProtocolError("Truncated 64-bit length", ErrorCode.PROTOCOL_TRUNCATED_FRAME)
        length = struct.unpack_from("!Q", buffer, offset)[0]
        offset += 8

    mask_key = None
    if masked:
        if len(buffer) < offset + 4:
            raise ProtocolError("Truncated mask key", ErrorCode.PROTOCOL_TRUNCATED_FRAME)
        mask_key = bytes(buffer[offset:offset + 4])
        offset += 4

    if len(buffer) < offset + length:
        raise ProtocolError(
            f"Payload truncated: expected {length} bytes, got {len(buffer) - offset}",
            ErrorCode.PROTOCOL_TRUNCATED_FRAME,
        )

    payload = bytes(buffer[offset:offset + length])
    if mask_key is not None:
        payload = apply_mask(payload, mask_key)

    return Frame(
        fin=bool(first & FIN_BIT),
        opcode=opcode,
        masked=masked,
        payload_length=length,
        mask_key=mask_key,
        payload=payload,
    )


async def read_frame(reader: asyncio.StreamReader,
                     max_payload: int = MAX_INBOUND_PAYLOAD) -> Frame:
    """
    Read exactly one frame from a stream.

    Raises:
        asyncio.IncompleteReadError: the peer closed the stream (partial is
            empty on a clean EOF between frames)
        ProtocolError: reserved opcode or payload above max_payload
    """
    head = await reader.readexactly(2)
    first, second = head[0], head[1]
    opcode = _parse_opcode(first & OPCODE_MASK)
    masked = bool(second & MASK_BIT)
    length = second & LENGTH_MASK

    if length == LENGTH_16:
        length = struct.unpack("!H", await reader.readexactly(2))[0]
    elif length == LENGTH_64:
        length = struct.unpack("!Q", await reader.readexactly(8))[0]

    if length > max_payload:
        raise ProtocolError(
            f"Frame payload of {length} bytes exceeds {max_payload}",
            ErrorCode.PROTOCOL_BAD_REQUEST,
            details={"close_code": CLOSE_TOO_BIG},
        )

    mask_key = await reader.readexactly(4) if masked else None
    payload = await reader.readexactly(length) if length else b""
    if mask_key is not None:
        payload = apply_mask(payload, mask_key)

    return Frame(
        fin=bool(first & FIN_BIT),
        opcode=opcode,
        masked=masked,
        payload_length=length,
        mask_key=mask_key,
        payload=payload,
    )
