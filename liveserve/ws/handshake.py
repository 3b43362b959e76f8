"""
liveserve/ws/handshake.py

Purpose:
    Upgrades a raw HTTP request on the WebSocket port into a WebSocket
    connection. Only Sec-WebSocket-Key is required; no subprotocols and
    no extensions are negotiated.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Dict

from ..errors import ErrorCode, ProtocolError

logger = logging.getLogger(__name__)

WEBSOCKET_GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"

MAX_REQUEST_HEAD = 16 * 1024
HANDSHAKE_TIMEOUT = 10.0

BAD_REQUEST_RESPONSE = b"HTTP/1.1 400 Bad Request\r\n\r\n"


@dataclass
class HandshakeRequest:
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)  # lower-cased names

    @property
    def key(self) -> str:
        return self.headers.get("sec-websocket-key", "").strip()


def compute_accept_key(key: str) -> str:
    """base64(sha1(key + GUID)) as required for Sec-WebSocket-Accept."""
    digest = hashlib.sha1((key + WEBSOCKET_GUID).encode("ascii")).digest()
    return base64.b64encode(digest).decode("ascii")


def build_handshake_response(key: str) -> bytes:
    lines = [
        "HTTP/1.1 101 Switching Protocols",
        "Upgrade: websocket",
        "Connection: Upgrade",
        f"Sec-WebSocket-Accept: {compute_accept_key(key)}",
        "",
        "",
    ]
    return "\r\n".join(lines).encode("ascii")


def parse_request_head(data: bytes) -> HandshakeRequest:
    """Parse the request line and headers of an upgrade request."""
    try:
        text = data.decode("latin-1")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Undecodable request head: {e}")

    lines = text.split("\r\n")
    parts = lines[0].split(" ")
    if len(parts) < 3 or not parts[2].startswith("HTTP/"):
        raise ProtocolError(f"Malformed request line: {lines[0]!r}")

    headers: Dict[str, str] = {}
    for line in lines[1:]:
        if not line:
            continue
        name, sep, value = line.partition(":")
        if not sep:
            raise ProtocolError(f"Malformed header line: {line!r}")
        headers[name.strip().lower()] = value.strip()

    return HandshakeRequest(method=parts[0], path=parts[1], headers=headers)


async def negotiate(reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                    timeout: float = HANDSHAKE_TIMEOUT) -> HandshakeRequest:
    """
    Read the upgrade request and answer it.

    On success the 101 response has been written and the stream now speaks
    WebSocket frames. On failure a 400 status line has been written where
    possible and ProtocolError is raised; the caller closes the transport.
    """
    try:
        head = await asyncio.wait_for(reader.readuntil(b"\r\n\r\n"), timeout)
    except asyncio.TimeoutError:
        raise ProtocolError("Handshake timed out")
    except asyncio.IncompleteReadError:
        raise ProtocolError("Connection closed during handshake")
    except asyncio.LimitOverrunError:
        writer.write(BAD_REQUEST_RESPONSE)
        raise ProtocolError("Handshake request head too large")

    if len(head) > MAX_REQUEST_HEAD:
        writer.write(BAD_REQUEST_RESPONSE)
        raise ProtocolError("Handshake request head too large")

    try:
        request = parse_request_head(head[:-4])
    except ProtocolError:
        writer.write(BAD_REQUEST_RESPONSE)
        raise

    if not request.key:
        writer.write(BAD_REQUEST_RESPONSE)
        raise ProtocolError("Missing Sec-WebSocket-Key header", ErrorCode.PROTOCOL_MISSING_KEY)

    writer.write(build_handshake_response(request.key))
    await writer.drain()
    return request
