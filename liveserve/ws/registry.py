"""
liveserve/ws/registry.py

Purpose:
    Tracks the open live-reload connections and fans messages out to them.

Guarantees:
    - A failing peer never aborts delivery to the others: the write error is
      caught, that connection is dropped, and the sweep continues.
    - Writes are queued on each transport synchronously, in call order, so
      message N always precedes message N+1 on the same connection.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Union

from ..observer import EventBus, EventLevel, EventType, TelemetryEvent
from .frames import CLOSE_GOING_AWAY, Opcode, encode_close, encode_frame

logger = logging.getLogger(__name__)

_connection_ids = itertools.count(1)


class ConnectionState(str, Enum):
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


class Connection:
    """An upgraded WebSocket transport."""

    def __init__(self, writer: asyncio.StreamWriter, peer: Optional[str] = None):
        self.id = next(_connection_ids)
        self.writer = writer
        self.peer = peer or str(writer.get_extra_info("peername"))
        self.state = ConnectionState.OPEN

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN and not self.writer.is_closing()

    def send(self, data: bytes) -> None:
        """Queue an encoded frame. Raises ConnectionResetError when the transport is gone."""
        if not self.is_open:
            raise ConnectionResetError(f"connection {self.id} is {self.state.value.lower()}")
        self.writer.write(data)

    async def close(self, code: int = CLOSE_GOING_AWAY, reason: str = "") -> None:
        """Send a CLOSE frame if still possible and shut the transport. Safe to call twice."""
        if self.state == ConnectionState.CLOSED:
            return
        if self.state == ConnectionState.OPEN and not self.writer.is_closing():
            self.state = ConnectionState.CLOSING
            try:
                self.writer.write(encode_close(code, reason))
            except (ConnectionError, RuntimeError) as e:
                logger.debug(f"[WebSocket] Close frame not delivered to #{self.id}: {e}")
        self.state = ConnectionState.CLOSING
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"[WebSocket] Transport #{self.id} closed with error: {e}")
        self.state = ConnectionState.CLOSED

    def __repr__(self) -> str:
        return f"<Connection #{self.id} {self.peer} {self.state.value}>"


@dataclass(frozen=True)
class BroadcastResult:
    message: str
    success_count: int
    error_count: int
    remaining_connections: int

    def as_payload(self) -> Dict[str, Union[str, int]]:
        return {
            "message": self.message,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "remaining_connections": self.remaining_connections,
        }


class ConnectionRegistry:
    """
    The set of OPEN connections owned by one WebSocket server.

    All mutation happens on the event loop thread, so a handler never
    observes a half-updated registry.
    """

    def __init__(self, events: Optional[EventBus] = None, source: str = "WebSocketServer"):
        self.events = events or EventBus("registry")
        self.source = source
        self._connections: Dict[int, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._connections.values()))

    def __contains__(self, connection: Connection) -> bool:
        return connection.id in self._connections

    def add(self, connection: Connection) -> None:
        self._connections[connection.id] = connection

    def discard(self, connection: Connection) -> bool:
        """Remove connection; returns False if it was not tracked."""
        return self._connections.pop(connection.id, None) is not None

    def broadcast(self, message: str) -> BroadcastResult:
        """Send one TEXT frame to every tracked connection."""
        frame = encode_frame(message, Opcode.TEXT)
        success_count = 0
        error_count = 0

        for connection in list(self._connections.values()):
            if connection.state != ConnectionState.OPEN:
                self.discard(connection)
                error_count += 1
                continue
            try:
                connection.send(frame)
                success_count += 1
            except Exception as e:
                logger.warning(f"[WebSocket] Broadcast to #{connection.id} failed: {e}")
                self.discard(connection)
                error_count += 1

        result = BroadcastResult(
            message=message,
            success_count=success_count,
            error_count=error_count,
            remaining_connections=len(self._connections),
        )
        logger.debug(
            f"[WebSocket] Broadcast {message!r}: {success_count} delivered, "
            f"{error_count} failed, {result.remaining_connections} remaining"
        )
        self.events.emit(TelemetryEvent(
            type=EventType.BROADCAST_RESULT,
            source=self.source,
            level=EventLevel.WARNING if error_count else EventLevel.INFO,
            payload=result.as_payload(),
        ))
        return result

    async def close_all(self) -> List[Connection]:
        """Close and forget every connection; returns what was closed."""
        connections = list(self._connections.values())
        self._connections.clear()
        for connection in connections:
            await connection.close()
        return connections
