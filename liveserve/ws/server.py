"""
liveserve/ws/server.py

Purpose:
    The live-reload WebSocket listener. Accepts TCP (or TLS) connections,
    negotiates the upgrade, keeps the connection in the registry while it
    is open and answers control frames.

Events (subscribe with on()):
    started, error, connectionOpened, connectionClosed, connectionError,
    frameError, broadcastResult
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Optional, Set

from pydantic import BaseModel

from ..base.config import ServerConfig
from ..errors import ErrorCode, ProtocolError
from ..observer import EventBus, EventLevel, EventType, Subscription, TelemetryEvent
from ..observer.bus import Subscriber
from ..utils.async_helpers import cancel_and_wait
from ..utils.ports import bind_available_port, display_host
from .frames import (
    CLOSE_NORMAL,
    CLOSE_PROTOCOL_ERROR,
    Frame,
    Opcode,
    encode_frame,
    read_frame,
)
from .handshake import negotiate
from .registry import BroadcastResult, Connection, ConnectionRegistry

logger = logging.getLogger(__name__)


class WebSocketStats(BaseModel):
    active_connections: int
    is_running: bool
    port: Optional[int] = None


class WebSocketServer:

    name = "WebSocketServer"

    def __init__(self, config: ServerConfig, ssl_context: Optional[ssl.SSLContext] = None):
        self.config = config
        self.ssl_context = ssl_context
        self.events = EventBus(self.name)
        self.registry = ConnectionRegistry(self.events, source=self.name)
        self.port: Optional[int] = None
        self.is_running = False
        self._server: Optional[asyncio.AbstractServer] = None
        self._handlers: Set[asyncio.Task] = set()

    # -- observer interface -------------------------------------------------

    def on(self, event_type: EventType | str, callback: Subscriber) -> Subscription:
        return self.events.subscribe(event_type, callback)

    def off(self, event_type: EventType | str, callback: Subscriber) -> None:
        self.events.unsubscribe(event_type, callback)

    def _emit(self, event_type: EventType, level: EventLevel = EventLevel.INFO, **payload) -> None:
        self.events.emit(TelemetryEvent(type=event_type, source=self.name, level=level, payload=payload))

    # -- lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        if self.is_running:
            return

        try:
            sock = bind_available_port(self.config.socket_port, self.config.host, "WebSocket port")
            self._server = await asyncio.start_server(self._handle_client, sock=sock, ssl=self.ssl_context)
        except Exception as e:
            self._emit(EventType.ERROR, EventLevel.ERROR, error=str(e))
            raise

        self.port = sock.getsockname()[1]
        self.is_running = True
        protocol = "wss" if self.ssl_context else "ws"
        logger.info(f"[WebSocket] Server started on {protocol}://{display_host(self.config.host)}:{self.port}")
        self._emit(EventType.STARTED, port=self.port)

    async def stop(self) -> None:
        """Stop accepting, close every connection, detach subscribers, then release the listener."""
        if not self.is_running:
            return
        self.is_running = False

        if self._server is not None:
            self._server.close()

        closed = await self.registry.close_all()
        # a handler for a connection accepted just before close() registers on its first step
        await asyncio.sleep(0)
        while self._handlers:
            for task in list(self._handlers):
                await cancel_and_wait(task)
                self._handlers.discard(task)
        self.events.clear()

        if self._server is not None:
            await self._server.wait_closed()
            self._server = None

        logger.info(f"[WebSocket] Server stopped ({len(closed)} connections closed)")

    # -- messaging ----------------------------------------------------------

    def broadcast(self, message: str) -> BroadcastResult:
        return self.registry.broadcast(message)

    def get_stats(self) -> WebSocketStats:
        return WebSocketStats(
            active_connections=len(self.registry),
            is_running=self.is_running,
            port=self.port,
        )

    # -- per-connection handling --------------------------------------------

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._handlers.add(task)
        peer = writer.get_extra_info("peername")

        try:
            try:
                await negotiate(reader, writer)
            except (ProtocolError, OSError) as e:
                logger.warning(f"[WebSocket] Handshake from {peer} rejected: {e}")
                return

            connection = Connection(writer, peer=str(peer))
            self.registry.add(connection)
            logger.debug(f"[WebSocket] Connection #{connection.id} opened from {peer}")
            self._emit(EventType.CONNECTION_OPENED,
                       connection_id=connection.id, socket_count=len(self.registry))

            try:
                await self._read_loop(connection, reader)
            finally:
                removed = self.registry.discard(connection)
                await connection.close()
                if removed:
                    self._emit(EventType.CONNECTION_CLOSED,
                               connection_id=connection.id, socket_count=len(self.registry))
        finally:
            # every exit, cancellation included, releases the transport
            writer.close()
            if task is not None:
                self._handlers.discard(task)

    async def _read_loop(self, connection: Connection, reader: asyncio.StreamReader) -> None:
        while connection.is_open:
            try:
                frame = await read_frame(reader)
            except asyncio.IncompleteReadError as e:
                if e.partial:
                    self._frame_error(connection, ProtocolError("Truncated frame at end of stream"))
                return
            except ProtocolError as e:
                self._frame_error(connection, e)
                await connection.close(e.details.get("close_code", CLOSE_PROTOCOL_ERROR), "protocol error")
                return
            except (ConnectionError, OSError) as e:
                logger.warning(f"[WebSocket] Connection #{connection.id} error: {e}")
                self._emit(EventType.CONNECTION_ERROR, EventLevel.WARNING,
                           connection_id=connection.id, error=str(e))
                return

            if not self._dispatch(connection, frame):
                await connection.close(self._close_reply_code(frame), "")
                return

    def _dispatch(self, connection: Connection, frame: Frame) -> bool:
        """React to one frame; returns False when the connection must close."""
        if not frame.masked:
            self._frame_error(connection, ProtocolError("Client frame is not masked",
                                                        ErrorCode.PROTOCOL_UNMASKED_FRAME))
            return False

        if frame.opcode == Opcode.CLOSE:
            logger.debug(f"[WebSocket] Close frame from #{connection.id} (code={frame.close_code})")
            return False
        if frame.opcode == Opcode.PING:
            try:
                connection.send(encode_frame(frame.payload, Opcode.PONG))
            except ConnectionError as e:
                logger.debug(f"[WebSocket] Pong to #{connection.id} not delivered: {e}")
                return False
        # TEXT, BINARY, CONTINUATION and PONG carry nothing the server acts on
        return True

    @staticmethod
    def _close_reply_code(frame: Frame) -> int:
        if not frame.masked:
            return CLOSE_PROTOCOL_ERROR
        return frame.close_code or CLOSE_NORMAL

    def _frame_error(self, connection: Connection, error: ProtocolError) -> None:
        logger.warning(f"[WebSocket] Frame error on #{connection.id}: {error.message}")
        self._emit(EventType.FRAME_ERROR, EventLevel.WARNING,
                   connection_id=connection.id, error=error.message, code=error.code.value)
