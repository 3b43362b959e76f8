"""
WebServer Orchestrator (liveserve/server/orchestrator.py)

PURPOSE:
Owns the whole dev server: the HTTP listener that serves files from the
RootSet, and, when watching is on, the live-reload pair (one FileWatcher
per watched tree plus the WebSocket listener the browsers connect to).

LIFECYCLE:
    start: HTTP listener -> WebSocket listener -> watchers
    stop:  watchers -> WebSocket listener -> HTTP listener

Live reload is optional at runtime: if the WebSocket listener or a watcher
fails to start, the failure is reported, the live-reload pieces are torn
down again and files keep being served without the reload client.

EVENTS (subscribe with on()):
    started, stopped, error, changed, and everything the WebSocket listener
    reports (connectionOpened, connectionClosed, connectionError, frameError,
    broadcastResult), forwarded with their original source.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import BaseModel

from ..base.config import ServerConfig, get_config
from ..errors import ConfigError, LiveServeError
from ..observer import EventBus, EventLevel, EventType, Subscription, TelemetryEvent
from ..observer.bus import WILDCARD, Subscriber
from ..watch import FileWatcher, watched_roots
from ..web.app import StaticFileService
from ..web.inject import build_reload_script
from ..web.resolver import RootSet, build_root_set
from ..ws import BroadcastResult, WebSocketServer, WebSocketStats
from .component import Component
from .http import HttpServer
from .tls import load_ssl_context

logger = logging.getLogger(__name__)

RELOAD_MESSAGE = "reload"

MAX_PORT = 65535


class ServerStats(BaseModel):
    is_running: bool
    http_port: Optional[int] = None
    ws_port: Optional[int] = None
    watch_enabled: bool
    ws_stats: Optional[WebSocketStats] = None


def validate_config(config: ServerConfig) -> None:
    """
    Reject settings no server could run with.

    Raises:
        ConfigError: the first invalid value found
    """
    if not config.roots:
        raise ConfigError("At least one root directory is required")
    if not config.host:
        raise ConfigError("Host must not be empty")
    for field_name in ("port", "socket_port"):
        value = getattr(config, field_name)
        if not 0 <= value <= MAX_PORT:
            raise ConfigError(f"{field_name} out of range: {value}", details={field_name: value})
    if config.debounce_ms < 0:
        raise ConfigError(f"debounce_ms must not be negative: {config.debounce_ms}")
    if config.reconnect_attempts < 0:
        raise ConfigError(f"reconnect_attempts must not be negative: {config.reconnect_attempts}")
    if config.reconnect_base_ms <= 0 or config.reconnect_max_ms < config.reconnect_base_ms:
        raise ConfigError(
            "reconnect delays must satisfy 0 < reconnect_base_ms <= reconnect_max_ms",
            details={"base": config.reconnect_base_ms, "max": config.reconnect_max_ms},
        )


class WebServer:
    """
    Static file server with optional live reload.

    Construction validates the config, loads TLS material and builds the
    RootSet; any problem there raises ConfigError before a socket is opened.
    """

    name = "WebServer"

    def __init__(self, config: Optional[ServerConfig] = None):
        config = config or get_config().server
        validate_config(config)
        self.config = config

        self.ssl_context = load_ssl_context(config.cert, config.key) if config.https else None
        self.roots: RootSet = build_root_set(config.roots, config.enforce_safe_roots)

        self.files = StaticFileService(self.roots, index=config.index, cors=config.cors)
        self.http = HttpServer(config, self.files, self.ssl_context)
        self.websocket: Optional[WebSocketServer] = None
        self.watchers: List[FileWatcher] = []

        self.events = EventBus(self.name)
        self.is_running = False
        self._started: List[Component] = []
        self._subscriptions: List[Subscription] = []

    # -- observer interface -------------------------------------------------

    def on(self, event_type: EventType | str, callback: Subscriber) -> Subscription:
        return self.events.subscribe(event_type, callback)

    def off(self, event_type: EventType | str, callback: Subscriber) -> None:
        self.events.unsubscribe(event_type, callback)

    def _emit(self, event_type: EventType, level: EventLevel = EventLevel.INFO, **payload) -> None:
        self.events.emit(TelemetryEvent(type=event_type, source=self.name, level=level, payload=payload))

    def _forward(self, event: TelemetryEvent) -> None:
        logger.debug(f"[WebServer] {event}")
        self.events.emit(event)

    # -- lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """
        Start serving.

        Raises:
            LiveServeError: the HTTP listener could not start (fatal)
        """
        if self.is_running:
            return

        try:
            await self.http.start()
        except LiveServeError as e:
            logger.error(f"[WebServer] Failed to start HTTP server: {e.message}")
            self._emit(EventType.ERROR, EventLevel.ERROR, error=e.message, code=e.code.value)
            raise
        self._started.append(self.http)
        self.is_running = True

        if self.config.watch:
            await self._start_live_reload()

        self._log_banner()
        self._emit(
            EventType.STARTED,
            http_port=self.http.port,
            ws_port=self.websocket.port if self.websocket else None,
            roots=[str(r) for r in self.roots],
        )

    async def _start_live_reload(self) -> None:
        websocket = WebSocketServer(self.config, self.ssl_context)
        self._subscriptions.append(websocket.on(WILDCARD, self._forward))
        try:
            await websocket.start()
            self.websocket = websocket
            self._started.append(websocket)

            for root in sorted(watched_roots(self.roots)):
                watcher = FileWatcher(root, self.config.debounce_ms, self.config.force_polling)
                self._subscriptions.append(watcher.on(EventType.CHANGED, self._on_changed))
                self._subscriptions.append(watcher.on(EventType.ERROR, self._forward))
                await watcher.start()
                self.watchers.append(watcher)
                self._started.append(watcher)
        except (LiveServeError, OSError) as e:
            message = e.message if isinstance(e, LiveServeError) else str(e)
            logger.error(f"[WebServer] Live reload disabled: {message}")
            self._emit(EventType.ERROR, EventLevel.ERROR, error=message, feature="live-reload")
            await self._stop_live_reload()
            return

        self.files.enable_live_reload(build_reload_script(
            websocket.port,
            secure=self.ssl_context is not None,
            attempts=self.config.reconnect_attempts,
            base_ms=self.config.reconnect_base_ms,
            max_ms=self.config.reconnect_max_ms,
        ))

    async def _stop_live_reload(self) -> None:
        self.files.disable_live_reload()
        for watcher in reversed(self.watchers):
            await watcher.stop()
        self.watchers.clear()
        if self.websocket is not None:
            await self.websocket.stop()
            self.websocket = None
        self._started = [c for c in self._started if c is self.http]

    async def stop(self) -> None:
        """Stop every component in reverse start order. A second call does nothing."""
        if not self.is_running:
            return
        self.is_running = False

        self.files.disable_live_reload()
        for component in reversed(self._started):
            try:
                await component.stop()
            except Exception as e:
                logger.error(f"[WebServer] Error stopping {type(component).__name__}: {e}")
        self._started.clear()
        self.watchers.clear()
        self.websocket = None

        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

        logger.info("[WebServer] Server stopped")
        self._emit(EventType.STOPPED)
        self.events.clear()

    # -- live reload --------------------------------------------------------

    def _on_changed(self, event: TelemetryEvent) -> None:
        self._forward(event)
        self.reload_clients()

    def reload_clients(self) -> Optional[BroadcastResult]:
        """Tell every connected browser to reload. None when live reload is off."""
        if self.websocket is None or not self.websocket.is_running:
            return None
        result = self.websocket.broadcast(RELOAD_MESSAGE)
        logger.info(
            f"[WebServer] Reload sent to {result.success_count} client(s)"
            + (f", {result.error_count} failed" if result.error_count else "")
        )
        return result

    # -- reporting ----------------------------------------------------------

    def get_stats(self) -> ServerStats:
        return ServerStats(
            is_running=self.is_running,
            http_port=self.http.port,
            ws_port=self.websocket.port if self.websocket else None,
            watch_enabled=self.websocket is not None,
            ws_stats=self.websocket.get_stats() if self.websocket else None,
        )

    def _log_banner(self) -> None:
        logger.info(f"[WebServer] Serving {len(self.roots)} root(s):")
        for index, root in enumerate(self.roots, 1):
            logger.info(f"[WebServer]   {index}. {root}")
        logger.info(f"[WebServer] Local:   {self.http.scheme}://localhost:{self.http.port}")
        if self.config.host in ("0.0.0.0", "::"):
            logger.info(f"[WebServer] Network: {self.http.url}")
        if self.websocket is not None:
            logger.info(f"[WebServer] Live reload enabled, watching {len(self.watchers)} tree(s)")
        logger.info(
            f"[WebServer] Directory listing {'enabled' if self.config.index else 'disabled'}, "
            f"CORS {'enabled' if self.config.cors else 'disabled'}"
        )
