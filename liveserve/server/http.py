"""
liveserve/server/http.py

Purpose:
    The HTTP listener. Runs the FastAPI app on an embedded uvicorn server
    inside the caller's event loop, on a socket bound ahead of time so the
    port fallback and the listener agree on the port.

Notes:
    - uvicorn's own signal handling is switched off; shutdown is driven by
      stop(), which the hosting program calls.
    - The access log is off; StaticFileService logs each request itself.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import ssl
from typing import Iterator, Optional

import uvicorn

from ..base.config import ServerConfig
from ..errors import ErrorCode, LiveServeError
from ..utils.async_helpers import cancel_and_wait
from ..utils.ports import bind_available_port, display_host
from ..web.app import StaticFileService, create_app

logger = logging.getLogger(__name__)

STARTUP_POLL_INTERVAL = 0.01
SHUTDOWN_TIMEOUT = 5.0


class _EmbeddedServer(uvicorn.Server):
    """uvicorn.Server that leaves process signals to the host program."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class HttpServer:

    name = "HttpServer"

    def __init__(self, config: ServerConfig, files: StaticFileService,
                 ssl_context: Optional[ssl.SSLContext] = None):
        self.config = config
        self.files = files
        self.ssl_context = ssl_context
        self.app = create_app(files)
        self.port: Optional[int] = None
        self.is_running = False
        self._server: Optional[_EmbeddedServer] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def scheme(self) -> str:
        return "https" if self.ssl_context else "http"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{display_host(self.config.host)}:{self.port}"

    async def handle(self, url_path: str):
        return await self.files.handle(url_path)

    async def start(self) -> None:
        """
        Bind and serve until stop().

        Raises:
            ConfigError: no port could be bound
            LiveServeError: uvicorn exited during startup
        """
        if self.is_running:
            return

        sock = bind_available_port(self.config.port, self.config.host, "Port")
        self.port = sock.getsockname()[1]

        uv_config = uvicorn.Config(
            self.app,
            log_config=None,
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=1,
        )
        uv_config.load()
        # uvicorn builds its context from file paths; use the shared one instead
        uv_config.ssl = self.ssl_context

        self._server = _EmbeddedServer(uv_config)
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]), name="http-server")

        while not self._server.started:
            if self._task.done():
                sock.close()
                error = self._task.exception() if not self._task.cancelled() else None
                self._server = None
                self._task = None
                raise LiveServeError(
                    ErrorCode.SERVER_START_FAILED,
                    f"HTTP server exited during startup: {error}",
                    details={"port": self.port},
                )
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        self.is_running = True
        logger.info(f"[HTTP] Listening on {self.url}")

    async def stop(self) -> None:
        if not self.is_running:
            return
        self.is_running = False

        if self._server is not None:
            self._server.should_exit = True
        if self._task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=SHUTDOWN_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("[HTTP] Graceful shutdown timed out, cancelling")
                await cancel_and_wait(self._task)
            except Exception as e:
                logger.error(f"[HTTP] Server task ended with error: {e}")
        self._server = None
        self._task = None
        logger.info("[HTTP] Server stopped")
