"""
liveserve/web/app.py

Purpose:
    The HTTP side of the dev server: a FastAPI application that serves files
    from the RootSet and, while live reload is active, injects the reload
    client into HTML documents.

HTTP surface:
    GET      any path -> file, index.html, listing, 403, 404 or 500
    OPTIONS  200 with CORS headers when CORS is enabled, 405 otherwise
    other    405 (HEAD included)
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, Response
from starlette.concurrency import run_in_threadpool

from ..errors import (
    AccessDeniedError,
    FileReadError,
    LiveServeError,
    NotFoundError,
    handle_error,
)
from .inject import inject_reload_script
from .listing import collect_items, render_listing
from .mime import get_mime_type, is_html
from .pages import render_status_page
from .resolver import ResolvedFile, RootSet, resolve

logger = logging.getLogger(__name__)

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

INDEX_FILE = "index.html"


class StaticFileService:
    """Resolves request paths and produces responses. Framework-agnostic apart from the Response types."""

    def __init__(self, roots: RootSet, index: bool = True, cors: bool = False):
        self.roots = roots
        self.index = index
        self.cors = cors
        self.reload_script: Optional[str] = None

    # -- live reload --------------------------------------------------------

    @property
    def live_reload(self) -> bool:
        return self.reload_script is not None

    def enable_live_reload(self, script: str) -> None:
        self.reload_script = script

    def disable_live_reload(self) -> None:
        self.reload_script = None

    # -- headers ------------------------------------------------------------

    def headers(self, cache_control: str = "no-cache") -> Dict[str, str]:
        headers = {"Cache-Control": cache_control}
        if self.cors:
            headers.update(CORS_HEADERS)
        return headers

    def error_response(self, status_code: int) -> HTMLResponse:
        return HTMLResponse(render_status_page(status_code), status_code=status_code, headers=self.headers())

    # -- request handling ---------------------------------------------------

    async def handle(self, url_path: str) -> Response:
        """
        Serve url_path (URL-decoded, without query string).

        Raises:
            NotFoundError: no root has the path
            AccessDeniedError: directory without index.html, listings disabled
            FileReadError: the file or directory could not be read
        """
        info = resolve(self.roots, url_path)
        if info is None:
            logger.info(f"[HTTP] {url_path} [404] - File not found in any root")
            raise NotFoundError(url_path)

        if info.is_dir:
            return await self._serve_directory(url_path, info)

        response = await self.serve_file(str(info.path))
        logger.info(f"[HTTP] {url_path} [200] from {info.origin_root}")
        return response

    async def _serve_directory(self, url_path: str, info: ResolvedFile) -> Response:
        index_path = os.path.join(info.path, INDEX_FILE)
        if os.path.isfile(index_path):
            response = await self.serve_file(index_path)
            logger.info(f"[HTTP] {url_path} [200] - {INDEX_FILE} from {info.origin_root}")
            return response

        if not self.index:
            logger.info(f"[HTTP] {url_path} [403] - Directory listing disabled")
            raise AccessDeniedError(url_path)

        try:
            items = await run_in_threadpool(collect_items, str(info.path), url_path)
        except OSError as e:
            logger.info(f"[HTTP] {url_path} [500] - Failed to generate directory listing: {e}")
            raise FileReadError(url_path, str(e))

        document = render_listing(url_path, items, info.origin_root.name)
        if self.live_reload:
            document = inject_reload_script(document, self.reload_script)
        logger.info(f"[HTTP] {url_path} [200] - directory listing from {info.origin_root}")
        return HTMLResponse(document, headers=self.headers())

    async def serve_file(self, file_path: str) -> Response:
        try:
            content = await run_in_threadpool(_read_bytes, file_path)
        except OSError as e:
            logger.error(f"[HTTP] Error serving file {file_path}: {e}")
            raise FileReadError(file_path, str(e))

        if self.live_reload and is_html(file_path):
            document = content.decode("utf-8", errors="surrogateescape")
            document = inject_reload_script(document, self.reload_script)
            content = document.encode("utf-8", errors="surrogateescape")

        cache_control = "no-cache" if self.live_reload else "public, max-age=3600"
        return Response(
            content=content,
            media_type=get_mime_type(file_path),
            headers=self.headers(cache_control),
        )

    def preflight(self) -> Response:
        return Response(content=b"", status_code=200, media_type="text/plain", headers=self.headers())


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as fh:
        return fh.read()


def create_app(service: StaticFileService) -> FastAPI:
    app = FastAPI(
        title="liveserve",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.files = service

    @app.exception_handler(LiveServeError)
    async def liveserve_error_handler(request: Request, exc: LiveServeError):
        if exc.http_status >= 500:
            logger.error(f"[HTTP] {exc.code.value}: {exc.message}", extra={"details": exc.details})
        return service.error_response(exc.http_status)

    @app.api_route("/{full_path:path}", methods=["GET", "OPTIONS"])
    async def serve(request: Request, full_path: str):
        if request.method == "OPTIONS":
            if service.cors:
                return service.preflight()
            return Response(status_code=405, headers={"Allow": "GET"})

        url_path = request.scope.get("path") or "/"
        try:
            return await service.handle(url_path)
        except LiveServeError:
            raise
        except Exception as e:
            raise handle_error(e, context=f"while serving {url_path}")

    return app
