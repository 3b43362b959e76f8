"""
liveserve/server/component.py

Purpose:
    The lifecycle interface shared by every long-running piece of the server
    (HTTP listener, WebSocket listener, file watcher) and the request-handling
    interface the HTTP listener delegates to.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from starlette.responses import Response


@runtime_checkable
class Component(Protocol):
    """
    Something the orchestrator starts and stops.
    Implementations keep their own state; nothing is inherited.
    """

    is_running: bool

    async def start(self) -> None:
        """Acquire resources. Raises on failure, leaving nothing half-open."""
        ...

    async def stop(self) -> None:
        """Release resources. A second call is a no-op."""
        ...


@runtime_checkable
class RequestHandler(Protocol):

    async def handle(self, url_path: str) -> Response:
        ...
