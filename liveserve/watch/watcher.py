"""
File Change Watcher (liveserve/watch/watcher.py)

PURPOSE:
Observes one root directory tree and turns bursts of filesystem events into
a single "changed" signal, which the orchestrator converts into a browser
reload.

FEATURES:
- Recursive native notifications via watchfiles (stat polling when
  force_polling is set or the platform has no native backend)
- Noise filter for hidden, temp, swap and VCS paths
- 100 ms single-timer debounce, so an editor's delete+create+rename save
  sequence reloads once
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Set, Tuple

from watchfiles import Change, awatch

from ..errors import ConfigError, ErrorCode
from ..observer import EventBus, EventLevel, EventType, Subscription, TelemetryEvent
from ..observer.bus import Subscriber
from ..utils.async_helpers import cancel_and_wait, create_safe_task
from .debounce import Debouncer
from .filters import should_ignore

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 100

# watchfiles batching; kept well below the debounce window
RAW_DEBOUNCE_MS = 50
RAW_STEP_MS = 10

CHANGE_KINDS = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


@dataclass(frozen=True)
class WatchEvent:
    filename: str        # relative to the watched root
    kind: str            # created / modified / deleted
    timestamp: float
    full_path: str

    def as_payload(self) -> dict:
        return {
            "filename": self.filename,
            "kind": self.kind,
            "timestamp": datetime.fromtimestamp(self.timestamp).isoformat(),
            "full_path": self.full_path,
        }


class FileWatcher:
    """
    Watches a directory tree and emits "changed" once per quiet period.
    """

    name = "Watcher"

    def __init__(self, root: str | Path, debounce_ms: int = DEFAULT_DEBOUNCE_MS,
                 force_polling: bool = False):
        """
        Args:
            root: Directory to watch recursively
            debounce_ms: Quiet window before a burst becomes one signal
            force_polling: Use stat polling instead of native notifications
        """
        self.root = Path(root)
        self.debounce_ms = debounce_ms
        self.force_polling = force_polling
        self.events = EventBus(self.name)
        self.is_running = False
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._debouncer: Debouncer[WatchEvent] = Debouncer(debounce_ms / 1000.0, self._on_quiet)

    def on(self, event_type: EventType | str, callback: Subscriber) -> Subscription:
        return self.events.subscribe(event_type, callback)

    def off(self, event_type: EventType | str, callback: Subscriber) -> None:
        self.events.unsubscribe(event_type, callback)

    async def start(self) -> None:
        """
        Start watching.

        Raises:
            ConfigError: the root is missing, unreadable or not a directory
        """
        if self.is_running:
            logger.warning("[Watcher] Already running")
            return

        try:
            if not self.root.exists():
                raise ConfigError(f"Watch root does not exist: {self.root}", ErrorCode.SERVER_WATCH_FAILED)
            if not self.root.is_dir():
                raise ConfigError(f"{self.root} is not a directory", ErrorCode.SERVER_WATCH_FAILED)
            if not os.access(self.root, os.R_OK | os.X_OK):
                raise ConfigError(f"Watch root is not readable: {self.root}", ErrorCode.SERVER_WATCH_FAILED)
        except ConfigError as e:
            logger.error(f"[Watcher] Failed to start file watcher: {e.message}")
            self._emit(EventType.ERROR, EventLevel.ERROR, error=e.message)
            raise

        self.root = self.root.resolve()
        self._stop_event = asyncio.Event()
        self.is_running = True
        self._task = create_safe_task(self._watch_loop(), name=f"watcher:{self.root}")
        logger.info(f"[Watcher] Watching {self.root} for changes...")
        self._emit(EventType.STARTED, root=str(self.root))

    async def stop(self) -> None:
        """Cancel the pending timer, release the watch handle, detach subscribers."""
        if not self.is_running:
            return
        self.is_running = False

        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=1.0)
            except asyncio.TimeoutError:
                await cancel_and_wait(self._task)
            except Exception as e:
                logger.debug(f"[Watcher] Watch loop ended with error: {e}")
            self._task = None
        # after the loop has ended, so a last batch cannot re-arm the timer
        self._debouncer.cancel()
        self.events.clear()
        logger.info("[Watcher] Stopped")

    def handle_changes(self, changes: Iterable[Tuple[Change, str]]) -> int:
        """Feed one batch of raw changes; returns how many passed the filter."""
        accepted = 0
        for change, path in changes:
            event = self._to_event(change, path)
            if event is None or should_ignore(event.filename):
                continue
            accepted += 1
            self._debouncer.trigger(event)
        return accepted

    def _to_event(self, change: Change, path: str) -> Optional[WatchEvent]:
        try:
            relative = os.path.relpath(path, self.root)
        except ValueError:
            return None
        if relative == os.pardir or relative.startswith(os.pardir + os.sep):
            return None
        return WatchEvent(
            filename=relative,
            kind=CHANGE_KINDS.get(change, "modified"),
            timestamp=time.time(),
            full_path=path,
        )

    async def _watch_loop(self) -> None:
        try:
            async for changes in awatch(
                self.root,
                watch_filter=None,
                debounce=RAW_DEBOUNCE_MS,
                step=RAW_STEP_MS,
                stop_event=self._stop_event,
                force_polling=self.force_polling,
                recursive=True,
            ):
                self.handle_changes(changes)
        except asyncio.CancelledError:
            logger.debug("[Watcher] Watch loop cancelled")
            raise
        except Exception as e:
            logger.error(f"[Watcher] File watcher error: {e}")
            self._emit(EventType.ERROR, EventLevel.ERROR, error=str(e))

    def _on_quiet(self, event: WatchEvent) -> None:
        logger.info(f"[Watcher] File changed: {event.filename} [{event.kind}]")
        self._emit(EventType.CHANGED, **event.as_payload())

    def _emit(self, event_type: EventType, level: EventLevel = EventLevel.INFO, **payload) -> None:
        self.events.emit(TelemetryEvent(type=event_type, source=self.name, level=level, payload=payload))


def watched_roots(roots: Iterable[Path]) -> Set[Path]:
    """Drop roots nested inside another root so no tree is watched twice."""
    resolved = sorted({Path(r).resolve() for r in roots}, key=lambda p: len(p.parts))
    kept: Set[Path] = set()
    for root in resolved:
        if not any(parent in kept for parent in root.parents):
            kept.add(root)
    return kept
