"""
liveserve/watch/debounce.py

Single-timer debounce: every trigger cancels the pending timer and arms a
new one, so a burst only fires once its last event has been followed by a
full quiet window. The fired callback receives the last event of the
burst; earlier events are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):

    def __init__(self, delay: float, callback: Callable[[T], None],
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Args:
            delay: quiet window in seconds
            callback: called with the most recent event when the window closes
            loop: event loop used for timers (defaults to the running loop)
        """
        self.delay = delay
        self.callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._last: Optional[T] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, event: T) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._last = event
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._last = None

    def _fire(self) -> None:
        event = self._last
        self._handle = None
        self._last = None
        if event is None:
            return
        try:
            self.callback(event)
        except Exception as e:
            logger.error(f"[Debouncer] Callback failed: {e}", exc_info=True)
