"""
liveserve/observer/bus.py

Purpose:
    Publish-subscribe channel owned by a single component.
    Each server, watcher and orchestrator holds its own EventBus, so
    subscribers of one component never see another component's traffic.

Guarantees:
    - Async Detection: coroutine subscribers are scheduled as tasks, sync ones run inline.
    - Exception Isolation: failures in listeners never propagate to the emitter.
    - Deterministic Unsubscribe: subscribe() returns a Subscription whose
      cancel() removes exactly that registration.
"""

from __future__ import annotations
import logging
import inspect
from typing import Callable, List, Dict, Union, Awaitable
from collections import defaultdict

from .events import TelemetryEvent, EventType
from ..utils.async_helpers import create_safe_task

log = logging.getLogger("liveserve.observer.bus")

# Subscriber can be a sync function or an async coroutine
Subscriber = Union[
    Callable[[TelemetryEvent], None],
    Callable[[TelemetryEvent], Awaitable[None]]
]

WILDCARD = "*"


class Subscription:
    """Handle returned by EventBus.subscribe()."""

    def __init__(self, bus: EventBus, key: str, callback: Subscriber):
        self._bus = bus
        self.key = key
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._bus._remove(self)
            self.active = False


class EventBus:

    def __init__(self, name: str = "bus"):
        self.name = name
        # Subscribers map: EventType value -> List[Subscription]
        self._subscribers: Dict[str, List[Subscription]] = defaultdict(list)

    def subscribe(self, event_type: EventType | str, callback: Subscriber) -> Subscription:
        """
        Register a callback for a specific event type.
        Use "*" for all events.
        """
        key = event_type.value if isinstance(event_type, EventType) else event_type
        sub = Subscription(self, key, callback)
        self._subscribers[key].append(sub)
        func_name = getattr(callback, "__name__", str(callback))
        log.debug(f"[{self.name}] Subscribed {func_name} to {key}")
        return sub

    def unsubscribe(self, event_type: EventType | str, callback: Subscriber) -> None:
        """Remove every registration of callback for event_type."""
        key = event_type.value if isinstance(event_type, EventType) else event_type
        for sub in list(self._subscribers.get(key, [])):
            if sub.callback == callback:
                sub.cancel()

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.key)
        if subs and sub in subs:
            subs.remove(sub)

    def emit(self, event: TelemetryEvent) -> None:
        """
        Publish an event to all interested subscribers.
        Specific subscribers run before wildcard ones, each in subscription order.
        """
        specific = list(self._subscribers.get(event.type.value, []))
        global_subs = list(self._subscribers.get(WILDCARD, []))

        for sub in specific + global_subs:
            if sub.active:
                self._invoke(sub.callback, event)

    def _invoke(self, callback: Subscriber, event: TelemetryEvent) -> None:
        func_name = getattr(callback, "__name__", str(callback))
        try:
            if inspect.iscoroutinefunction(callback):
                create_safe_task(callback(event), name=f"{self.name}:{func_name}")
            else:
                callback(event)
        except Exception as e:
            log.error(f"[{self.name}] Subscriber Error ({func_name}): {e}", exc_info=True)

    def subscriber_count(self, event_type: EventType | str | None = None) -> int:
        if event_type is None:
            return sum(len(subs) for subs in self._subscribers.values())
        key = event_type.value if isinstance(event_type, EventType) else event_type
        return len(self._subscribers.get(key, []))

    def clear(self) -> None:
        """Detach every subscriber."""
        for subs in self._subscribers.values():
            for sub in subs:
                sub.active = False
        self._subscribers.clear()
