from .events import TelemetryEvent, EventType, EventLevel
from .bus import EventBus, Subscription

__all__ = [
    "TelemetryEvent",
    "EventType",
    "EventLevel",
    "EventBus",
    "Subscription",
]
