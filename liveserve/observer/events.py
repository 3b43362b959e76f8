"""
liveserve/observer/events.py

Purpose:
    The signals components publish about their lifecycle, their connections
    and the files they watch. Events are immutable once emitted.
"""

from __future__ import annotations

import itertools
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

_event_ids = itertools.count(1)


class EventLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class EventType(str, Enum):
    # Lifecycle (every component)
    STARTED = "started"
    STOPPED = "stopped"
    ERROR = "error"

    # WebSocket server
    CONNECTION_OPENED = "connectionOpened"    # payload: {connection_id, socket_count}
    CONNECTION_CLOSED = "connectionClosed"    # payload: {connection_id, socket_count}
    CONNECTION_ERROR = "connectionError"      # payload: {connection_id, error}
    FRAME_ERROR = "frameError"                # payload: {connection_id, error}
    BROADCAST_RESULT = "broadcastResult"      # payload: {message, success_count, error_count, remaining_connections}

    # Watcher
    CHANGED = "changed"                       # payload: {filename, kind, timestamp, full_path}


@dataclass(frozen=True)
class TelemetryEvent:
    type: EventType
    source: str         # component name, e.g. "WebSocketServer"
    level: EventLevel = EventLevel.INFO
    payload: Dict[str, Any] = field(default_factory=dict)

    seq: int = field(default_factory=lambda: next(_event_ids))
    timestamp: float = field(default_factory=time.time)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "source": self.source,
            "level": self.level.value,
            "payload": self.payload,
            "seq": self.seq,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.as_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TelemetryEvent:
        return cls(
            type=EventType(data["type"]),
            source=data["source"],
            level=EventLevel(data.get("level", EventLevel.INFO.value)),
            payload=dict(data.get("payload", {})),
            seq=data["seq"],
            timestamp=data["timestamp"],
        )

    def __str__(self) -> str:
        return f"{self.source}.{self.type.value}#{self.seq} {self.payload}"
