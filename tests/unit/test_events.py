"""Per-component event bus and the error taxonomy."""

import asyncio
import json

import pytest

from liveserve.errors import (
    AccessDeniedError,
    ErrorCode,
    FileReadError,
    LiveServeError,
    NotFoundError,
    handle_error,
)
from liveserve.observer import EventBus, EventType, TelemetryEvent
from liveserve.observer.bus import WILDCARD


def make_event(event_type=EventType.CHANGED, **payload):
    return TelemetryEvent(type=event_type, source="test", payload=payload)


def test_subscription_cancel_is_deterministic():
    bus = EventBus("test")
    received = []
    subscription = bus.subscribe(EventType.CHANGED, received.append)

    bus.emit(make_event(filename="a"))
    subscription.cancel()
    subscription.cancel()
    bus.emit(make_event(filename="b"))

    assert [e.payload["filename"] for e in received] == ["a"]
    assert not subscription.active
    assert bus.subscriber_count(EventType.CHANGED) == 0


def test_specific_before_wildcard():
    bus = EventBus("test")
    order = []
    bus.subscribe(WILDCARD, lambda e: order.append("wildcard"))
    bus.subscribe(EventType.STARTED, lambda e: order.append("specific"))

    bus.emit(make_event(EventType.STARTED))
    bus.emit(make_event(EventType.STOPPED))

    assert order == ["specific", "wildcard", "wildcard"]


def test_string_event_names():
    bus = EventBus("test")
    received = []
    bus.subscribe("connectionOpened", received.append)
    bus.emit(make_event(EventType.CONNECTION_OPENED, socket_count=1))
    assert received[0].payload == {"socket_count": 1}


def test_failing_subscriber_does_not_block_others():
    bus = EventBus("test")
    received = []

    def broken(event):
        raise ValueError("listener bug")

    bus.subscribe(EventType.ERROR, broken)
    bus.subscribe(EventType.ERROR, received.append)
    bus.emit(make_event(EventType.ERROR))

    assert len(received) == 1


def test_unsubscribe_and_clear():
    bus = EventBus("test")
    received = []
    bus.subscribe(EventType.CHANGED, received.append)
    bus.subscribe(EventType.STARTED, received.append)

    bus.unsubscribe(EventType.CHANGED, received.append)
    assert bus.subscriber_count() == 1

    bus.clear()
    bus.emit(make_event(EventType.STARTED))
    assert received == []


@pytest.mark.asyncio
async def test_async_subscribers_are_scheduled():
    bus = EventBus("test")
    done = asyncio.Event()

    async def listener(event):
        done.set()

    bus.subscribe(EventType.CHANGED, listener)
    bus.emit(make_event())
    await asyncio.wait_for(done.wait(), timeout=1.0)


def test_event_serialization():
    event = make_event(filename="index.html")
    data = json.loads(event.to_json())
    assert data["type"] == "changed"
    assert data["payload"] == {"filename": "index.html"}
    assert TelemetryEvent.from_dict(data) == event
    assert make_event().seq > event.seq


def test_error_status_mapping():
    assert NotFoundError("/x").http_status == 404
    assert AccessDeniedError("/dir").http_status == 403
    assert FileReadError("/x", "EIO").http_status == 500
    assert NotFoundError("/x").to_dict()["code"] == ErrorCode.FILE_NOT_FOUND.value


def test_handle_error_wraps_unknown_exceptions():
    wrapped = handle_error(RuntimeError("boom"), context="while serving /")
    assert wrapped.code == ErrorCode.SERVER_INTERNAL_ERROR
    assert wrapped.message == "while serving /: boom"
    assert wrapped.details["original_type"] == "RuntimeError"

    original = NotFoundError("/x")
    assert handle_error(original) is original
    assert isinstance(original, LiveServeError)
