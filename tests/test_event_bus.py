from __future__ import annotations

import asyncio

import pytest

from perfmon.engine.event_bus import EventBus
from perfmon.models.event import Event, EventSource, EventType


def _make_event(**overrides) -> Event:
    defaults = dict(
        source=EventSource.MONITOR,
        event_type=EventType.METRICS_UPDATED,
        device_id="R58M123ABC",
        payload={"updated": ["cpu"]},
    )
    defaults.update(overrides)
    return Event(**defaults)


# ── publish / consume ───────────────────────────────────


@pytest.mark.asyncio
async def test_single_publish_and_consume():
    """One published notice reaches one subscriber."""
    bus = EventBus()
    received: list[Event] = []

    async def handler(event: Event) -> None:
        received.append(event)

    bus.subscribe(handler)
    await bus.start()

    event = _make_event()
    bus.publish(event)

    await asyncio.sleep(0.2)
    await bus.stop()

    assert len(received) == 1
    assert received[0].id == event.id


@pytest.mark.asyncio
async def test_notices_dispatched_in_order():
    bus = EventBus()
    received: list[str] = []

    async def handler(event: Event) -> None:
        received.append(event.id)

    bus.subscribe(handler)
    await bus.start()

    events = [_make_event() for _ in range(5)]
    for e in events:
        bus.publish(e)

    await asyncio.sleep(0.3)
    await bus.stop()

    assert received == [e.id for e in events]


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery():
    bus = EventBus()
    received: list[Event] = []

    async def handler(event: Event) -> None:
        received.append(event)

    bus.subscribe(handler)
    await bus.start()

    bus.publish(_make_event())
    await asyncio.sleep(0.2)

    bus.unsubscribe(handler)

    bus.publish(_make_event())
    await asyncio.sleep(0.2)
    await bus.stop()

    assert len(received) == 1


# ── back-pressure ───────────────────────────────────────


def test_publish_never_blocks_when_full():
    """A full queue drops the oldest notice instead of blocking the poll loop."""
    bus = EventBus(maxsize=3)
    events = [_make_event() for _ in range(5)]
    for e in events:
        bus.publish(e)

    assert bus.pending == 3
    assert bus.dropped == 2
    kept = [bus._queue.get_nowait().id for _ in range(3)]
    assert kept == [e.id for e in events[2:]]


# ── error handling ──────────────────────────────────────


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_block_others():
    bus = EventBus()
    received: list[Event] = []

    async def bad_handler(event: Event) -> None:
        raise RuntimeError("websocket gone")

    async def good_handler(event: Event) -> None:
        received.append(event)

    bus.subscribe(bad_handler)
    bus.subscribe(good_handler)
    await bus.start()

    bus.publish(_make_event(event_type=EventType.FETCH_FAILED, payload={"error": "offline"}))
    await asyncio.sleep(0.2)
    await bus.stop()

    assert len(received) == 1


# ── lifecycle ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_start_stop_idempotent():
    bus = EventBus()
    await bus.start()
    await bus.start()
    assert bus.running is True

    await bus.stop()
    await bus.stop()
    assert bus.running is False
    assert bus._delivery_task is None


@pytest.mark.asyncio
async def test_drain_on_stop():
    """Notices already queued are dispatched before stop completes."""
    bus = EventBus()
    received: list[Event] = []

    async def handler(event: Event) -> None:
        received.append(event)

    bus.subscribe(handler)
    for _ in range(3):
        bus.publish(_make_event())
    assert bus.pending == 3

    bus._running = True
    await bus.stop()

    assert len(received) == 3
    assert bus.pending == 0


@pytest.mark.asyncio
async def test_stop_waits_for_notice_in_delivery():
    bus = EventBus()
    finished: list[str] = []

    async def slow_handler(event: Event) -> None:
        await asyncio.sleep(0.1)
        finished.append(event.id)

    bus.subscribe(slow_handler)
    await bus.start()

    first, second = _make_event(), _make_event()
    bus.publish(first)
    bus.publish(second)
    await asyncio.sleep(0.02)  # first notice is now inside slow_handler
    await bus.stop()

    assert sorted(finished) == sorted([first.id, second.id])
    assert bus.pending == 0


def test_subscriber_count():
    bus = EventBus()

    async def noop(event: Event) -> None:
        pass

    assert bus.subscriber_count == 0
    bus.subscribe(noop)
    assert bus.subscriber_count == 1
