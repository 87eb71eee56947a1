from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from perfmon.models.event import Event

logger = logging.getLogger(__name__)

Subscriber = Callable[[Event], Awaitable[None]]


class EventBus:
    """Fans monitor notices out to UI subscribers (WebSocket clients, loggers).

    ``publish`` is called from the poll loop and never waits: when the queue
    is full the oldest undelivered notice is discarded and counted in
    ``dropped``. A slow subscriber therefore delays other subscribers but
    never the poll loop.
    """

    def __init__(self, maxsize: int = 256) -> None:
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=maxsize)
        self._subscribers: list[Subscriber] = []
        self._running = False
        self._delivery_task: asyncio.Task | None = None
        self._dropped = 0

    # ── lifecycle ────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._delivery_task = asyncio.create_task(self._deliver_forever())
        logger.info("EventBus started (capacity=%d)", self._queue.maxsize)

    async def stop(self) -> None:
        """Deliver whatever is still queued, then stop the delivery task."""
        if not self._running:
            return
        self._running = False
        delivered = await self._flush()
        await self._queue.join()  # the delivery task may still hold one notice
        task, self._delivery_task = self._delivery_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info(
            "EventBus stopped (%d flushed on stop, %d dropped overall)",
            delivered,
            self._dropped,
        )

    # ── publish / subscribe ─────────────────────────────

    def publish(self, event: Event) -> None:
        if self._queue.full():
            stale = self._queue.get_nowait()
            self._queue.task_done()
            self._dropped += 1
            logger.debug("Notice queue full, dropped %s for %s", stale.event_type, stale.device_id)
        self._queue.put_nowait(event)

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        self._subscribers.remove(callback)

    # ── delivery ────────────────────────────────────────

    async def _deliver_forever(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def _flush(self) -> int:
        count = 0
        while not self._queue.empty():
            event = self._queue.get_nowait()
            await self._deliver(event)
            self._queue.task_done()
            count += 1
        return count

    async def _deliver(self, event: Event) -> None:
        # one failing subscriber must not starve the others
        for subscriber in list(self._subscribers):
            try:
                await subscriber(event)
            except Exception:
                logger.exception("Subscriber %r failed on %s notice", subscriber, event.event_type)

    # ── introspection ───────────────────────────────────

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def running(self) -> bool:
        return self._running

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
