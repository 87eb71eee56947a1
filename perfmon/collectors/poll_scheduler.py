from __future__ import annotations

import asyncio
import logging
from enum import StrEnum

from perfmon.collectors.base import BaseCollector
from perfmon.engine.counter_store import SessionToken
from perfmon.engine.event_bus import EventBus
from perfmon.engine.monitor import PerformanceMonitor
from perfmon.models.event import Event, EventSource, EventType
from perfmon.transport.base import DeviceTransport, TransportError

logger = logging.getLogger(__name__)


class SchedulerState(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"


class PollScheduler(BaseCollector):
    """Single-flight poller feeding device snapshots into the monitor.

    A tick while a fetch is still outstanding is dropped, not queued, so a slow
    device link lowers the update rate instead of piling up requests. A failed
    fetch is retried on the next regular tick.
    """

    name = "poll_scheduler"

    def __init__(
        self,
        monitor: PerformanceMonitor,
        transport: DeviceTransport,
        event_bus: EventBus | None = None,
        interval: float = 1.0,
    ) -> None:
        super().__init__(interval=interval)
        self._monitor = monitor
        self._transport = transport
        self._event_bus = event_bus
        self._state = SchedulerState.IDLE
        self._fetch_task: asyncio.Task | None = None

        self.ticks = 0
        self.skipped = 0
        self.fetches = 0
        self.failures = 0
        self.last_error: str | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    def tick(self) -> bool:
        self.ticks += 1
        token = self._acquire()
        if token is None:
            return False
        self._fetch_task = asyncio.create_task(self._fetch_and_apply(token))
        return True

    async def poll_once(self) -> bool:
        """Run one fetch inline under the same single-flight guard."""
        token = self._acquire()
        if token is None:
            return False
        return await self._fetch_and_apply(token)

    async def stop(self) -> None:
        await super().stop()
        task, self._fetch_task = self._fetch_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def status(self) -> dict:
        return {
            "running": self.running,
            "state": self._state.value,
            "device_id": self._monitor.active_device,
            "transport": self._transport.name,
            "interval": self.interval,
            "ticks": self.ticks,
            "skipped": self.skipped,
            "fetches": self.fetches,
            "failures": self.failures,
            "last_error": self.last_error,
        }

    # ── internals ───────────────────────────────────────

    def _acquire(self) -> SessionToken | None:
        token = self._monitor.session.token()
        if token is None or self._state is SchedulerState.FETCHING:
            self.skipped += 1
            logger.debug("Tick skipped (device=%s, state=%s)", token and token[0], self._state)
            return None
        self._state = SchedulerState.FETCHING
        return token

    async def _fetch_and_apply(self, token: SessionToken) -> bool:
        device_id = token[0]
        self.fetches += 1
        try:
            try:
                snapshot = await self._transport.fetch_snapshot(device_id)
            except TransportError as exc:
                self._report_failure(device_id, str(exc))
                return False
            except Exception as exc:
                logger.exception("Unexpected error fetching snapshot from %s", device_id)
                self._report_failure(device_id, f"{type(exc).__name__}: {exc}")
                return False

            if not snapshot.has_data():
                self._report_failure(device_id, "no metric could be read")
                return False

            self.last_error = None
            return self._monitor.apply(token, snapshot)
        finally:
            self._state = SchedulerState.IDLE

    def _report_failure(self, device_id: str, message: str) -> None:
        self.failures += 1
        self.last_error = message
        logger.warning("Fetch from %s failed: %s", device_id, message)
        if self._event_bus is not None:
            self._event_bus.publish(
                Event(
                    source=EventSource.POLL_SCHEDULER,
                    event_type=EventType.FETCH_FAILED,
                    device_id=device_id,
                    payload={"error": message},
                )
            )
