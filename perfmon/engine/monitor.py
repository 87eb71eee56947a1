from __future__ import annotations

import logging

from perfmon.engine.counter_store import CounterStore, SessionState, SessionToken
from perfmon.engine.deriver import derive
from perfmon.engine.event_bus import EventBus
from perfmon.engine.ring_buffer import SeriesSet, core_series_name
from perfmon.models import DerivedMetrics, Event, EventSource, EventType, MetricSnapshot

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """Owns the session, counter store, derived values and chart series.

    Only the poll loop calls ``apply``; UI consumers read copies through
    ``get_derived_metrics`` and ``get_series``.
    """

    def __init__(
        self,
        event_bus: EventBus | None = None,
        aggregate_capacity: int = 40,
        core_capacity: int = 25,
    ) -> None:
        self._event_bus = event_bus
        self.session = SessionState()
        self.store = CounterStore()
        self.series = SeriesSet(aggregate_capacity, core_capacity)
        self._metrics = DerivedMetrics()

    # ── UI-facing contract ──────────────────────────────

    def get_derived_metrics(self) -> DerivedMetrics:
        return self._metrics.model_copy(deep=True)

    def get_series(self, name: str) -> tuple[float, ...]:
        return self.series.snapshot(name)

    def series_names(self) -> list[str]:
        return self.series.names

    @property
    def active_device(self) -> str | None:
        return self.session.device_id

    def set_active_device(self, device_id: str | None) -> None:
        if not self.session.set_device(device_id):
            return
        self.store.clear()
        self._metrics = DerivedMetrics()
        self._notify(EventType.DEVICE_CHANGED, device_id)

    # ── poll loop ───────────────────────────────────────

    def apply(self, token: SessionToken, snapshot: MetricSnapshot) -> bool:
        """Fold one fetched snapshot into the display state.

        Returns False when the snapshot belongs to a session that is no longer
        active; such late responses are dropped untouched.
        """
        if not self.session.is_current(token) or snapshot.device_id != token[0]:
            logger.debug(
                "Discarding late snapshot for %s (active=%s)",
                snapshot.device_id,
                self.session.device_id,
            )
            self._notify(EventType.RESPONSE_DISCARDED, snapshot.device_id)
            return False

        result = derive(self.store.previous, snapshot, self._metrics)
        self._metrics = result.metrics
        self._push_series(result.updated)
        self.store.replace(snapshot)
        self._notify(
            EventType.METRICS_UPDATED,
            snapshot.device_id,
            {
                "metrics": self._metrics.model_dump(mode="json"),
                "updated": sorted(result.updated),
                "failed": snapshot.failed_fields(),
            },
        )
        return True

    def _push_series(self, updated: frozenset[str]) -> None:
        m = self._metrics
        if "cpu" in updated:
            self.series.push("cpu", m.cpu_overall_pct)
        if "memory" in updated:
            self.series.push("memory", m.memory_pct)
        if "fps" in updated:
            self.series.push("fps", m.fps)
        for i, core in enumerate(m.per_core):
            name = core_series_name(i)
            if name in updated:
                self.series.push(name, core.pct)

    def _notify(self, event_type: EventType, device_id: str | None, payload: dict | None = None) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(
            Event(
                source=EventSource.MONITOR,
                event_type=event_type,
                device_id=device_id,
                payload=payload or {},
            )
        )
