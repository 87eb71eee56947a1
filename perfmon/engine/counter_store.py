from __future__ import annotations

import logging

from perfmon.models.snapshot import FieldError, MetricSnapshot, RawCoreTicks, is_ok

logger = logging.getLogger(__name__)

SessionToken = tuple[str, int]


class SessionState:
    """Selected device identity.

    ``generation`` is bumped on every change so a fetch issued under one
    session can be recognised as stale when it completes under another, even
    if the same device was re-selected in between.
    """

    def __init__(self) -> None:
        self._device_id: str | None = None
        self._generation = 0

    @property
    def device_id(self) -> str | None:
        return self._device_id

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def active(self) -> bool:
        return self._device_id is not None

    def set_device(self, device_id: str | None) -> bool:
        """Select a device (or none). Returns True if the session changed."""
        if device_id == self._device_id:
            return False
        self._device_id = device_id
        self._generation += 1
        logger.info("Session changed to %s (generation=%d)", device_id, self._generation)
        return True

    def token(self) -> SessionToken | None:
        if self._device_id is None:
            return None
        return (self._device_id, self._generation)

    def is_current(self, token: SessionToken) -> bool:
        return token == self.token()


class CounterStore:
    """Holds the previous raw snapshot for the active session."""

    def __init__(self) -> None:
        self._previous: MetricSnapshot | None = None

    @property
    def previous(self) -> MetricSnapshot | None:
        return self._previous

    def replace(self, current: MetricSnapshot) -> None:
        """Make ``current`` the baseline for the next poll.

        A field that failed in ``current`` keeps its last good reading, and
        cores missing from ``current`` keep their previous counters, so one
        bad poll does not cost a delta on the next one.
        """
        self._previous = merge_snapshots(self._previous, current)

    def clear(self) -> None:
        self._previous = None


def merge_snapshots(
    previous: MetricSnapshot | None, current: MetricSnapshot
) -> MetricSnapshot:
    if previous is None or previous.device_id != current.device_id:
        return current

    update: dict = {}
    for name in ("memory", "display", "uptime_seconds", "foreground_app", "battery"):
        value = getattr(current, name)
        if isinstance(value, FieldError) and is_ok(getattr(previous, name)):
            update[name] = getattr(previous, name)

    if isinstance(current.cpu_cores, FieldError):
        if is_ok(previous.cpu_cores):
            update["cpu_cores"] = previous.cpu_cores
    elif is_ok(previous.cpu_cores):
        seen = {core.name for core in current.cpu_cores}
        carried: list[RawCoreTicks] = [
            core for core in previous.cpu_cores if core.name not in seen
        ]
        if carried:
            update["cpu_cores"] = list(current.cpu_cores) + carried

    if not update:
        return current
    return current.model_copy(update=update)
