from __future__ import annotations

from collections import deque

from perfmon.models.metrics import DISPLAY_CORES

AGGREGATE_SERIES = ("cpu", "memory", "fps")


def core_series_name(index: int) -> str:
    return f"core{index}"


class RingBuffer:
    """Fixed-capacity FIFO series for live charts.

    Starts out holding ``capacity`` copies of ``fill`` so charts always have a
    full window to draw. ``push`` appends and evicts the oldest value.
    """

    def __init__(self, capacity: int, fill: float = 0) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._values: deque[float] = deque([fill] * capacity, maxlen=capacity)

    def __len__(self) -> int:
        return len(self._values)

    @property
    def capacity(self) -> int:
        return self._values.maxlen or 0

    def push(self, value: float) -> None:
        self._values.append(value)

    def snapshot(self) -> tuple[float, ...]:
        """Immutable, oldest-first view of the buffer."""
        return tuple(self._values)


class SeriesSet:
    """One ring buffer per displayed series."""

    def __init__(
        self,
        aggregate_capacity: int = 40,
        core_capacity: int = 25,
        cores: int = DISPLAY_CORES,
        fill: float = 0,
    ) -> None:
        self._buffers: dict[str, RingBuffer] = {
            name: RingBuffer(aggregate_capacity, fill) for name in AGGREGATE_SERIES
        }
        for i in range(cores):
            self._buffers[core_series_name(i)] = RingBuffer(core_capacity, fill)

    @property
    def names(self) -> list[str]:
        return list(self._buffers)

    def push(self, name: str, value: float) -> None:
        self._buffers[name].push(value)

    def snapshot(self, name: str) -> tuple[float, ...]:
        return self._buffers[name].snapshot()

    def __contains__(self, name: object) -> bool:
        return name in self._buffers
