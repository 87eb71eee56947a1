from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

TICK_FIELDS = ("user", "nice", "sys", "idle", "iowait", "irq", "softirq")


class FieldError(BaseModel):
    """Failure marker for a single snapshot field."""

    error: str


class RawCoreTicks(BaseModel):
    """Cumulative per-core CPU tick counters since device boot.

    ``name`` is ``"cpu"`` for the aggregate line and ``"cpuN"`` for core N.
    """

    name: str
    user: int = Field(default=0, ge=0)
    nice: int = Field(default=0, ge=0)
    sys: int = Field(default=0, ge=0)
    idle: int = Field(default=0, ge=0)
    iowait: int = Field(default=0, ge=0)
    irq: int = Field(default=0, ge=0)
    softirq: int = Field(default=0, ge=0)
    clock_mhz: int | None = None

    def total(self) -> int:
        return sum(getattr(self, f) for f in TICK_FIELDS)

    def idle_total(self) -> int:
        return self.idle + self.iowait


class MemoryReading(BaseModel):
    total_kb: int = Field(ge=0)
    available_kb: int = Field(ge=0)
    free_kb: int = Field(default=0, ge=0)


class DisplayCounter(BaseModel):
    """Cumulative compositor flip count and the wall-clock time it was read."""

    flip_count: int = Field(ge=0)
    timestamp_ms: int


class BatteryReading(BaseModel):
    level: int
    temperature: int | None = None  # tenths of a degree Celsius
    voltage: int | None = None  # millivolts


def is_ok(value: Any) -> bool:
    return not isinstance(value, FieldError)


class MetricSnapshot(BaseModel):
    """One polling result. Every field is independently a reading or a FieldError."""

    device_id: str
    cpu_cores: list[RawCoreTicks] | FieldError
    memory: MemoryReading | FieldError
    display: DisplayCounter | FieldError
    uptime_seconds: int | FieldError
    foreground_app: str | FieldError
    battery: BatteryReading | FieldError = Field(
        default_factory=lambda: FieldError(error="not collected")
    )
    captured_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def ok_fields(self) -> list[str]:
        return [name for name in _READING_FIELDS if is_ok(getattr(self, name))]

    def failed_fields(self) -> list[str]:
        return [name for name in _READING_FIELDS if not is_ok(getattr(self, name))]

    def has_data(self) -> bool:
        return bool(self.ok_fields())


_READING_FIELDS = (
    "cpu_cores",
    "memory",
    "display",
    "uptime_seconds",
    "foreground_app",
    "battery",
)
