from __future__ import annotations

from pydantic import BaseModel, Field

DISPLAY_CORES = 8


class CoreMetric(BaseModel):
    pct: int = Field(default=0, ge=0, le=100)
    clock_mhz: int | None = None


def _empty_cores() -> list[CoreMetric]:
    return [CoreMetric() for _ in range(DISPLAY_CORES)]


class DerivedMetrics(BaseModel):
    """Display-ready values computed from a pair of raw snapshots."""

    cpu_overall_pct: int = Field(default=0, ge=0, le=100)
    per_core: list[CoreMetric] = Field(
        default_factory=_empty_cores,
        min_length=DISPLAY_CORES,
        max_length=DISPLAY_CORES,
    )
    memory_pct: int = Field(default=0, ge=0, le=100)
    memory_used_label: str = "--"
    fps: int = Field(default=0, ge=0)
    uptime_label: str = "--"
    foreground_app: str = ""
    battery_pct: int | None = None
    battery_temp_c: float | None = None
