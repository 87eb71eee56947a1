"""Pure derivation of display metrics from raw counter snapshots.

Nothing in here performs I/O or keeps state. ``derive`` takes the previous
snapshot, the current one and the values currently on display, and returns
the values to display next. A reading that failed, or a delta that cannot be
computed (counter reset, no elapsed time), leaves the displayed value alone.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from perfmon.engine.ring_buffer import core_series_name
from perfmon.models.metrics import DISPLAY_CORES, CoreMetric, DerivedMetrics
from perfmon.models.snapshot import (
    BatteryReading,
    DisplayCounter,
    MemoryReading,
    MetricSnapshot,
    RawCoreTicks,
    is_ok,
)

AGGREGATE_CORE = "cpu"
_CORE_NAME = re.compile(r"^cpu(\d+)$")


@dataclass(frozen=True)
class Derivation:
    metrics: DerivedMetrics
    updated: frozenset[str]  # series names that received a fresh value


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_pct(value: int) -> int:
    return max(0, min(100, value))


def core_index(name: str) -> int | None:
    """Display slot for an individual core name, or None if it has none."""
    match = _CORE_NAME.match(name)
    if not match:
        return None
    index = int(match.group(1))
    if index >= DISPLAY_CORES:
        return None
    return index


# ── single-value derivations ────────────────────────


def cpu_usage_pct(previous: RawCoreTicks, current: RawCoreTicks) -> int | None:
    total_delta = current.total() - previous.total()
    if total_delta <= 0:
        return None
    idle_delta = current.idle_total() - previous.idle_total()
    return clamp_pct(round_half_up(100 * (1 - idle_delta / total_delta)))


def memory_pct(reading: MemoryReading) -> int | None:
    if reading.total_kb <= 0:
        return None
    used = reading.total_kb - reading.available_kb
    return clamp_pct(round_half_up(100 * used / reading.total_kb))


def memory_used_label(reading: MemoryReading) -> str:
    used_kb = max(reading.total_kb - reading.available_kb, 0)
    return f"{used_kb // 1024} MB"


def fps(previous: DisplayCounter | None, current: DisplayCounter) -> int | None:
    if previous is None:
        return None
    flips = current.flip_count - previous.flip_count
    if flips < 0:
        return None
    if flips == 0:
        return 0
    elapsed_ms = current.timestamp_ms - previous.timestamp_ms
    if elapsed_ms <= 0:
        return None
    return round_half_up(1000 * flips / elapsed_ms)


def format_uptime(seconds: int) -> str:
    seconds = max(int(seconds), 0)
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    label = f"{hours}:{minutes:02d}:{secs:02d}"
    if days > 0:
        return f"{days}d {label}"
    return label


def battery_values(reading: BatteryReading) -> tuple[int, float | None]:
    temp_c = reading.temperature / 10 if reading.temperature is not None else None
    return clamp_pct(reading.level), temp_c


# ── snapshot derivation ─────────────────────────────


def derive(
    previous: MetricSnapshot | None,
    current: MetricSnapshot,
    prior: DerivedMetrics,
) -> Derivation:
    update: dict = {}
    updated: set[str] = set()

    if is_ok(current.cpu_cores):
        prev_cores = (
            previous.cpu_cores
            if previous is not None and is_ok(previous.cpu_cores)
            else []
        )
        _derive_cpu(prev_cores, current.cpu_cores, prior, update, updated)

    if is_ok(current.memory):
        pct = memory_pct(current.memory)
        if pct is not None:
            update["memory_pct"] = pct
            update["memory_used_label"] = memory_used_label(current.memory)
            updated.add("memory")

    if is_ok(current.display):
        prev_display = (
            previous.display
            if previous is not None and is_ok(previous.display)
            else None
        )
        value = fps(prev_display, current.display)
        if value is not None:
            update["fps"] = value
            updated.add("fps")

    if is_ok(current.uptime_seconds):
        update["uptime_label"] = format_uptime(current.uptime_seconds)

    if is_ok(current.foreground_app):
        update["foreground_app"] = current.foreground_app

    if is_ok(current.battery):
        update["battery_pct"], update["battery_temp_c"] = battery_values(current.battery)

    return Derivation(
        metrics=prior.model_copy(update=update, deep=True),
        updated=frozenset(updated),
    )


def _derive_cpu(
    prev_cores: list[RawCoreTicks],
    cur_cores: list[RawCoreTicks],
    prior: DerivedMetrics,
    update: dict,
    updated: set[str],
) -> None:
    by_name = {core.name: core for core in prev_cores}
    per_core = [core.model_copy() for core in prior.per_core]
    cores_changed = False

    for core in cur_cores:
        before = by_name.get(core.name)
        if core.name == AGGREGATE_CORE:
            if before is None:
                continue
            pct = cpu_usage_pct(before, core)
            if pct is not None:
                update["cpu_overall_pct"] = pct
                updated.add("cpu")
            continue

        index = core_index(core.name)
        if index is None:
            continue
        slot = per_core[index]
        if core.clock_mhz is not None:
            slot.clock_mhz = core.clock_mhz
            cores_changed = True
        if before is None:
            continue
        pct = cpu_usage_pct(before, core)
        if pct is not None:
            slot.pct = pct
            cores_changed = True
            updated.add(core_series_name(index))

    if cores_changed:
        update["per_core"] = per_core
