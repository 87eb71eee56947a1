"""Parsers for the text the device prints for each counter source.

All of them are lenient: unparseable input yields ``None`` (or an empty
list), never an exception.
"""

from __future__ import annotations

import re

from perfmon.models.snapshot import BatteryReading, MemoryReading, RawCoreTicks

_FLIPS = re.compile(r"flips=(\d+)")
_RESUMED = re.compile(r"(?:mResumedActivity|topResumedActivity|ResumedActivity)[:=].*?\s([\w.]+)/")
_FOCUS = re.compile(r"mCurrentFocus=.*?\s([\w.]+)/")
_FREQ_LINE = re.compile(r"/(cpu\d+)/cpufreq/scaling_cur_freq:\s*(\d+)")


def _to_int(value: str) -> int:
    try:
        return max(int(value), 0)
    except ValueError:
        return 0


def parse_cpu_stat(output: str) -> list[RawCoreTicks]:
    """Parse ``/proc/stat``. The aggregate ``cpu`` line comes first when present."""
    cores: list[RawCoreTicks] = []
    for line in output.splitlines():
        parts = line.split()
        if not parts or not parts[0].startswith("cpu") or len(parts) < 8:
            continue
        cores.append(
            RawCoreTicks(
                name=parts[0],
                user=_to_int(parts[1]),
                nice=_to_int(parts[2]),
                sys=_to_int(parts[3]),
                idle=_to_int(parts[4]),
                iowait=_to_int(parts[5]),
                irq=_to_int(parts[6]),
                softirq=_to_int(parts[7]),
            )
        )
    return cores


def parse_cpu_freqs(output: str) -> dict[str, int]:
    """``grep -H`` output of ``cpuN/cpufreq/scaling_cur_freq`` (kHz), keyed by core name, in MHz."""
    freqs: dict[str, int] = {}
    for match in _FREQ_LINE.finditer(output):
        freqs[match.group(1)] = int(match.group(2)) // 1000
    return freqs


def attach_clock_speeds(cores: list[RawCoreTicks], freqs: dict[str, int]) -> list[RawCoreTicks]:
    """Assign clock speeds to the cores whose name has a reading."""
    return [
        c.model_copy(update={"clock_mhz": freqs[c.name]}) if c.name in freqs else c
        for c in cores
    ]


def parse_meminfo(output: str) -> MemoryReading | None:
    values: dict[str, int] = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2:
            values[parts[0]] = _to_int(parts[1])

    total = values.get("MemTotal:", 0)
    if total <= 0:
        return None
    return MemoryReading(
        total_kb=total,
        available_kb=values.get("MemAvailable:", values.get("MemFree:", 0)),
        free_kb=values.get("MemFree:", 0),
    )


def parse_flips_count(output: str) -> int | None:
    match = _FLIPS.search(output)
    return int(match.group(1)) if match else None


def parse_uptime(output: str) -> int | None:
    """First field of ``/proc/uptime``, truncated to whole seconds."""
    parts = output.split()
    if not parts:
        return None
    try:
        return int(float(parts[0]))
    except ValueError:
        return None


def parse_battery_info(output: str) -> BatteryReading | None:
    fields: dict[str, int] = {}
    for line in output.splitlines():
        key, sep, value = line.strip().partition(":")
        if not sep:
            continue
        value = value.strip()
        if value.lstrip("-").isdigit():
            fields[key.strip()] = int(value)

    if "level" not in fields:
        return None
    return BatteryReading(
        level=fields["level"],
        temperature=fields.get("temperature"),
        voltage=fields.get("voltage"),
    )


def parse_foreground_app(output: str) -> str | None:
    for pattern in (_RESUMED, _FOCUS):
        match = pattern.search(output)
        if match:
            return match.group(1)
    return None


def parse_devices(output: str) -> list[str]:
    """Serials in state ``device`` from ``adb devices`` output."""
    serials: list[str] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[1] == "device":
            serials.append(parts[0])
    return serials
