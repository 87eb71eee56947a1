from __future__ import annotations

import time

import psutil

from perfmon.models.snapshot import (
    BatteryReading,
    FieldError,
    MemoryReading,
    MetricSnapshot,
    RawCoreTicks,
)
from perfmon.transport.base import DeviceTransport, TransportError

LOCAL_DEVICE_ID = "localhost"
USER_HZ = 100  # psutil reports seconds; /proc/stat counts in 1/100 s


def _ticks(name: str, times, clock_mhz: int | None = None) -> RawCoreTicks:
    def field(attr: str) -> int:
        return int(getattr(times, attr, 0.0) * USER_HZ)

    return RawCoreTicks(
        name=name,
        user=field("user"),
        nice=field("nice"),
        sys=field("system"),
        idle=field("idle"),
        iowait=field("iowait"),
        irq=field("irq"),
        softirq=field("softirq"),
        clock_mhz=clock_mhz,
    )


class LocalHostTransport(DeviceTransport):
    """Treats the machine running the monitor as the device, via psutil.

    The host has no compositor flip counter or foreground-app notion, so those
    fields always come back as failures.
    """

    name = "local"

    async def fetch_snapshot(self, device_id: str) -> MetricSnapshot:
        if device_id != LOCAL_DEVICE_ID:
            raise TransportError(f"unknown local device {device_id}", device_id)

        try:
            app: str | FieldError = await self.fetch_foreground_app(device_id)
        except TransportError as exc:
            app = FieldError(error=str(exc))

        return MetricSnapshot(
            device_id=device_id,
            cpu_cores=self._read_cpu(),
            memory=self._read_memory(),
            display=FieldError(error="no compositor counters on host"),
            uptime_seconds=self._read_uptime(),
            foreground_app=app,
            battery=self._read_battery(),
        )

    async def fetch_foreground_app(self, device_id: str) -> str:
        raise TransportError("foreground app is not available on host", device_id)

    async def list_devices(self) -> list[str]:
        return [LOCAL_DEVICE_ID]

    # ── psutil readers ──────────────────────────────────

    def _read_cpu(self) -> list[RawCoreTicks] | FieldError:
        try:
            aggregate = psutil.cpu_times(percpu=False)
            per_cpu = psutil.cpu_times(percpu=True)
        except (OSError, RuntimeError) as exc:
            return FieldError(error=f"cpu_times failed: {exc}")

        try:
            freqs = psutil.cpu_freq(percpu=True) or []
        except (OSError, RuntimeError, NotImplementedError):
            freqs = []

        cores = [_ticks("cpu", aggregate)]
        for i, times in enumerate(per_cpu):
            mhz = int(freqs[i].current) if i < len(freqs) and freqs[i] else None
            cores.append(_ticks(f"cpu{i}", times, mhz))
        return cores

    def _read_memory(self) -> MemoryReading | FieldError:
        try:
            vm = psutil.virtual_memory()
        except (OSError, RuntimeError) as exc:
            return FieldError(error=f"virtual_memory failed: {exc}")
        return MemoryReading(
            total_kb=vm.total // 1024,
            available_kb=vm.available // 1024,
            free_kb=vm.free // 1024,
        )

    def _read_uptime(self) -> int | FieldError:
        try:
            return max(int(time.time() - psutil.boot_time()), 0)
        except (OSError, RuntimeError) as exc:
            return FieldError(error=f"boot_time failed: {exc}")

    def _read_battery(self) -> BatteryReading | FieldError:
        try:
            battery = psutil.sensors_battery()
        except (OSError, RuntimeError, AttributeError) as exc:
            return FieldError(error=f"sensors_battery failed: {exc}")
        if battery is None:
            return FieldError(error="no battery")
        return BatteryReading(level=int(battery.percent))
