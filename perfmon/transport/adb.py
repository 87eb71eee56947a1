from __future__ import annotations

import asyncio
import logging
import time

from perfmon.models.snapshot import DisplayCounter, FieldError, MetricSnapshot
from perfmon.transport import parsers
from perfmon.transport.base import DeviceTransport, TransportError

logger = logging.getLogger(__name__)

CPU_STAT_CMD = "cat /proc/stat"
CPU_FREQ_CMD = "grep -H . /sys/devices/system/cpu/cpu[0-9]*/cpufreq/scaling_cur_freq"
MEMINFO_CMD = "cat /proc/meminfo"
FLIPS_CMD = "dumpsys SurfaceFlinger"
UPTIME_CMD = "cat /proc/uptime"
BATTERY_CMD = "dumpsys battery"
FOREGROUND_CMD = "dumpsys activity activities | grep -E 'ResumedActivity|mCurrentFocus'"


class AdbTransport(DeviceTransport):
    """Reads counters from an Android device by shelling out to the adb CLI.

    Each counter source is a separate ``adb shell`` call run concurrently, so
    one failing source only marks its own field as failed. If every call
    fails the device is treated as unreachable.
    """

    name = "adb"

    def __init__(self, adb_path: str = "adb", timeout: float = 5.0) -> None:
        self.adb_path = adb_path
        self.timeout = timeout

    # ── contract ────────────────────────────────────────

    async def fetch_snapshot(self, device_id: str) -> MetricSnapshot:
        results = await asyncio.gather(
            self._read_cpu(device_id),
            self._read_memory(device_id),
            self._read_display(device_id),
            self._read_uptime(device_id),
            self.fetch_foreground_app(device_id),
            self._read_battery(device_id),
            return_exceptions=True,
        )
        unexpected = [
            r for r in results
            if isinstance(r, BaseException) and not isinstance(r, TransportError)
        ]
        if unexpected:
            raise unexpected[0]
        if all(isinstance(r, TransportError) for r in results):
            raise TransportError(f"device {device_id} unreachable: {results[0]}", device_id)

        cpu, memory, display, uptime, app, battery = (
            FieldError(error=str(r)) if isinstance(r, TransportError) else r
            for r in results
        )
        return MetricSnapshot(
            device_id=device_id,
            cpu_cores=cpu,
            memory=memory,
            display=display,
            uptime_seconds=uptime,
            foreground_app=app,
            battery=battery,
        )

    async def fetch_foreground_app(self, device_id: str) -> str:
        output = await self._shell(device_id, FOREGROUND_CMD)
        package = parsers.parse_foreground_app(output)
        if package is None:
            raise TransportError("no resumed activity in dumpsys output", device_id)
        return package

    async def list_devices(self) -> list[str]:
        output = await self._run("devices")
        return parsers.parse_devices(output)

    # ── per-source readers ──────────────────────────────

    async def _read_cpu(self, device_id: str):
        cores = parsers.parse_cpu_stat(await self._shell(device_id, CPU_STAT_CMD))
        if not cores:
            raise TransportError("no cpu lines in /proc/stat", device_id)
        try:
            # grep exits non-zero when a core is offline; the other lines still count
            output = await self._shell(device_id, CPU_FREQ_CMD, check=False)
        except TransportError:
            # clock speeds are optional; ticks alone are still usable
            return cores
        return parsers.attach_clock_speeds(cores, parsers.parse_cpu_freqs(output))

    async def _read_memory(self, device_id: str):
        reading = parsers.parse_meminfo(await self._shell(device_id, MEMINFO_CMD))
        if reading is None:
            raise TransportError("failed to parse meminfo", device_id)
        return reading

    async def _read_display(self, device_id: str):
        output = await self._shell(device_id, FLIPS_CMD)
        timestamp_ms = int(time.monotonic() * 1000)
        flips = parsers.parse_flips_count(output)
        if flips is None:
            raise TransportError("could not find flips count", device_id)
        return DisplayCounter(flip_count=flips, timestamp_ms=timestamp_ms)

    async def _read_uptime(self, device_id: str):
        seconds = parsers.parse_uptime(await self._shell(device_id, UPTIME_CMD))
        if seconds is None:
            raise TransportError("failed to parse /proc/uptime", device_id)
        return seconds

    async def _read_battery(self, device_id: str):
        reading = parsers.parse_battery_info(await self._shell(device_id, BATTERY_CMD))
        if reading is None:
            raise TransportError("failed to parse battery info", device_id)
        return reading

    # ── subprocess ──────────────────────────────────────

    async def _shell(self, device_id: str, command: str, check: bool = True) -> str:
        return await self._run("-s", device_id, "shell", command, device_id=device_id, check=check)

    async def _run(self, *args: str, device_id: str | None = None, check: bool = True) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.adb_path,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise TransportError(f"cannot run {self.adb_path}: {exc}", device_id) from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            await _reap(proc)
            raise TransportError(f"adb {' '.join(args)} timed out", device_id) from exc
        except BaseException:
            await _reap(proc)
            raise

        if proc.returncode != 0:
            message = stderr.decode(errors="replace").strip() or f"exit code {proc.returncode}"
            logger.debug("adb %s failed: %s", " ".join(args), message)
            if check:
                raise TransportError(message, device_id)
        return stdout.decode(errors="replace").strip()


async def _reap(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        proc.kill()
        await proc.wait()
