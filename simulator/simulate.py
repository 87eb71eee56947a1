"""Synthetic device for the Device Performance Monitor.

Produces monotonically growing CPU tick and compositor flip counters for a
fake device, so the poll loop can be exercised without a phone attached.
Scenarios cover steady load, CPU spikes, flaky counter sources, a counter
reset (reboot) and a slow link.

Usage:
    python simulator/simulate.py                     # run all scenarios
    python simulator/simulate.py --scenario flaky
    python simulator/simulate.py --polls 20 --interval 0.5 --fail-rate 0.2
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
from dataclasses import dataclass, field

from perfmon.collectors import PollScheduler
from perfmon.engine import EventBus, PerformanceMonitor
from perfmon.models import (
    BatteryReading,
    DisplayCounter,
    Event,
    EventType,
    FieldError,
    MemoryReading,
    MetricSnapshot,
    RawCoreTicks,
)
from perfmon.transport.base import DeviceTransport, TransportError

logger = logging.getLogger("simulator")

SIM_DEVICE_ID = "emulator-5554"
_FIELDS = ("cpu_cores", "memory", "display", "uptime_seconds", "foreground_app", "battery")


@dataclass
class _DeviceCounters:
    cores: dict[str, list[int]] = field(default_factory=dict)  # name -> [user, sys, idle]
    flips: int = 0
    clock_ms: int = 0
    uptime: int = 0


class SimulatedTransport(DeviceTransport):
    """In-process device whose counters advance by one poll interval per fetch.

    Time is simulated, so FPS and CPU% come out exactly at the configured
    ``fps`` and ``load`` unless a field fails or counters are reset.
    """

    name = "simulator"

    def __init__(
        self,
        cores: int = 8,
        load: float = 0.35,
        fps: int = 60,
        interval_ms: int = 1000,
        fail_rate: float = 0.0,
        reset_at: int | None = None,
        latency: float = 0.0,
        seed: int | None = None,
    ) -> None:
        self.cores = cores
        self.load = load
        self.fps = fps
        self.interval_ms = interval_ms
        self.fail_rate = fail_rate
        self.reset_at = reset_at
        self.latency = latency
        self.unreachable = False
        self.app = "com.example.game"
        self.fetch_count = 0
        self._rng = random.Random(seed)
        self._devices: dict[str, _DeviceCounters] = {}

    async def fetch_snapshot(self, device_id: str) -> MetricSnapshot:
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.unreachable:
            raise TransportError(f"device {device_id} offline", device_id)

        self.fetch_count += 1
        if self.reset_at is not None and self.fetch_count == self.reset_at:
            logger.info("Simulating reboot of %s", device_id)
            self._devices.pop(device_id, None)

        counters = self._advance(device_id)
        readings = {
            "cpu_cores": self._cores(counters),
            "memory": MemoryReading(total_kb=8_000_000, available_kb=self._available_kb()),
            "display": DisplayCounter(flip_count=counters.flips, timestamp_ms=counters.clock_ms),
            "uptime_seconds": counters.uptime,
            "foreground_app": self.app,
            "battery": BatteryReading(level=87, temperature=312, voltage=4100),
        }
        for name in _FIELDS:
            if self.fail_rate and self._rng.random() < self.fail_rate:
                readings[name] = FieldError(error=f"simulated {name} failure")
        return MetricSnapshot(device_id=device_id, **readings)

    async def fetch_foreground_app(self, device_id: str) -> str:
        if self.unreachable:
            raise TransportError(f"device {device_id} offline", device_id)
        return self.app

    async def list_devices(self) -> list[str]:
        return [SIM_DEVICE_ID]

    # ── internals ───────────────────────────────────────

    def _advance(self, device_id: str) -> _DeviceCounters:
        counters = self._devices.get(device_id)
        if counters is None:
            counters = _DeviceCounters(
                cores={f"cpu{i}": [0, 0, 0] for i in range(self.cores)},
                uptime=30,
            )
            self._devices[device_id] = counters
            return counters

        ticks = self.interval_ms // 10  # USER_HZ = 100
        for values in counters.cores.values():
            busy = round(ticks * min(max(self.load + self._rng.uniform(-0.05, 0.05), 0.0), 1.0))
            values[0] += busy * 2 // 3
            values[1] += busy - busy * 2 // 3
            values[2] += ticks - busy
        counters.flips += self.fps * self.interval_ms // 1000
        counters.clock_ms += self.interval_ms
        counters.uptime += self.interval_ms // 1000
        return counters

    def _cores(self, counters: _DeviceCounters) -> list[RawCoreTicks]:
        per_core = [
            RawCoreTicks(name=name, user=u, sys=s, idle=i, clock_mhz=1800)
            for name, (u, s, i) in counters.cores.items()
        ]
        aggregate = RawCoreTicks(
            name="cpu",
            user=sum(c.user for c in per_core),
            sys=sum(c.sys for c in per_core),
            idle=sum(c.idle for c in per_core),
        )
        return [aggregate, *per_core]

    def _available_kb(self) -> int:
        return int(8_000_000 * (1 - min(max(self.load, 0.0), 1.0) * 0.8))


# ── Scenarios ────────────────────────────────────────


def steady() -> SimulatedTransport:
    """Moderate constant load at 60 fps."""
    return SimulatedTransport(load=0.35, fps=60, seed=1)


def cpu_spike() -> SimulatedTransport:
    """Near-saturated CPU with the frame rate dropping."""
    return SimulatedTransport(load=0.95, fps=24, seed=2)


def flaky() -> SimulatedTransport:
    """Individual counter sources fail a third of the time."""
    return SimulatedTransport(fail_rate=0.33, seed=3)


def reboot() -> SimulatedTransport:
    """Counters drop back to zero halfway through."""
    return SimulatedTransport(reset_at=4, seed=4)


def slow_link() -> SimulatedTransport:
    """Each fetch takes longer than the poll interval."""
    return SimulatedTransport(latency=1.5, seed=5)


SCENARIOS = {
    "steady": steady,
    "cpu_spike": cpu_spike,
    "flaky": flaky,
    "reboot": reboot,
    "slow_link": slow_link,
}


# ── Main runner ──────────────────────────────────────


async def _log_notice(event: Event) -> None:
    if event.event_type == EventType.METRICS_UPDATED:
        m = event.payload["metrics"]
        logger.info(
            "cpu=%3d%% mem=%3d%% (%s) fps=%3d up=%s app=%s failed=%s",
            m["cpu_overall_pct"],
            m["memory_pct"],
            m["memory_used_label"],
            m["fps"],
            m["uptime_label"],
            m["foreground_app"],
            ",".join(event.payload["failed"]) or "-",
        )
    elif event.event_type == EventType.FETCH_FAILED:
        logger.warning("fetch failed: %s", event.payload.get("error"))


async def run_scenario(
    transport: SimulatedTransport, polls: int, interval: float
) -> PerformanceMonitor:
    """Drive the real scheduler against a simulated device."""
    bus = EventBus()
    bus.subscribe(_log_notice)
    await bus.start()

    monitor = PerformanceMonitor(event_bus=bus)
    scheduler = PollScheduler(monitor, transport, event_bus=bus, interval=interval)
    monitor.set_active_device(SIM_DEVICE_ID)

    await scheduler.start()
    await asyncio.sleep(polls * interval)
    await scheduler.stop()
    await bus.stop()

    logger.info(
        "ticks=%d skipped=%d fetches=%d failures=%d",
        scheduler.ticks,
        scheduler.skipped,
        scheduler.fetches,
        scheduler.failures,
    )
    return monitor


async def main() -> None:
    parser = argparse.ArgumentParser(description="Device performance simulator")
    parser.add_argument("--scenario", choices=list(SCENARIOS.keys()), help="Run a single scenario")
    parser.add_argument("--polls", type=int, default=8, help="Poll intervals to run per scenario")
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between polls")
    parser.add_argument("--fail-rate", type=float, default=None, help="Per-field failure probability")
    parser.add_argument("--reset-at", type=int, default=None, help="Fetch number that resets counters")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [SIM] %(message)s")

    names = [args.scenario] if args.scenario else list(SCENARIOS)
    for name in names:
        transport = SCENARIOS[name]()
        transport.interval_ms = int(args.interval * 1000)
        if args.fail_rate is not None:
            transport.fail_rate = args.fail_rate
        if args.reset_at is not None:
            transport.reset_at = args.reset_at
        logger.info("=== Starting scenario: %s ===", name)
        await run_scenario(transport, args.polls, args.interval)
    logger.info("=== All scenarios complete ===")


if __name__ == "__main__":
    asyncio.run(main())
