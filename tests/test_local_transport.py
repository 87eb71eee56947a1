"""Tests for perfmon.transport.local with psutil mocked."""

from __future__ import annotations

from collections import namedtuple
from unittest.mock import patch

import pytest

from perfmon.models import FieldError
from perfmon.transport.base import TransportError
from perfmon.transport.local import LOCAL_DEVICE_ID, LocalHostTransport

scputimes = namedtuple("scputimes", ["user", "nice", "system", "idle", "iowait", "irq", "softirq"])
scpufreq = namedtuple("scpufreq", ["current", "min", "max"])
svmem = namedtuple("svmem", ["total", "available", "free"])
sbattery = namedtuple("sbattery", ["percent", "secsleft", "power_plugged"])


def _configure(mock_psutil, battery=None):
    mock_psutil.cpu_times.side_effect = lambda percpu=False: (
        [scputimes(1.0, 0.0, 0.5, 8.0, 0.1, 0.0, 0.0), scputimes(2.0, 0.0, 1.0, 6.0, 0.0, 0.0, 0.01)]
        if percpu
        else scputimes(3.0, 0.0, 1.5, 14.0, 0.1, 0.0, 0.01)
    )
    mock_psutil.cpu_freq.return_value = [scpufreq(2400.0, 800.0, 3600.0), scpufreq(1200.7, 800.0, 3600.0)]
    mock_psutil.virtual_memory.return_value = svmem(8 * 1024**3, 2 * 1024**3, 1024**3)
    mock_psutil.boot_time.return_value = 1_700_000_000.0
    mock_psutil.sensors_battery.return_value = battery


class TestLocalHostTransport:
    @pytest.mark.asyncio
    async def test_snapshot_from_psutil(self):
        with patch("perfmon.transport.local.psutil") as mock_psutil, \
                patch("perfmon.transport.local.time.time", return_value=1_700_003_661.0):
            _configure(mock_psutil, battery=sbattery(76.4, 3600, False))
            snap = await LocalHostTransport().fetch_snapshot(LOCAL_DEVICE_ID)

        names = [c.name for c in snap.cpu_cores]
        assert names == ["cpu", "cpu0", "cpu1"]
        agg, core0, core1 = snap.cpu_cores
        assert agg.user == 300
        assert agg.sys == 150
        assert agg.idle == 1400
        assert agg.clock_mhz is None
        assert core0.clock_mhz == 2400
        assert core1.clock_mhz == 1200
        assert core1.softirq == 1
        assert snap.memory.total_kb == 8 * 1024**2
        assert snap.memory.available_kb == 2 * 1024**2
        assert snap.uptime_seconds == 3661
        assert snap.battery.level == 76
        assert snap.battery.temperature is None
        assert isinstance(snap.display, FieldError)
        assert isinstance(snap.foreground_app, FieldError)

    @pytest.mark.asyncio
    async def test_no_battery(self):
        with patch("perfmon.transport.local.psutil") as mock_psutil:
            _configure(mock_psutil, battery=None)
            snap = await LocalHostTransport().fetch_snapshot(LOCAL_DEVICE_ID)
        assert isinstance(snap.battery, FieldError)
        assert snap.has_data()

    @pytest.mark.asyncio
    async def test_cpu_freq_missing(self):
        with patch("perfmon.transport.local.psutil") as mock_psutil:
            _configure(mock_psutil)
            mock_psutil.cpu_freq.return_value = []
            snap = await LocalHostTransport().fetch_snapshot(LOCAL_DEVICE_ID)
        assert all(c.clock_mhz is None for c in snap.cpu_cores)

    @pytest.mark.asyncio
    async def test_failed_memory_read_is_field_error(self):
        with patch("perfmon.transport.local.psutil") as mock_psutil:
            _configure(mock_psutil)
            mock_psutil.virtual_memory.side_effect = OSError("no /proc")
            snap = await LocalHostTransport().fetch_snapshot(LOCAL_DEVICE_ID)
        assert isinstance(snap.memory, FieldError)
        assert "no /proc" in snap.memory.error

    @pytest.mark.asyncio
    async def test_unknown_device(self):
        with pytest.raises(TransportError):
            await LocalHostTransport().fetch_snapshot("R58M123ABC")

    @pytest.mark.asyncio
    async def test_list_devices(self):
        assert await LocalHostTransport().list_devices() == [LOCAL_DEVICE_ID]
