"""Tests for perfmon.engine.ring_buffer."""

from __future__ import annotations

import pytest

from perfmon.engine.ring_buffer import RingBuffer, SeriesSet


class TestRingBuffer:
    def test_starts_full_of_fill_value(self):
        buf = RingBuffer(5, fill=-1)
        assert len(buf) == 5
        assert buf.snapshot() == (-1, -1, -1, -1, -1)

    def test_push_evicts_oldest(self):
        buf = RingBuffer(3)
        buf.push(1)
        assert buf.snapshot() == (0, 0, 1)
        buf.push(2)
        buf.push(3)
        buf.push(4)
        assert buf.snapshot() == (2, 3, 4)

    def test_length_stays_at_capacity(self):
        buf = RingBuffer(40)
        for i in range(1000):
            buf.push(i)
            assert len(buf) == 40
        assert buf.snapshot() == tuple(range(960, 1000))

    def test_snapshot_is_immutable_copy(self):
        buf = RingBuffer(3)
        snap = buf.snapshot()
        buf.push(9)
        assert snap == (0, 0, 0)
        assert isinstance(snap, tuple)

    def test_capacity_fixed(self):
        buf = RingBuffer(25)
        for i in range(30):
            buf.push(i)
        assert buf.capacity == 25

    @pytest.mark.parametrize("capacity", [0, -3])
    def test_invalid_capacity(self, capacity):
        with pytest.raises(ValueError):
            RingBuffer(capacity)


class TestSeriesSet:
    def test_names_and_capacities(self):
        series = SeriesSet(aggregate_capacity=40, core_capacity=25)
        assert series.names == ["cpu", "memory", "fps"] + [f"core{i}" for i in range(8)]
        assert len(series.snapshot("cpu")) == 40
        assert len(series.snapshot("memory")) == 40
        assert len(series.snapshot("fps")) == 40
        assert len(series.snapshot("core7")) == 25

    def test_series_are_independent(self):
        series = SeriesSet(aggregate_capacity=3, core_capacity=2)
        series.push("core0", 50)
        assert series.snapshot("core0") == (0, 50)
        assert series.snapshot("core1") == (0, 0)
        assert series.snapshot("cpu") == (0, 0, 0)

    def test_unknown_series(self):
        series = SeriesSet()
        assert "gpu" not in series
        with pytest.raises(KeyError):
            series.snapshot("gpu")
        with pytest.raises(KeyError):
            series.push("core8", 1)
