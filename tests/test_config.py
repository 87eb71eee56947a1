"""Tests for perfmon.config — Settings defaults and env override."""

from __future__ import annotations


class TestSettings:
    def test_default_values(self):
        from perfmon.config import Settings
        s = Settings()
        assert s.app_name == "Device Performance Monitor"
        assert s.debug is False
        assert s.poll_interval == 1.0
        assert s.aggregate_capacity == 40
        assert s.core_capacity == 25
        assert s.transport == "adb"
        assert s.adb_path == "adb"
        assert s.default_device is None
        assert s.port == 8000

    def test_env_override(self, monkeypatch):
        from perfmon.config import Settings
        monkeypatch.setenv("PERFMON_POLL_INTERVAL", "0.5")
        monkeypatch.setenv("PERFMON_TRANSPORT", "local")
        monkeypatch.setenv("PERFMON_DEFAULT_DEVICE", "R58M123ABC")
        s = Settings()
        assert s.poll_interval == 0.5
        assert s.transport == "local"
        assert s.default_device == "R58M123ABC"

    def test_base_dir(self):
        from perfmon.config import BASE_DIR
        assert BASE_DIR.is_dir()
        assert BASE_DIR.name == "perfmon"

    def test_env_prefix(self):
        from perfmon.config import Settings
        assert Settings.model_config["env_prefix"] == "PERFMON_"
