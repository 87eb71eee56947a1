from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    # --- app ---
    app_name: str = "Device Performance Monitor"
    debug: bool = False
    log_level: str = "INFO"

    # --- polling ---
    poll_interval: float = 1.0  # seconds between scheduler ticks
    aggregate_capacity: int = 40
    core_capacity: int = 25

    # --- transport ---
    transport: str = "adb"  # "adb" or "local"
    adb_path: str = "adb"
    adb_timeout: float = 5.0
    default_device: str | None = None

    # --- server ---
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:1420", "http://localhost:5173"]

    model_config = {"env_file": ".env", "env_prefix": "PERFMON_"}


settings = Settings()
