from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from perfmon.api.routes import router, ws_manager
from perfmon.collectors import PollScheduler
from perfmon.config import settings
from perfmon.engine import EventBus, PerformanceMonitor
from perfmon.transport import AdbTransport, DeviceTransport, LocalHostTransport

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_transport(kind: str) -> DeviceTransport:
    if kind == "local":
        return LocalHostTransport()
    if kind == "adb":
        return AdbTransport(adb_path=settings.adb_path, timeout=settings.adb_timeout)
    raise ValueError(f"Unknown transport {kind!r} (expected 'adb' or 'local')")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── startup ───────────────────────────────────────
    event_bus = EventBus()
    event_bus.subscribe(ws_manager.broadcast_event)
    await event_bus.start()

    transport = build_transport(settings.transport)
    monitor = PerformanceMonitor(
        event_bus=event_bus,
        aggregate_capacity=settings.aggregate_capacity,
        core_capacity=settings.core_capacity,
    )
    scheduler = PollScheduler(
        monitor,
        transport,
        event_bus=event_bus,
        interval=settings.poll_interval,
    )
    if settings.default_device:
        monitor.set_active_device(settings.default_device)
    await scheduler.start()

    # Store on app.state for route access
    app.state.event_bus = event_bus
    app.state.transport = transport
    app.state.monitor = monitor
    app.state.scheduler = scheduler

    logger.info("Monitor started with %s transport", transport.name)

    yield

    # ── shutdown ──────────────────────────────────────
    await scheduler.stop()
    await event_bus.stop()
    logger.info("Monitor shut down")


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


def run() -> None:
    uvicorn.run(
        "perfmon.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
