from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from perfmon.models import Event
from perfmon.transport.base import TransportError

logger = logging.getLogger(__name__)

router = APIRouter()


# ── WebSocket connection manager ──────────────────────


class ConnectionManager:
    """Tracks active WebSocket clients and broadcasts notices."""

    def __init__(self) -> None:
        self.active_connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, data: dict) -> None:
        dead: list[WebSocket] = []
        for ws in self.active_connections:
            try:
                await ws.send_json(data)
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)

    async def broadcast_event(self, event: Event) -> None:
        """EventBus subscriber: forward every notice to connected clients."""
        await self.broadcast(event.model_dump(mode="json"))


ws_manager = ConnectionManager()


class DeviceSelection(BaseModel):
    device_id: str | None = None


# ── REST routes ───────────────────────────────────────


@router.get("/api/metrics")
async def get_metrics(request: Request) -> dict:
    return request.app.state.monitor.get_derived_metrics().model_dump(mode="json")


@router.get("/api/series")
async def list_series(request: Request) -> list[str]:
    return request.app.state.monitor.series_names()


@router.get("/api/series/{name}")
async def get_series(name: str, request: Request) -> dict:
    monitor = request.app.state.monitor
    try:
        values = monitor.get_series(name)
    except KeyError:
        raise HTTPException(status_code=404, detail="Unknown series")
    return {"name": name, "values": list(values)}


@router.get("/api/device")
async def get_device(request: Request) -> dict:
    return {"device_id": request.app.state.monitor.active_device}


@router.put("/api/device")
async def set_device(selection: DeviceSelection, request: Request) -> dict:
    request.app.state.monitor.set_active_device(selection.device_id)
    logger.info("Active device set to %s via API", selection.device_id)
    return {"device_id": request.app.state.monitor.active_device}


@router.get("/api/devices")
async def list_devices(request: Request) -> list[str]:
    try:
        return await request.app.state.transport.list_devices()
    except TransportError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@router.get("/api/status")
async def get_status(request: Request) -> dict:
    state = request.app.state
    event_bus = state.event_bus
    return {
        "status": "running",
        "scheduler": state.scheduler.status(),
        "event_bus_running": event_bus.running,
        "subscribers": event_bus.subscriber_count,
        "pending_events": event_bus.pending,
        "dropped_events": event_bus.dropped,
    }


# ── WebSocket endpoint ────────────────────────────────


@router.websocket("/ws/metrics")
async def websocket_metrics(websocket: WebSocket) -> None:
    await ws_manager.connect(websocket)
    try:
        while True:
            # Keep connection alive; client can send pings or messages
            await websocket.receive_text()
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)
