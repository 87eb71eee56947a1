from __future__ import annotations

from abc import ABC, abstractmethod

from perfmon.models.snapshot import MetricSnapshot


class TransportError(Exception):
    """The device could not be reached at all."""

    def __init__(self, message: str, device_id: str | None = None) -> None:
        super().__init__(message)
        self.device_id = device_id


class DeviceTransport(ABC):
    """Contract between the poll loop and whatever talks to the device.

    ``fetch_snapshot`` reports per-field failures inside the snapshot and only
    raises ``TransportError`` when nothing could be read.
    """

    name: str = "base"

    @abstractmethod
    async def fetch_snapshot(self, device_id: str) -> MetricSnapshot:
        ...

    @abstractmethod
    async def fetch_foreground_app(self, device_id: str) -> str:
        ...

    async def list_devices(self) -> list[str]:
        return []
