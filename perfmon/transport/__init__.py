from .adb import AdbTransport
from .base import DeviceTransport, TransportError
from .local import LOCAL_DEVICE_ID, LocalHostTransport

__all__ = [
    "AdbTransport",
    "DeviceTransport",
    "TransportError",
    "LOCAL_DEVICE_ID",
    "LocalHostTransport",
]
