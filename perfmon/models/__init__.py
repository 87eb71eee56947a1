from .event import Event, EventSource, EventType
from .metrics import DISPLAY_CORES, CoreMetric, DerivedMetrics
from .snapshot import (
    TICK_FIELDS,
    BatteryReading,
    DisplayCounter,
    FieldError,
    MemoryReading,
    MetricSnapshot,
    RawCoreTicks,
    is_ok,
)

__all__ = [
    "Event",
    "EventSource",
    "EventType",
    "DISPLAY_CORES",
    "CoreMetric",
    "DerivedMetrics",
    "TICK_FIELDS",
    "BatteryReading",
    "DisplayCounter",
    "FieldError",
    "MemoryReading",
    "MetricSnapshot",
    "RawCoreTicks",
    "is_ok",
]
