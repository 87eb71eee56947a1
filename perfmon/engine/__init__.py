from .counter_store import CounterStore, SessionState
from .deriver import Derivation, derive
from .event_bus import EventBus
from .monitor import PerformanceMonitor
from .ring_buffer import RingBuffer, SeriesSet

__all__ = [
    "CounterStore",
    "SessionState",
    "Derivation",
    "derive",
    "EventBus",
    "PerformanceMonitor",
    "RingBuffer",
    "SeriesSet",
]
