from .base import BaseCollector
from .poll_scheduler import PollScheduler, SchedulerState

__all__ = [
    "BaseCollector",
    "PollScheduler",
    "SchedulerState",
]
