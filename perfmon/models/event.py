from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, Field


class EventSource(StrEnum):
    POLL_SCHEDULER = "poll_scheduler"
    MONITOR = "monitor"
    SIMULATOR = "simulator"


class EventType(StrEnum):
    METRICS_UPDATED = "metrics_updated"
    FETCH_FAILED = "fetch_failed"
    RESPONSE_DISCARDED = "response_discarded"
    DEVICE_CHANGED = "device_changed"


class Event(BaseModel):
    """Notice published to UI-facing subscribers."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    source: EventSource
    event_type: EventType
    device_id: str | None = None
    payload: dict = Field(default_factory=dict)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
