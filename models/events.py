"""
Data models for events exchanged between analytics collaborators.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import EventSource

CUSTOMER_SELECTED = "customer.selected"


class AnalyticsEvent(BaseModel):
    """Base event published on the analytics event bus."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str  # Generic event type name
    payload: dict[str, Any]
    source: EventSource
    timestamp: datetime = Field(default_factory=datetime.now)


class CustomerSelected(AnalyticsEvent):
    """A customer id was scanned or typed somewhere in the host application."""

    event_type: str = CUSTOMER_SELECTED
    source: EventSource = EventSource.SCANNER

    @property
    def customer_id(self) -> str:
        return str(self.payload.get("customer_id") or "")
