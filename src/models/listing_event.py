# src/models/listing_event.py

"""Derived change events (price moves, stock changes) for a listing."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class EventType(str, Enum):
    """Kinds of change detected between two consecutive snapshots."""

    PRICE_DROP = "PRICE_DROP"
    PRICE_INCREASE = "PRICE_INCREASE"
    BACK_IN_STOCK = "BACK_IN_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


@dataclass(frozen=True)
class DetectedEvent:
    """An event derived by comparison, not yet persisted."""

    event_type: EventType
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class ListingEvent:
    """A persisted, immutable change event."""

    id: int
    listing_id: int
    tracker_id: int
    event_type: EventType
    metadata: dict[str, Any] | None
    created_at: datetime
