# src/models/listing_snapshot.py

"""Append-only price/availability history record for a listing."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class SnapshotSource(str, Enum):
    """Which kind of run produced a snapshot."""

    MANUAL = "manual"
    CRON = "cron"


@dataclass(frozen=True)
class ListingSnapshot:
    """A single price/availability observation for a listing."""

    id: int
    listing_id: int
    price: Decimal | None
    is_available: bool
    source: SnapshotSource
    created_at: datetime
