# src/models/listing.py

"""Tracker and listing data models for inter-module data flow."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass
class Listing:
    """One tracked product page under a tracker."""

    id: int
    tracker_id: int
    url: str
    domain: str
    title: str | None = None
    current_price: Decimal | None = None
    is_available: bool = False
    last_checked_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class Tracker:
    """A user's price-watch goal grouping one or more listings.

    ``lowest_available_price`` is the minimum price ever observed across
    the tracker's listings while they were available.  Once set it only
    ever moves down.
    """

    id: int
    title: str
    description: str | None = None
    target_price: Decimal | None = None
    lowest_available_price: Decimal | None = None
    is_archived: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    listings: list[Listing] = field(
        default_factory=lambda: list[Listing]()
    )
