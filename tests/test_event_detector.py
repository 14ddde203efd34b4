# tests/test_event_detector.py

"""Tests for change-event derivation."""

import unittest
from datetime import datetime
from decimal import Decimal

from src.models.listing_event import EventType
from src.models.listing_snapshot import ListingSnapshot, SnapshotSource
from src.models.scraped_data import ScrapedData
from src.services.event_detector import detect_listing_events


def _snapshot(
    price: str | None, is_available: bool,
) -> ListingSnapshot:
    return ListingSnapshot(
        id=1,
        listing_id=1,
        price=Decimal(price) if price is not None else None,
        is_available=is_available,
        source=SnapshotSource.CRON,
        created_at=datetime(2026, 1, 1),
    )


def _scraped(price: str | None, is_available: bool) -> ScrapedData:
    return ScrapedData(
        title="Item",
        price=Decimal(price) if price is not None else None,
        is_available=is_available,
    )


class TestDetectListingEvents(unittest.TestCase):
    """Snapshot comparison rules."""

    def test_price_drop(self) -> None:
        """100 -> 90 emits exactly one PRICE_DROP with both prices."""
        events = detect_listing_events(
            _scraped("90", True), _snapshot("100", True),
        )
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].event_type, EventType.PRICE_DROP)
        self.assertEqual(
            events[0].metadata,
            {"oldPrice": Decimal("100"), "newPrice": Decimal("90")},
        )

    def test_price_increase(self) -> None:
        """A higher price emits PRICE_INCREASE."""
        events = detect_listing_events(
            _scraped("120", True), _snapshot("100", True),
        )
        self.assertEqual(
            [e.event_type for e in events], [EventType.PRICE_INCREASE],
        )

    def test_equal_price_no_event(self) -> None:
        """Unchanged price and stock emit nothing."""
        self.assertEqual(
            detect_listing_events(
                _scraped("100.00", True), _snapshot("100", True),
            ),
            [],
        )

    def test_no_previous_snapshot(self) -> None:
        """Cold start emits nothing regardless of the record."""
        self.assertEqual(
            detect_listing_events(_scraped("1", False), None), [],
        )

    def test_null_previous_price_suppresses_price_event(self) -> None:
        """A missing baseline price is not a drop or rise."""
        events = detect_listing_events(
            _scraped("50", True), _snapshot(None, False),
        )
        self.assertEqual(
            [e.event_type for e in events], [EventType.BACK_IN_STOCK],
        )

    def test_null_current_price_suppresses_price_event(self) -> None:
        """A scrape without a price is not a drop to zero."""
        events = detect_listing_events(
            _scraped(None, True), _snapshot("50", True),
        )
        self.assertEqual(events, [])

    def test_out_of_stock(self) -> None:
        """Available -> unavailable emits OUT_OF_STOCK without metadata."""
        events = detect_listing_events(
            _scraped("10", False), _snapshot("10", True),
        )
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].event_type, EventType.OUT_OF_STOCK)
        self.assertIsNone(events[0].metadata)

    def test_price_and_stock_events_together(self) -> None:
        """A price event and a stock event can co-occur."""
        events = detect_listing_events(
            _scraped("80", True), _snapshot("100", False),
        )
        self.assertEqual(
            [e.event_type for e in events],
            [EventType.PRICE_DROP, EventType.BACK_IN_STOCK],
        )


if __name__ == "__main__":
    unittest.main()
