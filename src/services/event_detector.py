# src/services/event_detector.py

"""Derive change events by comparing a scrape with the previous snapshot."""

from src.models.listing_event import DetectedEvent, EventType
from src.models.listing_snapshot import ListingSnapshot
from src.models.scraped_data import ScrapedData


def detect_listing_events(
    current: ScrapedData,
    previous: ListingSnapshot | None,
) -> list[DetectedEvent]:
    """Return the price and stock events between two observations.

    Without a previous snapshot there is no baseline and nothing is
    emitted.  Prices are compared only when both sides have one; a
    missing price is never treated as a drop to zero.  At most one
    price event and one availability event come out of a comparison.
    """
    events: list[DetectedEvent] = []
    if previous is None:
        return events

    if current.price is not None and previous.price is not None:
        metadata = {
            "oldPrice": previous.price,
            "newPrice": current.price,
        }
        if current.price < previous.price:
            events.append(
                DetectedEvent(EventType.PRICE_DROP, metadata)
            )
        elif current.price > previous.price:
            events.append(
                DetectedEvent(EventType.PRICE_INCREASE, metadata)
            )

    if current.is_available and not previous.is_available:
        events.append(DetectedEvent(EventType.BACK_IN_STOCK))
    elif not current.is_available and previous.is_available:
        events.append(DetectedEvent(EventType.OUT_OF_STOCK))

    return events
