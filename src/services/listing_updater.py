# src/services/listing_updater.py

"""Apply one completed scrape to a listing, its tracker and its history.

The listing fields, the tracker's lowest available price, the new
snapshot and the derived events are written in a single transaction:
either all of them land or none do.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.models.listing import Listing
from src.models.listing_event import ListingEvent
from src.models.listing_snapshot import ListingSnapshot, SnapshotSource
from src.models.scraped_data import ScrapedData
from src.services.event_detector import detect_listing_events
from src.storage.listing_store import ListingNotFoundError, ListingStore

logger = logging.getLogger("price_watch.updater")


@dataclass
class ListingUpdate:
    """Everything written for one listing by one scrape."""

    listing: Listing
    snapshot: ListingSnapshot
    events: list[ListingEvent] = field(
        default_factory=lambda: list[ListingEvent]()
    )
    lowest_available_price: Decimal | None = None


def next_lowest_price(
    stored: Decimal | None,
    scraped_price: Decimal | None,
    is_available: bool,
) -> Decimal | None:
    """Return the tracker aggregate after observing one scrape.

    Only available, priced observations count.  The value seeds from
    the first one and afterwards never goes up.
    """
    if not is_available or scraped_price is None:
        return stored
    if stored is None:
        return scraped_price
    return min(stored, scraped_price)


class ListingUpdater:
    """Persist scrape results atomically, one listing at a time.

    Several listings of the same tracker may be scraped in parallel;
    the read-modify-write of the tracker aggregate is serialized with a
    lock per tracker.
    """

    def __init__(
        self,
        store: ListingStore,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._clock = clock
        self._tracker_locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _tracker_lock(self, tracker_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._tracker_locks.get(tracker_id)
            if lock is None:
                lock = threading.Lock()
                self._tracker_locks[tracker_id] = lock
            return lock

    def apply(
        self,
        listing: Listing,
        scraped: ScrapedData,
        source: SnapshotSource,
    ) -> ListingUpdate:
        """Write *scraped* for *listing* and return what was stored.

        Raises:
            ListingNotFoundError: the listing no longer exists.
            PersistenceError: the transaction failed and was rolled back.
        """
        now = self._clock()

        with self._tracker_lock(listing.tracker_id):
            with self._store.transaction() as tx:
                current = tx.get_listing(listing.id)
                if current is None:
                    raise ListingNotFoundError(listing.id)

                # Baseline must be read before this scrape's snapshot
                previous = tx.latest_snapshot(current.id)

                # Never write a null over a known price
                new_price = (
                    scraped.price
                    if scraped.price is not None
                    else current.current_price
                )
                title = current.title or scraped.title or None
                tx.update_listing(
                    current.id,
                    title=title,
                    current_price=new_price,
                    is_available=scraped.is_available,
                    last_checked_at=now,
                )

                tracker = tx.get_tracker(current.tracker_id)
                lowest = (
                    tracker.lowest_available_price if tracker else None
                )
                if tracker is not None:
                    updated_lowest = next_lowest_price(
                        lowest, scraped.price, scraped.is_available,
                    )
                    if (
                        updated_lowest is not None
                        and updated_lowest != lowest
                    ):
                        tx.set_lowest_available_price(
                            tracker.id, updated_lowest, now,
                        )
                        logger.info(
                            "Tracker %d lowest available price %s -> %s",
                            tracker.id,
                            lowest,
                            updated_lowest,
                        )
                        lowest = updated_lowest

                snapshot = tx.insert_snapshot(
                    current.id,
                    price=new_price,
                    is_available=scraped.is_available,
                    source=source,
                    created_at=now,
                )

                events = [
                    tx.insert_event(
                        current.id,
                        current.tracker_id,
                        detected.event_type,
                        detected.metadata,
                        now,
                    )
                    for detected in detect_listing_events(
                        scraped, previous,
                    )
                ]

        for event in events:
            logger.info(
                "Listing %d: %s %s",
                event.listing_id,
                event.event_type.value,
                event.metadata or "",
            )

        updated = Listing(
            id=current.id,
            tracker_id=current.tracker_id,
            url=current.url,
            domain=current.domain,
            title=title,
            current_price=new_price,
            is_available=scraped.is_available,
            last_checked_at=now,
            created_at=current.created_at,
        )
        return ListingUpdate(
            listing=updated,
            snapshot=snapshot,
            events=events,
            lowest_available_price=lowest,
        )
