# src/services/scrape_orchestrator.py

"""Orchestrates scheduled batch runs and single-listing refreshes."""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from urllib.parse import urlparse

from src.config.settings import Settings
from src.models.listing import Listing
from src.models.listing_snapshot import SnapshotSource
from src.models.scraped_data import ScrapedData
from src.scrapers.fetcher import FetchError, PageFetcher
from src.scrapers.listing_scraper import scrape_listing_data
from src.services.listing_updater import ListingUpdate, ListingUpdater
from src.storage.listing_store import (
    ListingNotFoundError,
    ListingStore,
    PersistenceError,
)

logger = logging.getLogger("price_watch.orchestrator")


class BatchAlreadyRunningError(RuntimeError):
    """A batch run was requested while another one is in progress."""


class FailureStage(str, Enum):
    """Pipeline stage at which a listing's scrape failed."""

    FETCH = "fetch"
    PERSIST = "persist"
    UNEXPECTED = "unexpected"


@dataclass
class ListingFailure:
    """Why one listing could not be processed."""

    listing_id: int
    stage: FailureStage
    reason: str

    def describe(self) -> str:
        """Operator-facing one-liner, e.g. ``Listing 7: HTTP 503``."""
        return f"Listing {self.listing_id}: {self.reason}"


@dataclass
class ListingOutcome:
    """Result of one listing's pipeline: an update or a failure."""

    listing_id: int
    update: ListingUpdate | None = None
    failure: ListingFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class BatchReport:
    """Accumulated result of a batch run."""

    total: int = 0
    processed: int = 0
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )
    failures: list[ListingFailure] = field(
        default_factory=lambda: list[ListingFailure]()
    )

    def record(self, outcome: ListingOutcome) -> None:
        """Fold one listing's outcome into the report."""
        if outcome.failure is None:
            self.processed += 1
            return
        self.failures.append(outcome.failure)
        self.errors.append(outcome.failure.describe())


class ScrapeOrchestrator:
    """Runs Fetch → Extract → Detect → Persist for listings.

    Batch runs isolate failures per listing.  Single refreshes surface
    their failure to the caller.
    """

    def __init__(
        self,
        store: ListingStore | None = None,
        fetcher: PageFetcher | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self.settings = Settings()
        self.store = store or ListingStore()
        self.fetcher = fetcher or PageFetcher()
        self.updater = ListingUpdater(self.store)
        self._max_concurrency = max(
            1, max_concurrency or self.settings.MAX_CONCURRENT_SCRAPES
        )
        self._run_lock = threading.Lock()

    # ── Single listing ───────────────────────────────────

    def _process(
        self, listing: Listing, source: SnapshotSource,
    ) -> ListingUpdate:
        """Run the full pipeline for one listing, raising on failure."""
        scraped = scrape_listing_data(listing.url, self.fetcher)
        return self.updater.apply(listing, scraped, source)

    def scrape_listing(
        self,
        listing: Listing,
        source: SnapshotSource = SnapshotSource.CRON,
    ) -> ListingOutcome:
        """Process one listing and capture any failure as a value."""
        try:
            update = self._process(listing, source)
        except FetchError as exc:
            logger.warning(
                "Fetch failed for listing %d: %s", listing.id, exc,
            )
            return ListingOutcome(
                listing.id,
                failure=ListingFailure(
                    listing.id, FailureStage.FETCH, str(exc),
                ),
            )
        except (PersistenceError, ListingNotFoundError) as exc:
            logger.error(
                "Persisting listing %d failed: %s",
                listing.id,
                exc,
                exc_info=True,
            )
            return ListingOutcome(
                listing.id,
                failure=ListingFailure(
                    listing.id, FailureStage.PERSIST, str(exc),
                ),
            )
        except Exception as exc:
            logger.error(
                "Unexpected error for listing %d: %s",
                listing.id,
                exc,
                exc_info=True,
            )
            return ListingOutcome(
                listing.id,
                failure=ListingFailure(
                    listing.id,
                    FailureStage.UNEXPECTED,
                    f"{type(exc).__name__}: {exc}",
                ),
            )
        return ListingOutcome(listing.id, update=update)

    def refresh_listing(self, listing_id: int) -> ListingUpdate:
        """Manually refresh one listing; failures propagate.

        Raises:
            ListingNotFoundError: unknown listing id.
            FetchError: the page could not be retrieved.
            PersistenceError: the update was rolled back.
        """
        listing = self.store.get_listing(listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        logger.info("Manual refresh of listing %d", listing_id)
        return self._process(listing, SnapshotSource.MANUAL)

    def add_listing(
        self,
        tracker_id: int,
        url: str,
        title: str | None = None,
        price: Decimal | None = None,
    ) -> Listing:
        """Scrape a new URL once and store it as a listing.

        An explicit *title* or *price* wins over the scraped one.  The
        first scrape is persisted like a manual refresh: it writes the
        baseline snapshot and counts toward the tracker's lowest
        available price.

        Raises:
            ValueError: *url* is not an absolute http(s) URL.
            TrackerNotFoundError: unknown tracker id.
            FetchError: the page could not be retrieved.
            PersistenceError: the first snapshot could not be written.
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            msg = f"Invalid URL: {url!r}"
            raise ValueError(msg)

        scraped = scrape_listing_data(url, self.fetcher)
        observed = ScrapedData(
            title=title or scraped.title,
            price=price if price is not None else scraped.price,
            is_available=scraped.is_available,
        )
        listing = self.store.create_listing(
            tracker_id, url, title=observed.title or None,
        )
        update = self.updater.apply(
            listing, observed, SnapshotSource.MANUAL,
        )
        return update.listing

    # ── Batch ────────────────────────────────────────────

    async def run_batch(self) -> BatchReport:
        """Scrape every listing of every tracker once.

        Listings run concurrently up to the configured bound.  A single
        listing's failure is recorded and never stops the run.

        Raises:
            BatchAlreadyRunningError: another run holds the run lock.
        """
        if not self._run_lock.acquire(blocking=False):
            msg = "A batch run is already in progress"
            raise BatchAlreadyRunningError(msg)
        try:
            return await self._run_batch()
        finally:
            self._run_lock.release()

    async def _run_batch(self) -> BatchReport:
        trackers = await asyncio.to_thread(
            self.store.get_trackers_with_listings
        )
        listings = [
            listing
            for tracker in trackers
            for listing in tracker.listings
        ]
        report = BatchReport(total=len(listings))
        logger.info(
            "Batch run started: %d trackers, %d listings",
            len(trackers),
            len(listings),
        )

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run_one(listing: Listing) -> ListingOutcome:
            async with semaphore:
                return await asyncio.to_thread(
                    self.scrape_listing, listing, SnapshotSource.CRON,
                )

        outcomes = await asyncio.gather(
            *(run_one(listing) for listing in listings)
        )
        for outcome in outcomes:
            report.record(outcome)

        logger.info(
            "Batch run finished: %d/%d processed, %d errors",
            report.processed,
            report.total,
            len(report.errors),
        )
        return report
