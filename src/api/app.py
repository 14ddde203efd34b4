# src/api/app.py

"""Thin HTTP surface: cron trigger, manual refresh and history reads."""

import asyncio
import hmac
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.config.settings import Settings
from src.models.listing import Listing
from src.models.listing_event import ListingEvent
from src.models.listing_snapshot import ListingSnapshot
from src.services.scrape_orchestrator import (
    BatchAlreadyRunningError,
    ScrapeOrchestrator,
)
from src.storage.listing_store import ListingNotFoundError

logger = logging.getLogger("price_watch.api")


# ── Response models ──────────────────────────────────────


def _as_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class ListingResponse(BaseModel):
    """A listing as returned to API clients."""

    id: int
    tracker_id: int
    url: str
    domain: str
    title: str | None
    current_price: float | None
    is_available: bool
    last_checked_at: datetime | None

    @classmethod
    def from_listing(cls, listing: Listing) -> "ListingResponse":
        return cls(
            id=listing.id,
            tracker_id=listing.tracker_id,
            url=listing.url,
            domain=listing.domain,
            title=listing.title,
            current_price=_as_float(listing.current_price),
            is_available=listing.is_available,
            last_checked_at=listing.last_checked_at,
        )


class SnapshotResponse(BaseModel):
    """One history point."""

    id: int
    listing_id: int
    price: float | None
    is_available: bool
    source: str
    created_at: datetime

    @classmethod
    def from_snapshot(
        cls, snapshot: ListingSnapshot,
    ) -> "SnapshotResponse":
        return cls(
            id=snapshot.id,
            listing_id=snapshot.listing_id,
            price=_as_float(snapshot.price),
            is_available=snapshot.is_available,
            source=snapshot.source.value,
            created_at=snapshot.created_at,
        )


class EventResponse(BaseModel):
    """One derived change event."""

    id: int
    listing_id: int
    tracker_id: int
    event_type: str
    metadata: dict[str, Any] | None
    created_at: datetime

    @classmethod
    def from_event(cls, event: ListingEvent) -> "EventResponse":
        metadata = (
            {
                k: float(v) if isinstance(v, Decimal) else v
                for k, v in event.metadata.items()
            }
            if event.metadata is not None
            else None
        )
        return cls(
            id=event.id,
            listing_id=event.listing_id,
            tracker_id=event.tracker_id,
            event_type=event.event_type.value,
            metadata=metadata,
            created_at=event.created_at,
        )


def _is_authorized(authorization: str | None) -> bool:
    """Check a ``Bearer <CRON_SECRET>`` header in constant time."""
    secret = Settings.CRON_SECRET
    if not secret or not authorization:
        return False
    expected = f"Bearer {secret}"
    return hmac.compare_digest(
        authorization.encode("utf-8"), expected.encode("utf-8"),
    )


def create_app(
    orchestrator: ScrapeOrchestrator | None = None,
) -> FastAPI:
    """Build the FastAPI app around a (possibly injected) orchestrator."""
    app = FastAPI(
        title="price_watch",
        description="Listing price and stock monitor",
        version="1.0.0",
    )
    service = orchestrator or ScrapeOrchestrator()

    @app.get("/api/trackers/scrape")
    async def run_scrape(
        authorization: str | None = Header(default=None),
    ) -> JSONResponse:
        """Run the full batch synchronously (scheduler entry point)."""
        if not _is_authorized(authorization):
            logger.warning("Rejected scrape trigger: bad credentials")
            return JSONResponse(
                {"ok": False, "error": "Unauthorized"},
                status_code=401,
            )
        try:
            report = await service.run_batch()
        except BatchAlreadyRunningError as exc:
            return JSONResponse(
                {"ok": False, "error": str(exc)}, status_code=409,
            )
        except Exception as exc:
            logger.error("Batch run failed: %s", exc, exc_info=True)
            return JSONResponse(
                {"ok": False, "error": str(exc)}, status_code=500,
            )

        body: dict[str, Any] = {
            "ok": True,
            "processed": report.processed,
        }
        if report.errors:
            body["errors"] = report.errors
        return JSONResponse(body)

    @app.post(
        "/api/listings/{listing_id}/refresh",
        response_model=ListingResponse,
    )
    async def refresh_listing(listing_id: int) -> ListingResponse:
        """Re-scrape one listing and return its updated record."""
        try:
            update = await asyncio.to_thread(
                service.refresh_listing, listing_id,
            )
        except ListingNotFoundError as exc:
            raise HTTPException(
                status_code=404, detail="Listing not found",
            ) from exc
        except Exception as exc:
            logger.error(
                "Refresh of listing %d failed: %s",
                listing_id,
                exc,
                exc_info=True,
            )
            raise HTTPException(
                status_code=500, detail="Internal Server Error",
            ) from exc
        return ListingResponse.from_listing(update.listing)

    @app.get("/api/listings/{listing_id}/snapshots")
    async def listing_snapshots(listing_id: int) -> dict[str, Any]:
        """Return a listing's history, oldest first."""
        snapshots = await asyncio.to_thread(
            service.store.get_listing_snapshots, listing_id,
        )
        return {
            "listingSnapshots": [
                SnapshotResponse.from_snapshot(s).model_dump(mode="json")
                for s in snapshots
            ],
        }

    @app.get("/api/listings/{listing_id}/events")
    async def listing_events(listing_id: int) -> dict[str, Any]:
        """Return a listing's derived events, oldest first."""
        events = await asyncio.to_thread(
            service.store.get_listing_events, listing_id,
        )
        return {
            "listingEvents": [
                EventResponse.from_event(e).model_dump(mode="json")
                for e in events
            ],
        }

    return app
