# src/cli/runner.py

"""Headless command runner, reusing the orchestrator and the store."""

import asyncio
import logging
from decimal import Decimal, InvalidOperation

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.models.listing import Listing
from src.scrapers.fetcher import FetchError
from src.services.scrape_orchestrator import (
    BatchAlreadyRunningError,
    ScrapeOrchestrator,
)
from src.storage.listing_store import (
    ListingNotFoundError,
    ListingStore,
    PersistenceError,
    TrackerNotFoundError,
)

logger = logging.getLogger("price_watch.cli")

# Stderr console for status messages so stdout stays clean for tables
_err = Console(stderr=True)


def _fmt_price(price: Decimal | None) -> str:
    return f"{price:,.2f}" if price is not None else "N/A"


def _parse_price(raw: str | None) -> Decimal | None:
    """Parse a ``--price`` argument; raises SystemExit on bad input."""
    if raw is None:
        return None
    try:
        value = Decimal(raw)
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite():
        _err.print(f"[red]Invalid price: {raw}[/red]")
        raise SystemExit(1)
    return value


def _print_listing(listing: Listing) -> None:
    """Render one listing as a two-column table."""
    table = Table(
        title=f"Listing {listing.id}",
        show_header=False,
        title_style="bold cyan",
    )
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Title", listing.title or "—")
    table.add_row("URL", listing.url)
    table.add_row("Price", _fmt_price(listing.current_price))
    table.add_row(
        "Available",
        "[green]yes[/green]" if listing.is_available else "[red]no[/red]",
    )
    table.add_row(
        "Last checked",
        listing.last_checked_at.isoformat(timespec="seconds")
        if listing.last_checked_at
        else "—",
    )
    Console().print(table)


def run_batch(store: ListingStore | None = None) -> int:
    """Run one batch over all listings and print a summary."""
    orchestrator = ScrapeOrchestrator(store=store)
    _err.print("[bold]Scraping all tracked listings...[/bold]")
    try:
        report = asyncio.run(orchestrator.run_batch())
    except BatchAlreadyRunningError as exc:
        _err.print(f"[yellow]{exc}[/yellow]")
        return 1

    for error_msg in report.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")
    _err.print(
        f"[green]✓ {report.processed} of {report.total}"
        " listings processed[/green]"
    )
    return 0


def run_refresh(
    listing_id: int, store: ListingStore | None = None,
) -> int:
    """Refresh one listing, surfacing any failure."""
    orchestrator = ScrapeOrchestrator(store=store)
    try:
        update = orchestrator.refresh_listing(listing_id)
    except ListingNotFoundError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    except (FetchError, PersistenceError) as exc:
        logger.error("Refresh failed: %s", exc, exc_info=True)
        _err.print(f"[red]Refresh failed: {exc}[/red]")
        return 1
    except Exception as exc:
        logger.error(
            "Unexpected error refreshing listing %d: %s",
            listing_id,
            exc,
            exc_info=True,
        )
        _err.print(f"[red]Refresh failed: {exc}[/red]")
        return 1

    _print_listing(update.listing)
    for event in update.events:
        _err.print(
            f"[magenta]{event.event_type.value}[/magenta] "
            f"{event.metadata or ''}"
        )
    return 0


def run_add_tracker(
    title: str,
    description: str | None = None,
    target_price: str | None = None,
    store: ListingStore | None = None,
) -> int:
    """Create a tracker and print its id."""
    db = store or ListingStore()
    tracker = db.create_tracker(
        title,
        description=description,
        target_price=_parse_price(target_price),
    )
    _err.print(f"[green]✓ Created tracker {tracker.id}[/green]")
    return 0


def run_add_listing(
    tracker_id: int,
    url: str,
    title: str | None = None,
    price: str | None = None,
    store: ListingStore | None = None,
) -> int:
    """Scrape a URL once and add it as a listing under a tracker."""
    orchestrator = ScrapeOrchestrator(store=store)
    try:
        listing = orchestrator.add_listing(
            tracker_id, url, title=title, price=_parse_price(price),
        )
    except (
        ValueError, TrackerNotFoundError, FetchError, PersistenceError,
    ) as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    _print_listing(listing)
    return 0


def run_history(
    listing_id: int, store: ListingStore | None = None,
) -> int:
    """Print a listing's snapshots and events."""
    db = store or ListingStore()
    listing = db.get_listing(listing_id)
    if listing is None:
        _err.print(f"[red]Listing {listing_id} not found[/red]")
        return 1

    _print_listing(listing)

    snapshots = Table(
        title="Snapshots",
        show_lines=False,
        title_style="bold cyan",
    )
    snapshots.add_column("When", style="dim")
    snapshots.add_column("Price", justify="right", style="green")
    snapshots.add_column("Available", justify="center")
    snapshots.add_column("Source", style="magenta")
    for snap in db.get_listing_snapshots(listing_id):
        snapshots.add_row(
            snap.created_at.isoformat(timespec="seconds"),
            _fmt_price(snap.price),
            "yes" if snap.is_available else "no",
            snap.source.value,
        )

    events = Table(title="Events", title_style="bold cyan")
    events.add_column("When", style="dim")
    events.add_column("Event", style="bold")
    events.add_column("Details")
    for event in db.get_listing_events(listing_id=listing_id):
        details = ""
        if event.metadata:
            details = (
                f"{_fmt_price(event.metadata.get('oldPrice'))} → "
                f"{_fmt_price(event.metadata.get('newPrice'))}"
            )
        events.add_row(
            event.created_at.isoformat(timespec="seconds"),
            event.event_type.value,
            details,
        )

    console = Console()
    console.print(snapshots)
    console.print(events)
    return 0


def run_server() -> int:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    from src.api.app import create_app

    _err.print(
        f"[bold]Serving on http://{Settings.API_HOST}:"
        f"{Settings.API_PORT}[/bold]"
    )
    uvicorn.run(
        create_app(),
        host=Settings.API_HOST,
        port=Settings.API_PORT,
        log_config=None,
    )
    return 0
