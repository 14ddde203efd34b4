# src/storage/listing_store.py

"""SQLite-backed store for trackers, listings and their history."""

import json
import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from src.config.settings import Settings
from src.models.listing import Listing, Tracker
from src.models.listing_event import EventType, ListingEvent
from src.models.listing_snapshot import ListingSnapshot, SnapshotSource

logger = logging.getLogger("price_watch.store")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS trackers (
    id                     INTEGER PRIMARY KEY AUTOINCREMENT,
    title                  TEXT    NOT NULL,
    description            TEXT,
    target_price           TEXT,
    lowest_available_price TEXT,
    is_archived            INTEGER NOT NULL DEFAULT 0,
    created_at             TEXT    NOT NULL,
    updated_at             TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS listings (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    tracker_id      INTEGER NOT NULL
                    REFERENCES trackers(id) ON DELETE CASCADE,
    url             TEXT    NOT NULL,
    domain          TEXT    NOT NULL,
    title           TEXT,
    current_price   TEXT,
    is_available    INTEGER NOT NULL DEFAULT 0,
    last_checked_at TEXT,
    created_at      TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS listing_snapshots (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    listing_id   INTEGER NOT NULL
                 REFERENCES listings(id) ON DELETE CASCADE,
    price        TEXT,
    is_available INTEGER NOT NULL,
    source       TEXT    NOT NULL CHECK (source IN ('manual', 'cron')),
    created_at   TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS listing_events (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    listing_id INTEGER NOT NULL
               REFERENCES listings(id) ON DELETE CASCADE,
    tracker_id INTEGER NOT NULL
               REFERENCES trackers(id) ON DELETE CASCADE,
    event_type TEXT    NOT NULL CHECK (event_type IN (
                   'PRICE_DROP', 'PRICE_INCREASE',
                   'BACK_IN_STOCK', 'OUT_OF_STOCK'
               )),
    metadata   TEXT,
    created_at TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_listings_tracker
    ON listings(tracker_id);

CREATE INDEX IF NOT EXISTS idx_snapshots_listing_date
    ON listing_snapshots(listing_id, created_at);

CREATE INDEX IF NOT EXISTS idx_events_listing_date
    ON listing_events(listing_id, created_at);
"""

_TRACKER_COLUMNS = (
    "id, title, description, target_price, lowest_available_price, "
    "is_archived, created_at, updated_at"
)
_LISTING_COLUMNS = (
    "id, tracker_id, url, domain, title, current_price, "
    "is_available, last_checked_at, created_at"
)
_SNAPSHOT_COLUMNS = (
    "id, listing_id, price, is_available, source, created_at"
)
_EVENT_COLUMNS = (
    "id, listing_id, tracker_id, event_type, metadata, created_at"
)


class PersistenceError(Exception):
    """A store transaction failed and was rolled back."""


class ListingNotFoundError(LookupError):
    """No listing exists with the requested id."""

    def __init__(self, listing_id: int) -> None:
        self.listing_id = listing_id
        super().__init__(f"Listing {listing_id} not found")


class TrackerNotFoundError(LookupError):
    """No tracker exists with the requested id."""

    def __init__(self, tracker_id: int) -> None:
        self.tracker_id = tracker_id
        super().__init__(f"Tracker {tracker_id} not found")


# ── Row conversion ───────────────────────────────────────


def _to_decimal(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _from_decimal(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _to_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_tracker(row: tuple[Any, ...]) -> Tracker:
    return Tracker(
        id=row[0],
        title=row[1],
        description=row[2],
        target_price=_to_decimal(row[3]),
        lowest_available_price=_to_decimal(row[4]),
        is_archived=bool(row[5]),
        created_at=_to_datetime(row[6]),
        updated_at=_to_datetime(row[7]),
    )


def _row_to_listing(row: tuple[Any, ...]) -> Listing:
    return Listing(
        id=row[0],
        tracker_id=row[1],
        url=row[2],
        domain=row[3],
        title=row[4],
        current_price=_to_decimal(row[5]),
        is_available=bool(row[6]),
        last_checked_at=_to_datetime(row[7]),
        created_at=_to_datetime(row[8]),
    )


def _row_to_snapshot(row: tuple[Any, ...]) -> ListingSnapshot:
    return ListingSnapshot(
        id=row[0],
        listing_id=row[1],
        price=_to_decimal(row[2]),
        is_available=bool(row[3]),
        source=SnapshotSource(row[4]),
        created_at=datetime.fromisoformat(row[5]),
    )


def _dump_metadata(metadata: dict[str, Any] | None) -> str | None:
    if metadata is None:
        return None
    return json.dumps(metadata, default=str)


def _load_metadata(raw: str | None) -> dict[str, Any] | None:
    if raw is None:
        return None
    data: dict[str, Any] = json.loads(raw)
    for key in ("oldPrice", "newPrice"):
        if data.get(key) is not None:
            data[key] = Decimal(str(data[key]))
    return data


def _row_to_event(row: tuple[Any, ...]) -> ListingEvent:
    return ListingEvent(
        id=row[0],
        listing_id=row[1],
        tracker_id=row[2],
        event_type=EventType(row[3]),
        metadata=_load_metadata(row[4]),
        created_at=datetime.fromisoformat(row[5]),
    )


def domain_of(url: str) -> str:
    """Return the host part of a listing URL."""
    return urlparse(url).hostname or ""


class StoreTransaction:
    """Reads and writes bound to one open SQLite transaction.

    Snapshots and events can only be inserted, never changed.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get_listing(self, listing_id: int) -> Listing | None:
        row = self._conn.execute(
            f"SELECT {_LISTING_COLUMNS} FROM listings WHERE id = ?",
            (listing_id,),
        ).fetchone()
        return _row_to_listing(row) if row else None

    def get_tracker(self, tracker_id: int) -> Tracker | None:
        row = self._conn.execute(
            f"SELECT {_TRACKER_COLUMNS} FROM trackers WHERE id = ?",
            (tracker_id,),
        ).fetchone()
        return _row_to_tracker(row) if row else None

    def latest_snapshot(
        self, listing_id: int,
    ) -> ListingSnapshot | None:
        """Return the most recent snapshot for a listing."""
        row = self._conn.execute(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM listing_snapshots "
            "WHERE listing_id = ? "
            "ORDER BY created_at DESC, id DESC LIMIT 1",
            (listing_id,),
        ).fetchone()
        return _row_to_snapshot(row) if row else None

    def update_listing(
        self,
        listing_id: int,
        title: str | None,
        current_price: Decimal | None,
        is_available: bool,
        last_checked_at: datetime,
    ) -> None:
        self._conn.execute(
            "UPDATE listings SET title = ?, current_price = ?, "
            "is_available = ?, last_checked_at = ? WHERE id = ?",
            (
                title,
                _from_decimal(current_price),
                int(is_available),
                last_checked_at.isoformat(),
                listing_id,
            ),
        )

    def set_lowest_available_price(
        self,
        tracker_id: int,
        price: Decimal,
        updated_at: datetime,
    ) -> None:
        self._conn.execute(
            "UPDATE trackers SET lowest_available_price = ?, "
            "updated_at = ? WHERE id = ?",
            (str(price), updated_at.isoformat(), tracker_id),
        )

    def insert_snapshot(
        self,
        listing_id: int,
        price: Decimal | None,
        is_available: bool,
        source: SnapshotSource,
        created_at: datetime,
    ) -> ListingSnapshot:
        cur = self._conn.execute(
            "INSERT INTO listing_snapshots "
            "(listing_id, price, is_available, source, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                listing_id,
                _from_decimal(price),
                int(is_available),
                source.value,
                created_at.isoformat(),
            ),
        )
        return ListingSnapshot(
            id=int(cur.lastrowid or 0),
            listing_id=listing_id,
            price=price,
            is_available=is_available,
            source=source,
            created_at=created_at,
        )

    def insert_event(
        self,
        listing_id: int,
        tracker_id: int,
        event_type: EventType,
        metadata: dict[str, Any] | None,
        created_at: datetime,
    ) -> ListingEvent:
        cur = self._conn.execute(
            "INSERT INTO listing_events "
            "(listing_id, tracker_id, event_type, metadata, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                listing_id,
                tracker_id,
                event_type.value,
                _dump_metadata(metadata),
                created_at.isoformat(),
            ),
        )
        return ListingEvent(
            id=int(cur.lastrowid or 0),
            listing_id=listing_id,
            tracker_id=tracker_id,
            event_type=event_type,
            metadata=metadata,
            created_at=created_at,
        )


class ListingStore:
    """SQLite store for trackers, listings, snapshots and events.

    One connection is shared by all worker threads; every statement
    and transaction runs under a single lock.
    """

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode: transactions are opened explicitly
        self._conn = sqlite3.connect(
            str(path),
            check_same_thread=False,
            isolation_level=None,
        )
        self._lock = threading.RLock()
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("ListingStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Run a block atomically; any exception rolls everything back.

        ``sqlite3.Error`` is re-raised as :class:`PersistenceError`;
        other exceptions propagate unchanged after the rollback.
        """
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise PersistenceError(str(exc)) from exc
            try:
                yield StoreTransaction(self._conn)
            except sqlite3.Error as exc:
                self._conn.execute("ROLLBACK")
                logger.error(
                    "Transaction rolled back: %s", exc, exc_info=True,
                )
                raise PersistenceError(str(exc)) from exc
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            try:
                self._conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._conn.execute("ROLLBACK")
                raise PersistenceError(str(exc)) from exc

    # ── Trackers & listings ──────────────────────────────

    def create_tracker(
        self,
        title: str,
        description: str | None = None,
        target_price: Decimal | None = None,
    ) -> Tracker:
        """Insert a tracker and return it."""
        now = datetime.now()
        with self._lock:
            cur = self._conn.execute(
                "INSERT INTO trackers "
                "(title, description, target_price, "
                " created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    title,
                    description,
                    _from_decimal(target_price),
                    now.isoformat(),
                    now.isoformat(),
                ),
            )
        logger.info("Created tracker %d (%s)", cur.lastrowid, title)
        return Tracker(
            id=int(cur.lastrowid or 0),
            title=title,
            description=description,
            target_price=target_price,
            created_at=now,
            updated_at=now,
        )

    def create_listing(
        self,
        tracker_id: int,
        url: str,
        title: str | None = None,
        current_price: Decimal | None = None,
        is_available: bool = False,
        last_checked_at: datetime | None = None,
    ) -> Listing:
        """Insert a listing under an existing tracker and return it."""
        if self.get_tracker(tracker_id) is None:
            raise TrackerNotFoundError(tracker_id)
        now = datetime.now()
        domain = domain_of(url)
        with self._lock:
            cur = self._conn.execute(
                "INSERT INTO listings "
                "(tracker_id, url, domain, title, current_price, "
                " is_available, last_checked_at, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    tracker_id,
                    url,
                    domain,
                    title,
                    _from_decimal(current_price),
                    int(is_available),
                    last_checked_at.isoformat()
                    if last_checked_at
                    else None,
                    now.isoformat(),
                ),
            )
        logger.info(
            "Created listing %d for tracker %d (%s)",
            cur.lastrowid,
            tracker_id,
            url,
        )
        return Listing(
            id=int(cur.lastrowid or 0),
            tracker_id=tracker_id,
            url=url,
            domain=domain,
            title=title,
            current_price=current_price,
            is_available=is_available,
            last_checked_at=last_checked_at,
            created_at=now,
        )

    def get_tracker(self, tracker_id: int) -> Tracker | None:
        """Return a tracker (without listings), or None."""
        with self._lock:
            return StoreTransaction(self._conn).get_tracker(tracker_id)

    def get_listing(self, listing_id: int) -> Listing | None:
        """Return a listing, or None."""
        with self._lock:
            return StoreTransaction(self._conn).get_listing(listing_id)

    def get_trackers_with_listings(self) -> list[Tracker]:
        """Return every tracker with its ``listings`` populated."""
        with self._lock:
            tracker_rows = self._conn.execute(
                f"SELECT {_TRACKER_COLUMNS} FROM trackers ORDER BY id",
            ).fetchall()
            listing_rows = self._conn.execute(
                f"SELECT {_LISTING_COLUMNS} FROM listings ORDER BY id",
            ).fetchall()

        trackers = [_row_to_tracker(r) for r in tracker_rows]
        by_id = {t.id: t for t in trackers}
        for row in listing_rows:
            listing = _row_to_listing(row)
            owner = by_id.get(listing.tracker_id)
            if owner is not None:
                owner.listings.append(listing)
        return trackers

    # ── History ──────────────────────────────────────────

    def get_listing_snapshots(
        self, listing_id: int,
    ) -> list[ListingSnapshot]:
        """Return all snapshots for a listing, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_SNAPSHOT_COLUMNS} FROM listing_snapshots "
                "WHERE listing_id = ? "
                "ORDER BY created_at ASC, id ASC",
                (listing_id,),
            ).fetchall()
        return [_row_to_snapshot(r) for r in rows]

    def get_latest_snapshot(
        self, listing_id: int,
    ) -> ListingSnapshot | None:
        """Return the most recent snapshot for a listing, or None."""
        with self._lock:
            return StoreTransaction(self._conn).latest_snapshot(
                listing_id
            )

    def get_listing_events(
        self,
        listing_id: int | None = None,
        tracker_id: int | None = None,
    ) -> list[ListingEvent]:
        """Return events, oldest first, filtered by listing or tracker."""
        clauses: list[str] = []
        params: list[int] = []
        if listing_id is not None:
            clauses.append("listing_id = ?")
            params.append(listing_id)
        if tracker_id is not None:
            clauses.append("tracker_id = ?")
            params.append(tracker_id)
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_EVENT_COLUMNS} FROM listing_events "
                f"{where}ORDER BY created_at ASC, id ASC",
                params,
            ).fetchall()
        return [_row_to_event(r) for r in rows]
