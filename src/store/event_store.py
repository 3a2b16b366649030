"""Append-only contributor event store.

This module persists deduplicated events keyed by external event id.
Events are immutable once stored; only bulk truncation removes them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import sqlite3
from typing import Sequence

from core.logging_config import get_logger
from core.timestamps import format_optional_timestamp, format_timestamp, parse_storage_timestamp
from core.types import ContributorEvent, InsertOutcome
from store.database import Database

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ContributorHistory:
    """Ordered events of one contributor plus the ingest watermark.

    Attributes:
        events: Non-ignored events ordered by timestamp then event id.
        watermark: Highest event row id stored for the contributor.
    """

    events: tuple[ContributorEvent, ...]
    watermark: int


class EventStore:
    """SQLite-backed event store."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def insert(self, event: ContributorEvent) -> InsertOutcome:
        """Insert one event, skipping duplicates by event id.

        Args:
            event: Event to persist.

        Returns:
            ``"inserted"`` for new events, ``"duplicate"`` when the id exists.

        Raises:
            LadderboardStoreError: If the write fails.
        """
        with self._database.connection() as conn:
            inserted_rows = conn.execute(
                """
                INSERT OR IGNORE INTO events (
                    event_id, contributor_id, contributor_created_date,
                    event_type, event_data, event_created_date
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    event.event_id,
                    event.contributor_id,
                    format_optional_timestamp(event.contributor_created_date),
                    event.event_type,
                    event.event_data,
                    format_timestamp(event.event_created_date),
                ),
            ).rowcount
        return "inserted" if inserted_rows == 1 else "duplicate"

    def exists(self, event_id: str) -> bool:
        with self._database.connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM events WHERE event_id = ?", (event_id,)
            ).fetchone()
        return row is not None

    def load_history(
        self,
        contributor_id: str,
        ignored_event_types: Sequence[str] = (),
    ) -> ContributorHistory:
        """Load one contributor's events in replay order.

        Ties on identical timestamps are broken by event id so replays
        are deterministic.

        Args:
            contributor_id: Contributor to load.
            ignored_event_types: Event types excluded from the result.

        Returns:
            Ordered history with the contributor's ingest watermark.
        """
        type_filter, type_params = exclude_types_clause("event_type", ignored_event_types)
        with self._database.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT event_id, contributor_id, event_type, event_created_date,
                       contributor_created_date, event_data
                FROM events
                WHERE contributor_id = ? {type_filter}
                ORDER BY event_created_date ASC, event_id ASC, internal_id ASC
                """,
                (contributor_id, *type_params),
            ).fetchall()
            watermark_row = conn.execute(
                "SELECT COALESCE(MAX(internal_id), 0) FROM events WHERE contributor_id = ?",
                (contributor_id,),
            ).fetchone()
        return ContributorHistory(
            events=tuple(_event_from_row(row) for row in rows),
            watermark=int(watermark_row[0]),
        )

    def timestamp_bounds(self) -> tuple[datetime, datetime] | None:
        """Return earliest and latest event timestamps, or None when empty."""
        with self._database.connection() as conn:
            row = conn.execute(
                "SELECT MIN(event_created_date), MAX(event_created_date) FROM events"
            ).fetchone()
        earliest = parse_storage_timestamp(row[0])
        latest = parse_storage_timestamp(row[1])
        if earliest is None or latest is None:
            return None
        return earliest, latest

    def count(self) -> int:
        with self._database.connection() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM events").fetchone()[0])

    def count_contributors(
        self,
        ignored_event_types: Sequence[str] = (),
        min_registered_date: datetime | None = None,
    ) -> int:
        """Count distinct contributors with at least one non-ignored event."""
        type_filter, type_params = exclude_types_clause("event_type", ignored_event_types)
        date_filter, date_params = registered_date_clause(
            "contributor_created_date", min_registered_date
        )
        with self._database.connection() as conn:
            row = conn.execute(
                f"""
                SELECT COUNT(DISTINCT contributor_id) FROM events
                WHERE 1 = 1 {type_filter} {date_filter}
                """,
                (*type_params, *date_params),
            ).fetchone()
        return int(row[0])

    def delete_all(self) -> int:
        """Bulk-truncate the event table and return removed row count."""
        with self._database.connection() as conn:
            removed = conn.execute("DELETE FROM events").rowcount
        _LOGGER.info("events_truncated", removed=removed)
        return removed


def registered_date_clause(
    column: str,
    min_registered_date: datetime | None,
) -> tuple[str, tuple[str, ...]]:
    """Build an ``AND column >= ?`` clause for the registration filter."""
    if min_registered_date is None:
        return "", ()
    return f"AND {column} >= ?", (format_timestamp(min_registered_date),)


def exclude_types_clause(
    column: str,
    ignored_event_types: Sequence[str],
) -> tuple[str, tuple[str, ...]]:
    """Build an ``AND column NOT IN (...)`` clause for ignored types."""
    if not ignored_event_types:
        return "", ()
    placeholders = ", ".join("?" for _ in ignored_event_types)
    return f"AND {column} NOT IN ({placeholders})", tuple(ignored_event_types)


def _event_from_row(row: sqlite3.Row) -> ContributorEvent:
    return ContributorEvent(
        event_id=str(row["event_id"]),
        contributor_id=str(row["contributor_id"]),
        event_type=str(row["event_type"]),
        event_created_date=parse_storage_timestamp(row["event_created_date"]) or datetime.min,
        contributor_created_date=parse_storage_timestamp(row["contributor_created_date"]),
        event_data=row["event_data"],
    )
