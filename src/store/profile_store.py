"""Contributor profile persistence.

This module upserts one profile row per contributor and answers the
"which contributors need recomputation" query that drives generation.
Nested journey and count structures are serialized only here.
"""

from __future__ import annotations

from datetime import datetime
import sqlite3
from typing import Sequence, cast

from core.errors import LadderboardStoreError
from core.logging_config import get_logger
from core.timestamps import format_optional_timestamp, format_timestamp, parse_storage_timestamp
from core.types import ActivityStatus, ContributorProfile
from store.database import Database
from store.event_store import exclude_types_clause, registered_date_clause
from store.record_payload import (
    decode_event_counts,
    decode_journey,
    encode_event_counts,
    encode_journey,
)

_LOGGER = get_logger(__name__)


class ProfileStore:
    """SQLite-backed profile store keyed by contributor id."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def upsert(self, profile: ContributorProfile) -> None:
        """Insert or fully overwrite the profile for one contributor.

        Args:
            profile: Profile to persist.

        Raises:
            LadderboardStoreError: If the write fails.
        """
        with self._database.connection() as conn:
            conn.execute(
                """
                INSERT INTO profiles (
                    contributor_id, registered_date, ladder_journey, event_counts,
                    current_ladder, total_events, first_activity, last_activity,
                    status, computed_at, events_watermark
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(contributor_id) DO UPDATE SET
                    registered_date = excluded.registered_date,
                    ladder_journey = excluded.ladder_journey,
                    event_counts = excluded.event_counts,
                    current_ladder = excluded.current_ladder,
                    total_events = excluded.total_events,
                    first_activity = excluded.first_activity,
                    last_activity = excluded.last_activity,
                    status = excluded.status,
                    computed_at = excluded.computed_at,
                    events_watermark = excluded.events_watermark
                """,
                (
                    profile.contributor_id,
                    format_optional_timestamp(profile.registered_date),
                    encode_journey(profile.ladder_journey),
                    encode_event_counts(profile.event_counts),
                    profile.current_ladder,
                    profile.total_events,
                    format_timestamp(profile.first_activity),
                    format_timestamp(profile.last_activity),
                    profile.status,
                    format_timestamp(profile.computed_at),
                    profile.events_watermark,
                ),
            )

    def get(self, contributor_id: str) -> ContributorProfile | None:
        """Load one profile with typed nested structures, or None."""
        with self._database.connection() as conn:
            row = conn.execute(
                "SELECT * FROM profiles WHERE contributor_id = ?", (contributor_id,)
            ).fetchone()
        if row is None:
            return None
        return _profile_from_row(row)

    def count(self) -> int:
        with self._database.connection() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM profiles").fetchone()[0])

    def counts_by_ladder(self) -> dict[str, int]:
        with self._database.connection() as conn:
            rows = conn.execute(
                """
                SELECT current_ladder, COUNT(*) AS total FROM profiles
                GROUP BY current_ladder ORDER BY total DESC, current_ladder ASC
                """
            ).fetchall()
        return {str(row["current_ladder"] or "none"): int(row["total"]) for row in rows}

    def counts_by_status(self) -> dict[str, int]:
        with self._database.connection() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS total FROM profiles GROUP BY status"
            ).fetchall()
        return {str(row["status"]): int(row["total"]) for row in rows}

    def contributors_needing_update(
        self,
        limit: int,
        ignored_event_types: Sequence[str] = (),
        min_registered_date: datetime | None = None,
    ) -> list[str]:
        """Return contributors with no profile or with events ingested after it.

        Args:
            limit: Maximum number of contributor ids to return.
            ignored_event_types: Event types that never trigger recomputation.
            min_registered_date: Optional registration date lower bound.

        Returns:
            Contributor ids ordered by id.
        """
        where_clause, params = _needing_update_clause(ignored_event_types, min_registered_date)
        with self._database.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT DISTINCT e.contributor_id FROM events e
                LEFT JOIN profiles p ON e.contributor_id = p.contributor_id
                {where_clause}
                ORDER BY e.contributor_id ASC
                LIMIT ?
                """,
                (*params, limit),
            ).fetchall()
        return [str(row[0]) for row in rows]

    def count_needing_update(
        self,
        ignored_event_types: Sequence[str] = (),
        min_registered_date: datetime | None = None,
    ) -> int:
        where_clause, params = _needing_update_clause(ignored_event_types, min_registered_date)
        with self._database.connection() as conn:
            row = conn.execute(
                f"""
                SELECT COUNT(DISTINCT e.contributor_id) FROM events e
                LEFT JOIN profiles p ON e.contributor_id = p.contributor_id
                {where_clause}
                """,
                params,
            ).fetchone()
        return int(row[0])

    def delete_all(self) -> int:
        """Remove every profile, e.g. before a full rebuild."""
        with self._database.connection() as conn:
            removed = conn.execute("DELETE FROM profiles").rowcount
        _LOGGER.info("profiles_truncated", removed=removed)
        return removed


def _needing_update_clause(
    ignored_event_types: Sequence[str],
    min_registered_date: datetime | None,
) -> tuple[str, tuple[str, ...]]:
    type_filter, type_params = exclude_types_clause("e.event_type", ignored_event_types)
    date_filter, date_params = registered_date_clause(
        "e.contributor_created_date", min_registered_date
    )
    where_clause = (
        "WHERE (p.contributor_id IS NULL OR e.internal_id > p.events_watermark) "
        f"{type_filter} {date_filter}"
    )
    return where_clause, (*type_params, *date_params)


def _profile_from_row(row: sqlite3.Row) -> ContributorProfile:
    contributor_id = str(row["contributor_id"])
    try:
        journey = decode_journey(row["ladder_journey"])
        event_counts = decode_event_counts(row["event_counts"])
    except (ValueError, KeyError, TypeError) as error:
        raise LadderboardStoreError(
            f"Stored profile for contributor '{contributor_id}' is corrupt: {error}. "
            "Regenerate profiles to rebuild it."
        ) from error
    return ContributorProfile(
        contributor_id=contributor_id,
        registered_date=parse_storage_timestamp(row["registered_date"]),
        ladder_journey=journey,
        event_counts=event_counts,
        current_ladder=row["current_ladder"],
        total_events=int(row["total_events"]),
        first_activity=parse_storage_timestamp(row["first_activity"]) or datetime.min,
        last_activity=parse_storage_timestamp(row["last_activity"]) or datetime.min,
        status=cast(ActivityStatus, row["status"]),
        computed_at=parse_storage_timestamp(row["computed_at"]) or datetime.min,
        events_watermark=int(row["events_watermark"]),
    )
