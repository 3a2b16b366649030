"""Batch job state repository.

This module persists one mutable state record per job kind. Writes
made by ticks use compare-and-set on a revision counter so an
overlapping tick cannot silently overwrite newer progress.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import sqlite3
from typing import Protocol, cast

from core.timestamps import format_optional_timestamp, format_timestamp, parse_storage_timestamp
from core.types import BatchJobState, JobStatus
from store.database import Database
from store.record_payload import decode_details, encode_details


class JobStateRepository(Protocol):
    """Read/write access to job state records by job kind."""

    def read(self, job_kind: str) -> BatchJobState | None: ...

    def overwrite(self, state: BatchJobState) -> BatchJobState: ...

    def compare_and_set(self, state: BatchJobState) -> BatchJobState | None: ...

    def delete(self, job_kind: str) -> None: ...


class SqliteJobStateStore:
    """SQLite-backed job state repository."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def read(self, job_kind: str) -> BatchJobState | None:
        """Return the state record for a job kind, or None."""
        with self._database.connection() as conn:
            row = conn.execute(
                "SELECT * FROM job_states WHERE job_kind = ?", (job_kind,)
            ).fetchone()
        if row is None:
            return None
        return _state_from_row(row)

    def overwrite(self, state: BatchJobState) -> BatchJobState:
        """Unconditionally write a state record, bumping its revision.

        Used when a job is started, cancelled, or reset, where the new
        record supersedes whatever was stored.
        """
        with self._database.connection() as conn:
            row = conn.execute(
                "SELECT revision FROM job_states WHERE job_kind = ?", (state.job_kind,)
            ).fetchone()
            next_revision = (int(row["revision"]) if row is not None else 0) + 1
            written = replace(state, revision=next_revision)
            conn.execute(
                """
                INSERT INTO job_states (
                    job_kind, status, total_to_process, processed, cursor, started_at,
                    updated_at, completed_at, cancelled_at, details, revision
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(job_kind) DO UPDATE SET
                    status = excluded.status,
                    total_to_process = excluded.total_to_process,
                    processed = excluded.processed,
                    cursor = excluded.cursor,
                    started_at = excluded.started_at,
                    updated_at = excluded.updated_at,
                    completed_at = excluded.completed_at,
                    cancelled_at = excluded.cancelled_at,
                    details = excluded.details,
                    revision = excluded.revision
                """,
                _state_params(written),
            )
        return written

    def compare_and_set(self, state: BatchJobState) -> BatchJobState | None:
        """Write a state record only if the stored revision still matches.

        Args:
            state: Updated state carrying the revision it was read at.

        Returns:
            The written state with its new revision, or None on conflict.
        """
        written = replace(state, revision=state.revision + 1)
        with self._database.connection() as conn:
            updated = conn.execute(
                """
                UPDATE job_states SET
                    status = ?, total_to_process = ?, processed = ?, cursor = ?,
                    started_at = ?, updated_at = ?, completed_at = ?, cancelled_at = ?,
                    details = ?, revision = ?
                WHERE job_kind = ? AND revision = ?
                """,
                (*_state_params(written)[1:], state.job_kind, state.revision),
            ).rowcount
        return written if updated == 1 else None

    def delete(self, job_kind: str) -> None:
        with self._database.connection() as conn:
            conn.execute("DELETE FROM job_states WHERE job_kind = ?", (job_kind,))


def _state_params(state: BatchJobState) -> tuple[object, ...]:
    return (
        state.job_kind,
        state.status,
        state.total_to_process,
        state.processed,
        state.cursor,
        format_timestamp(state.started_at),
        format_timestamp(state.updated_at),
        format_optional_timestamp(state.completed_at),
        format_optional_timestamp(state.cancelled_at),
        encode_details(state.details),
        state.revision,
    )


def _state_from_row(row: sqlite3.Row) -> BatchJobState:
    return BatchJobState(
        job_kind=str(row["job_kind"]),
        status=cast(JobStatus, row["status"]),
        total_to_process=int(row["total_to_process"]),
        processed=int(row["processed"]),
        cursor=int(row["cursor"]),
        started_at=parse_storage_timestamp(row["started_at"]) or datetime.min,
        updated_at=parse_storage_timestamp(row["updated_at"]) or datetime.min,
        completed_at=parse_storage_timestamp(row["completed_at"]),
        cancelled_at=parse_storage_timestamp(row["cancelled_at"]),
        details=decode_details(row["details"]),
        revision=int(row["revision"]),
    )
