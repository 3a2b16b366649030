"""Unit tests for the SQLite job state repository."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from core.types import BatchJobState
from store.database import Database
from store.job_state_store import SqliteJobStateStore


def _state() -> BatchJobState:
    started = datetime(2024, 1, 1, 9)
    return BatchJobState(
        job_kind="csv_import",
        status="processing",
        total_to_process=10,
        processed=0,
        cursor=0,
        started_at=started,
        updated_at=started,
        details={"imported": 0},
    )


def test_overwrite_then_read_round_trips_state(tmp_path) -> None:
    """A written state should read back with its new revision."""
    store = SqliteJobStateStore(Database(tmp_path / "jobs.sqlite3"))

    written = store.overwrite(_state())

    assert store.read("csv_import") == written and written.revision == 1


def test_compare_and_set_advances_matching_revision(tmp_path) -> None:
    """A write carrying the stored revision should succeed."""
    store = SqliteJobStateStore(Database(tmp_path / "jobs.sqlite3"))
    written = store.overwrite(_state())

    updated = store.compare_and_set(replace(written, processed=4, cursor=4))

    assert updated is not None and updated.revision == 2 and store.read("csv_import") == updated


def test_compare_and_set_rejects_stale_revision(tmp_path) -> None:
    """A write based on an outdated read should be rejected."""
    store = SqliteJobStateStore(Database(tmp_path / "jobs.sqlite3"))
    stale = store.overwrite(_state())
    store.overwrite(replace(stale, status="cancelled"))

    result = store.compare_and_set(replace(stale, processed=4))

    stored = store.read("csv_import")
    assert result is None and stored is not None and stored.status == "cancelled"


def test_delete_removes_state(tmp_path) -> None:
    """Deleted states should read as None."""
    store = SqliteJobStateStore(Database(tmp_path / "jobs.sqlite3"))
    store.overwrite(_state())

    store.delete("csv_import")

    assert store.read("csv_import") is None
