"""Unit tests for the SQLite tick queue."""

from __future__ import annotations

from store.database import Database
from store.tick_queue import SqliteTickQueue


def test_schedule_keeps_a_single_pending_tick(tmp_path) -> None:
    """A second schedule for the same kind should be ignored."""
    queue = SqliteTickQueue(Database(tmp_path / "ticks.sqlite3"))

    first, second = queue.schedule("csv_import", 10.0), queue.schedule("csv_import", 20.0)

    assert (first, second) == (True, False) and queue.pending("csv_import") == 10.0


def test_due_kinds_returns_only_due_ticks_in_order(tmp_path) -> None:
    """Only ticks due at the given time should be returned, earliest first."""
    queue = SqliteTickQueue(Database(tmp_path / "ticks.sqlite3"))
    queue.schedule("profile_generation", 5.0)
    queue.schedule("csv_import", 3.0)
    queue.schedule("later", 50.0)

    assert queue.due_kinds(10.0) == ["csv_import", "profile_generation"]


def test_claim_succeeds_only_once(tmp_path) -> None:
    """Only the first claimant should win a scheduled tick."""
    queue = SqliteTickQueue(Database(tmp_path / "ticks.sqlite3"))
    queue.schedule("csv_import", 1.0)

    claims = (queue.claim("csv_import"), queue.claim("csv_import"))

    assert claims == (True, False) and queue.pending("csv_import") is None
