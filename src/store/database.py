"""SQLite connection management and schema.

This module owns the relational schema for events, profiles,
settings, job state, and scheduled ticks. Every store borrows
short-lived connections from one Database handle.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
import sqlite3
from typing import Iterator

from core.errors import LadderboardStoreError

_SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS events (
        internal_id INTEGER PRIMARY KEY AUTOINCREMENT,
        event_id TEXT NOT NULL UNIQUE,
        contributor_id TEXT NOT NULL,
        contributor_created_date TEXT DEFAULT NULL,
        event_type TEXT NOT NULL,
        event_data TEXT DEFAULT NULL,
        event_created_date TEXT NOT NULL
    )
    """,
    (
        "CREATE INDEX IF NOT EXISTS idx_events_contributor "
        "ON events (contributor_id, event_created_date)"
    ),
    "CREATE INDEX IF NOT EXISTS idx_events_type ON events (event_type)",
    "CREATE INDEX IF NOT EXISTS idx_events_created ON events (event_created_date)",
    """
    CREATE TABLE IF NOT EXISTS profiles (
        contributor_id TEXT PRIMARY KEY,
        registered_date TEXT DEFAULT NULL,
        ladder_journey TEXT NOT NULL,
        event_counts TEXT NOT NULL,
        current_ladder TEXT DEFAULT NULL,
        total_events INTEGER NOT NULL DEFAULT 0,
        first_activity TEXT NOT NULL,
        last_activity TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'inactive',
        computed_at TEXT NOT NULL,
        events_watermark INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_profiles_ladder ON profiles (current_ladder)",
    "CREATE INDEX IF NOT EXISTS idx_profiles_status ON profiles (status)",
    """
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS job_states (
        job_kind TEXT PRIMARY KEY,
        status TEXT NOT NULL,
        total_to_process INTEGER NOT NULL,
        processed INTEGER NOT NULL,
        cursor INTEGER NOT NULL,
        started_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        completed_at TEXT DEFAULT NULL,
        cancelled_at TEXT DEFAULT NULL,
        details TEXT NOT NULL,
        revision INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scheduled_ticks (
        job_kind TEXT PRIMARY KEY,
        due_at REAL NOT NULL
    )
    """,
)


class Database:
    """File-backed SQLite database handle."""

    def __init__(self, database_path: Path) -> None:
        """Open or create the database and its schema.

        Args:
            database_path: SQLite file path.

        Raises:
            LadderboardStoreError: If the schema cannot be created.
        """
        self._path = database_path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            for statement in _SCHEMA_STATEMENTS:
                conn.execute(statement)

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and rolls back on error.

        Raises:
            LadderboardStoreError: If any SQLite operation fails.
        """
        try:
            conn = sqlite3.connect(self._path, timeout=30.0)
        except sqlite3.Error as error:
            raise LadderboardStoreError(
                f"Failed to open database at {self._path}: {error}. "
                "Check LADDERBOARD_DATA_ROOT and file permissions."
            ) from error
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as error:
            conn.rollback()
            raise LadderboardStoreError(
                f"Database operation failed at {self._path}: {error}. "
                "Check the data root and retry."
            ) from error
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()
