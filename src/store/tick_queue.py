"""Durable queue of scheduled batch ticks.

Each job kind owns at most one pending tick row, so scheduling is
naturally duplicate-free. A driver claims a due tick by deleting its
row; only the caller whose delete succeeds runs the tick.
"""

from __future__ import annotations

from typing import Protocol

from store.database import Database


class TickQueue(Protocol):
    """Scheduling contract used by the batch engine and job driver."""

    def schedule(self, job_kind: str, due_at: float) -> bool: ...

    def cancel(self, job_kind: str) -> None: ...

    def pending(self, job_kind: str) -> float | None: ...

    def due_kinds(self, now: float) -> list[str]: ...

    def claim(self, job_kind: str) -> bool: ...


class SqliteTickQueue:
    """SQLite-backed tick queue keyed by job kind."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def schedule(self, job_kind: str, due_at: float) -> bool:
        """Schedule one tick unless one is already pending.

        Args:
            job_kind: Job kind to tick.
            due_at: Epoch seconds when the tick becomes due.

        Returns:
            True when a tick was scheduled, False if one already existed.
        """
        with self._database.connection() as conn:
            inserted = conn.execute(
                "INSERT OR IGNORE INTO scheduled_ticks (job_kind, due_at) VALUES (?, ?)",
                (job_kind, due_at),
            ).rowcount
        return inserted == 1

    def cancel(self, job_kind: str) -> None:
        with self._database.connection() as conn:
            conn.execute("DELETE FROM scheduled_ticks WHERE job_kind = ?", (job_kind,))

    def pending(self, job_kind: str) -> float | None:
        with self._database.connection() as conn:
            row = conn.execute(
                "SELECT due_at FROM scheduled_ticks WHERE job_kind = ?", (job_kind,)
            ).fetchone()
        return float(row["due_at"]) if row is not None else None

    def due_kinds(self, now: float) -> list[str]:
        """Return job kinds whose pending tick is due, earliest first."""
        with self._database.connection() as conn:
            rows = conn.execute(
                "SELECT job_kind FROM scheduled_ticks WHERE due_at <= ? ORDER BY due_at, job_kind",
                (now,),
            ).fetchall()
        return [str(row["job_kind"]) for row in rows]

    def claim(self, job_kind: str) -> bool:
        """Remove the pending tick; True only for the caller that removed it."""
        with self._database.connection() as conn:
            removed = conn.execute(
                "DELETE FROM scheduled_ticks WHERE job_kind = ?", (job_kind,)
            ).rowcount
        return removed == 1
