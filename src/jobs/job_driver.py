"""Driver loop for scheduled batch ticks.

The driver replaces self-rescheduling timers: it asks the tick queue
which job kinds are due, claims each one, and runs exactly one tick
per claim. Any process can act as a driver; the claim guarantees a
scheduled tick runs at most once.
"""

from __future__ import annotations

import time
from typing import Callable, Mapping

from core.logging_config import get_logger
from core.types import TickOutcome
from jobs.batch_engine import BatchEngine
from store.tick_queue import TickQueue

_LOGGER = get_logger(__name__)


class JobDriver:
    """Run due ticks for a set of batch engines."""

    def __init__(
        self,
        engines: Mapping[str, BatchEngine],
        tick_queue: TickQueue,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._engines = dict(engines)
        self._tick_queue = tick_queue
        self._clock = clock
        self._sleep = sleep

    def run_due_ticks(self) -> dict[str, TickOutcome]:
        """Claim and run every tick that is currently due.

        Returns:
            Tick outcome by job kind for the ticks this call ran.
        """
        outcomes: dict[str, TickOutcome] = {}
        for job_kind in self._tick_queue.due_kinds(self._clock()):
            if not self._tick_queue.claim(job_kind):
                continue
            engine = self._engines.get(job_kind)
            if engine is None:
                _LOGGER.warning("tick_dropped", job_kind=job_kind, reason="unknown_job_kind")
                continue
            outcomes[job_kind] = engine.tick()
        return outcomes

    def next_due_at(self) -> float | None:
        """Return the earliest pending tick time across known job kinds."""
        pending = [
            due_at
            for due_at in (self._tick_queue.pending(job_kind) for job_kind in self._engines)
            if due_at is not None
        ]
        return min(pending) if pending else None

    def run_until_idle(self, max_ticks: int | None = None) -> int:
        """Keep running ticks until no job has a pending tick.

        Args:
            max_ticks: Optional cap on ticks run by this call.

        Returns:
            Number of ticks run.
        """
        ticks_run = 0
        while max_ticks is None or ticks_run < max_ticks:
            outcomes = self.run_due_ticks()
            ticks_run += len(outcomes)
            if outcomes:
                continue
            due_at = self.next_due_at()
            if due_at is None:
                break
            self._sleep(max(0.0, due_at - self._clock()))
        _LOGGER.info("job_driver_idle", ticks_run=ticks_run)
        return ticks_run
