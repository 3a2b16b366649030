"""Resumable checkpointed batch engine.

This module drives one job kind through ``processing`` to
``completed`` or ``cancelled``. Each tick runs one bounded batch,
persists progress with compare-and-set, and schedules at most one
follow-up tick. Scheduling is external: a driver claims due ticks and
calls ``tick``.
"""

from __future__ import annotations

from dataclasses import replace
import time
from typing import Callable, Mapping, Protocol

from core.errors import LadderboardJobError, LadderboardStoreError
from core.logging_config import get_logger
from core.timestamps import from_epoch
from core.types import BatchJobState, BatchResult, JobStatusView, TickOutcome
from jobs.notifications import SignalBus
from store.job_state_store import JobStateRepository
from store.tick_queue import TickQueue

_LOGGER = get_logger(__name__)
_COMPLETION_PENDING = "completion_pending"


class BatchJob(Protocol):
    """Unit-of-work contract implemented by concrete jobs.

    ``run_batch`` must be idempotent per item: a crash between doing
    work and persisting the cursor replays the same batch.
    """

    completion_signal: str | None

    def run_batch(self, state: BatchJobState) -> BatchResult: ...

    def on_complete(self, state: BatchJobState) -> None: ...

    def on_cancel(self, state: BatchJobState) -> None: ...


class BatchEngine:
    """Tick-at-a-time state machine for one job kind."""

    def __init__(
        self,
        job_kind: str,
        job: BatchJob,
        state_store: JobStateRepository,
        tick_queue: TickQueue,
        signals: SignalBus,
        tick_delay_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._job_kind = job_kind
        self._job = job
        self._state_store = state_store
        self._tick_queue = tick_queue
        self._signals = signals
        self._tick_delay_seconds = tick_delay_seconds
        self._clock = clock

    @property
    def job_kind(self) -> str:
        return self._job_kind

    def start(
        self,
        total_to_process: int,
        details: Mapping[str, object] | None = None,
    ) -> JobStatusView:
        """Start a new job run, superseding any run still processing.

        A run with nothing to process completes immediately and fires
        its completion signal without scheduling a tick.

        Args:
            total_to_process: Work units expected for the run.
            details: Job-specific fields stored with the state.

        Returns:
            Status view of the new run.
        """
        existing = self._state_store.read(self._job_kind)
        if existing is not None and existing.status == "processing":
            _LOGGER.info("batch_job_superseded", job_kind=self._job_kind)
            self._cancel_state(existing)
        self._tick_queue.cancel(self._job_kind)
        now = from_epoch(self._clock())
        state = BatchJobState(
            job_kind=self._job_kind,
            status="processing",
            total_to_process=max(0, total_to_process),
            processed=0,
            cursor=0,
            started_at=now,
            updated_at=now,
            details=dict(details or {}),
        )
        if state.total_to_process == 0:
            self._job.on_complete(state)
            completed = self._state_store.overwrite(
                replace(state, status="completed", completed_at=now)
            )
            _LOGGER.info("batch_job_started", job_kind=self._job_kind, total_to_process=0)
            self._announce_completion(completed)
            return self.status()
        self._state_store.overwrite(state)
        self._tick_queue.schedule(self._job_kind, self._clock())
        _LOGGER.info(
            "batch_job_started",
            job_kind=self._job_kind,
            total_to_process=state.total_to_process,
        )
        return self.status()

    def tick(self) -> TickOutcome:
        """Run one bounded batch for the current run.

        Returns:
            ``idle`` if nothing is processing, ``progressed`` when more
            work remains, ``completed`` when the run finished,
            ``retry`` after a store failure, ``conflict`` when another
            writer changed the state during the tick.
        """
        try:
            return self._run_tick()
        except LadderboardStoreError as error:
            _LOGGER.warning("batch_tick_aborted", job_kind=self._job_kind, error=str(error))
            self._schedule_next()
            return "retry"

    def cancel(self) -> JobStatusView:
        """Cancel a processing run and drop its pending tick.

        Partial writes already made by earlier ticks are kept.
        """
        state = self._state_store.read(self._job_kind)
        if state is None or state.status != "processing":
            self._tick_queue.cancel(self._job_kind)
            return self.status()
        self._cancel_state(state)
        return self.status()

    def reset(self) -> None:
        """Delete the state record and any pending tick."""
        state = self._state_store.read(self._job_kind)
        self._tick_queue.cancel(self._job_kind)
        if state is not None and state.status == "processing":
            self._job.on_cancel(state)
        self._state_store.delete(self._job_kind)
        _LOGGER.info("batch_job_reset", job_kind=self._job_kind)

    def status(self) -> JobStatusView:
        """Return the monitoring view, readable at any time."""
        state = self._state_store.read(self._job_kind)
        if state is None:
            return JobStatusView(
                job_kind=self._job_kind,
                status="idle",
                total=0,
                processed=0,
                remaining=0,
                percent_complete=0.0,
            )
        due_at = self._tick_queue.pending(self._job_kind)
        return JobStatusView(
            job_kind=self._job_kind,
            status=state.status,
            total=state.total_to_process,
            processed=state.processed,
            remaining=max(0, state.total_to_process - state.processed),
            percent_complete=percent_complete(state.processed, state.total_to_process),
            started_at=state.started_at,
            updated_at=state.updated_at,
            completed_at=state.completed_at,
            next_tick_due_at=from_epoch(due_at) if due_at is not None else None,
            details=dict(state.details),
        )

    def _run_tick(self) -> TickOutcome:
        state = self._state_store.read(self._job_kind)
        if state is None or state.status != "processing":
            _LOGGER.debug("batch_tick_skipped", job_kind=self._job_kind)
            return "idle"
        if state.details.get(_COMPLETION_PENDING):
            return self._complete(state)
        result = self._job.run_batch(state)
        now = from_epoch(self._clock())
        advanced = replace(
            state,
            processed=state.processed + result.processed,
            cursor=max(state.cursor, result.cursor),
            updated_at=now,
            details={**state.details, **result.details},
        )
        if result.failure is not None:
            if self._state_store.compare_and_set(advanced) is None:
                return self._conflict()
            _LOGGER.warning(
                "batch_tick_aborted",
                job_kind=self._job_kind,
                processed=result.processed,
                cursor=advanced.cursor,
                error=result.failure,
            )
            self._schedule_next()
            return "retry"
        if result.exhausted:
            written = self._state_store.compare_and_set(
                replace(advanced, details={**advanced.details, _COMPLETION_PENDING: True})
            )
            if written is None:
                return self._conflict()
            return self._complete(written)
        written = self._state_store.compare_and_set(advanced)
        if written is None:
            return self._conflict()
        self._schedule_next()
        _LOGGER.info(
            "batch_tick_completed",
            job_kind=self._job_kind,
            processed=written.processed,
            cursor=written.cursor,
            total_to_process=written.total_to_process,
        )
        return "progressed"

    def _complete(self, state: BatchJobState) -> TickOutcome:
        """Run completion side effects, then mark the run completed.

        The state stays ``processing`` with the pending flag set until
        ``on_complete`` succeeds, so a failed side effect is retried by
        the next tick without re-running any batch.
        """
        self._job.on_complete(state)
        now = from_epoch(self._clock())
        details = {
            key: value for key, value in state.details.items() if key != _COMPLETION_PENDING
        }
        written = self._state_store.compare_and_set(
            replace(state, status="completed", completed_at=now, updated_at=now, details=details)
        )
        if written is None:
            return self._conflict()
        self._tick_queue.cancel(self._job_kind)
        self._announce_completion(written)
        return "completed"

    def _announce_completion(self, state: BatchJobState) -> None:
        _LOGGER.info(
            "batch_job_completed",
            job_kind=self._job_kind,
            processed=state.processed,
            total_to_process=state.total_to_process,
        )
        if self._job.completion_signal is not None:
            self._signals.emit(
                self._job.completion_signal,
                {
                    "job_kind": self._job_kind,
                    "processed": state.processed,
                    "total_to_process": state.total_to_process,
                },
            )

    def _cancel_state(self, state: BatchJobState) -> None:
        now = from_epoch(self._clock())
        self._state_store.overwrite(
            replace(state, status="cancelled", cancelled_at=now, updated_at=now)
        )
        self._tick_queue.cancel(self._job_kind)
        self._job.on_cancel(state)
        _LOGGER.info(
            "batch_job_cancelled",
            job_kind=self._job_kind,
            processed=state.processed,
            total_to_process=state.total_to_process,
        )

    def _schedule_next(self) -> None:
        self._tick_queue.schedule(self._job_kind, self._clock() + self._tick_delay_seconds)

    def _conflict(self) -> TickOutcome:
        _LOGGER.warning("batch_tick_conflict", job_kind=self._job_kind)
        return "conflict"


def percent_complete(processed: int, total: int) -> float:
    """Return progress as a percentage rounded to one decimal, 0 for empty runs."""
    if total <= 0:
        return 0.0
    return round(min(processed, total) / total * 100, 1)


def require_engine(engines: Mapping[str, BatchEngine], job_kind: str) -> BatchEngine:
    """Look up the engine for a job kind.

    Raises:
        LadderboardJobError: If the job kind is not registered.
    """
    engine = engines.get(job_kind)
    if engine is None:
        supported = ", ".join(sorted(engines))
        raise LadderboardJobError(
            f"Unknown job kind '{job_kind}'. Use one of: {supported}."
        )
    return engine
