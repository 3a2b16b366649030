"""Unit tests for the resumable batch engine."""

from __future__ import annotations

from dataclasses import replace

import pytest

from core.errors import LadderboardJobError
from tests.fakes import FakeClock, InMemoryJobStateStore, InMemoryTickQueue, ListJob
from jobs.batch_engine import BatchEngine, percent_complete, require_engine
from jobs.notifications import SignalBus

KIND = "list_job"
DELAY = 5.0


class _Harness:
    def __init__(self, job: ListJob) -> None:
        self.job = job
        self.clock = FakeClock()
        self.states = InMemoryJobStateStore()
        self.queue = InMemoryTickQueue()
        self.signals = SignalBus()
        self.received: list[dict[str, object]] = []
        self.signals.subscribe(
            "list_job_done", lambda _signal, payload: self.received.append(dict(payload))
        )
        self.engine = BatchEngine(
            KIND, job, self.states, self.queue, self.signals, DELAY, clock=self.clock
        )

    def tick(self) -> str:
        """Claim the pending tick the way a driver would, then run it."""
        self.queue.claim(KIND)
        return self.engine.tick()


def _harness(items: str = "abcde", **job_options: object) -> _Harness:
    return _Harness(ListJob(items=list(items), **job_options))  # type: ignore[arg-type]


def test_start_schedules_first_tick_immediately() -> None:
    """Starting a job should persist processing state and schedule a tick now."""
    harness = _harness()

    status = harness.engine.start(5, {"source": "unit"})

    assert status.status == "processing" and status.total == 5 and status.remaining == 5
    assert harness.queue.pending(KIND) == harness.clock.now and status.details["source"] == "unit"


def test_ticks_progress_until_completion_and_signal_once() -> None:
    """Bounded ticks should cover every item once and fire one completion signal."""
    harness = _harness()
    harness.engine.start(5)

    outcomes = [harness.tick(), harness.tick(), harness.tick()]

    status = harness.engine.status()
    assert outcomes == ["progressed", "progressed", "completed"]
    assert harness.job.handled == list("abcde") and len(harness.job.completed) == 1
    assert status.status == "completed" and status.percent_complete == 100.0
    assert status.details["last_item"] == "e" and harness.queue.pending(KIND) is None
    assert harness.received == [{"job_kind": KIND, "processed": 5, "total_to_process": 5}]


def test_progress_schedules_follow_up_after_delay() -> None:
    """A progressed tick should schedule exactly one follow-up tick."""
    harness = _harness()
    harness.engine.start(5)

    harness.tick()

    assert harness.queue.pending(KIND) == harness.clock.now + DELAY
    assert harness.engine.status().percent_complete == 40.0


def test_zero_total_completes_immediately() -> None:
    """A run with nothing to process should complete and signal without ticking."""
    harness = _harness(items="")

    status = harness.engine.start(0)

    assert status.status == "completed" and harness.queue.pending(KIND) is None
    assert len(harness.received) == 1 and harness.received[0]["processed"] == 0


def test_cancel_keeps_partial_progress_and_stops_ticks() -> None:
    """Cancelling should keep processed counts and make later ticks idle."""
    harness = _harness()
    harness.engine.start(5)
    harness.tick()

    status = harness.engine.cancel()

    assert status.status == "cancelled" and status.processed == 2
    assert harness.queue.pending(KIND) is None and len(harness.job.cancelled) == 1
    assert harness.engine.tick() == "idle" and harness.received == []


def test_failed_batch_keeps_partial_progress_and_resumes() -> None:
    """A store failure mid-batch should save progress and resume after it."""
    harness = _harness(fail_at=3)
    harness.engine.start(5)
    harness.tick()

    outcome = harness.tick()

    failed = harness.engine.status()
    assert outcome == "retry" and failed.status == "processing" and failed.processed == 3
    assert harness.queue.pending(KIND) == harness.clock.now + DELAY
    assert harness.tick() == "completed" and harness.job.handled == list("abcde")


def test_raised_store_error_reschedules_without_progress() -> None:
    """A store error raised by a batch should leave state untouched and retry."""
    harness = _harness(raise_store_error=True)
    harness.engine.start(5)

    outcome = harness.tick()

    assert outcome == "retry" and harness.engine.status().processed == 0
    assert harness.queue.pending(KIND) == harness.clock.now + DELAY
    assert harness.tick() == "progressed"


def test_concurrent_state_change_is_reported_as_conflict() -> None:
    """A tick whose state changed underneath it should not overwrite the change."""
    harness = _harness()
    harness.engine.start(5)

    def cancel_elsewhere() -> None:
        current = harness.states.read(KIND)
        assert current is not None
        harness.states.overwrite(replace(current, status="cancelled"))

    harness.job.during_batch = cancel_elsewhere

    outcome = harness.tick()

    assert outcome == "conflict" and harness.engine.status().status == "cancelled"
    assert harness.received == []


def test_failed_batch_state_conflict_does_not_reschedule() -> None:
    """A failed batch whose state changed underneath it should report a conflict."""
    harness = _harness(fail_at=1)
    harness.engine.start(5)

    def cancel_elsewhere() -> None:
        current = harness.states.read(KIND)
        assert current is not None
        harness.states.overwrite(replace(current, status="cancelled"))

    harness.job.during_batch = cancel_elsewhere

    outcome = harness.tick()

    assert outcome == "conflict" and harness.queue.pending(KIND) is None
    assert harness.engine.status().status == "cancelled" and harness.received == []


def test_failed_completion_hook_is_retried_before_signal() -> None:
    """A completion hook that fails should keep the run open and retry it once."""
    harness = _harness(items="ab", fail_on_complete=True)
    harness.engine.start(2)

    first = harness.tick()

    pending = harness.engine.status()
    assert first == "retry" and pending.status == "processing" and pending.processed == 2
    assert harness.received == [] and harness.job.completed == []
    assert harness.queue.pending(KIND) == harness.clock.now + DELAY

    second = harness.tick()

    done = harness.engine.status()
    assert second == "completed" and done.status == "completed"
    assert harness.job.handled == ["a", "b"] and len(harness.job.completed) == 1
    assert harness.received == [{"job_kind": KIND, "processed": 2, "total_to_process": 2}]
    assert "completion_pending" not in done.details and harness.tick() == "idle"


def test_start_supersedes_processing_run() -> None:
    """Starting while a run is processing should cancel it and begin fresh."""
    harness = _harness()
    harness.engine.start(5)
    harness.tick()

    status = harness.engine.start(3)

    assert len(harness.job.cancelled) == 1 and harness.job.cancelled[0].processed == 2
    assert status.status == "processing" and status.processed == 0 and status.total == 3


def test_reset_deletes_state_and_pending_tick() -> None:
    """Reset should return the job kind to idle."""
    harness = _harness()
    harness.engine.start(5)

    harness.engine.reset()

    assert harness.engine.status().status == "idle" and harness.queue.pending(KIND) is None


def test_percent_complete_is_capped_and_rounded() -> None:
    """Percent complete should round to one decimal and never exceed 100."""
    assert percent_complete(1, 3) == 33.3
    assert percent_complete(7, 5) == 100.0
    assert percent_complete(0, 0) == 0.0


def test_require_engine_rejects_unknown_kind() -> None:
    """Unknown job kinds should raise a job error naming the valid kinds."""
    harness = _harness()

    with pytest.raises(LadderboardJobError, match=KIND):
        require_engine({KIND: harness.engine}, "mystery")
