"""Shared typed models.

This module defines immutable data models used by ingest, store,
journey, and job layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Literal, Mapping

ActivityStatus = Literal["active", "warning", "inactive"]
JobStatus = Literal["idle", "processing", "completed", "cancelled"]
InsertOutcome = Literal["inserted", "duplicate"]
TickOutcome = Literal["idle", "progressed", "completed", "retry", "conflict"]


@dataclass(frozen=True)
class ContributorEvent:
    """Immutable contributor action record.

    Attributes:
        event_id: Globally unique external event id.
        contributor_id: Contributor the event belongs to.
        event_type: Tag from the open event-type vocabulary.
        event_created_date: When the action happened.
        contributor_created_date: Contributor account creation time when known.
        event_data: Optional opaque payload.
    """

    event_id: str
    contributor_id: str
    event_type: str
    event_created_date: datetime
    contributor_created_date: datetime | None = None
    event_data: str | None = None


@dataclass(frozen=True)
class Requirement:
    """One count threshold for a ladder tier."""

    event_type: str
    min_count: int


@dataclass(frozen=True)
class Ladder:
    """One achievement tier with alternative requirements."""

    ladder_id: str
    title: str
    requirements: tuple[Requirement, ...] = ()


@dataclass(frozen=True)
class LadderConfig:
    """Ordered ladder registry snapshot.

    Tier order is the tuple order; it defines the journey sequence.
    """

    ladders: tuple[Ladder, ...] = ()

    def is_empty(self) -> bool:
        return not self.ladders

    def ladder_ids(self) -> tuple[str, ...]:
        return tuple(ladder.ladder_id for ladder in self.ladders)


@dataclass(frozen=True)
class EventTypeRegistry:
    """Event-type registry snapshot mapping id to display title."""

    titles: Mapping[str, str] = field(default_factory=dict)

    def __contains__(self, event_type: object) -> bool:
        return event_type in self.titles

    def with_added(self, new_titles: Mapping[str, str]) -> "EventTypeRegistry":
        """Return a registry extended with titles for unknown ids."""
        merged = dict(self.titles)
        for event_type, title in new_titles.items():
            merged.setdefault(event_type, title)
        return replace(self, titles=merged)


@dataclass(frozen=True)
class RequirementMet:
    """Requirement that qualified a contributor for a tier."""

    event_type: str
    min_count: int
    achieved: int


@dataclass(frozen=True)
class JourneyStep:
    """One tier reached by a contributor.

    Attributes:
        ladder_id: Tier identifier.
        step_joined: Timestamp of the qualifying event.
        step_left: When the next tier was reached, None while current.
        time_in_step_days: Whole days spent in the tier.
        first_event_id: Event that opened the step.
        first_event_type: Type of the opening event.
        first_event_date: Timestamp of the opening event.
        last_event_id: Last event counted in the step.
        last_event_type: Type of the last event.
        last_event_date: Timestamp of the last event.
        events_in_step: Events counted while in the step.
        requirement_met: Requirement that qualified the contributor.
    """

    ladder_id: str
    step_joined: datetime
    step_left: datetime | None
    time_in_step_days: int
    first_event_id: str
    first_event_type: str
    first_event_date: datetime
    last_event_id: str
    last_event_type: str
    last_event_date: datetime
    events_in_step: int
    requirement_met: RequirementMet


@dataclass(frozen=True)
class EventCount:
    """Per-type activity rollup."""

    count: int
    first_date: datetime
    last_date: datetime


@dataclass(frozen=True)
class ContributorProfile:
    """Persisted per-contributor summary.

    Attributes:
        contributor_id: Unique contributor key.
        registered_date: First non-empty account creation time seen.
        ladder_journey: Ordered tier transitions.
        event_counts: Per-type counts with first and last dates.
        current_ladder: Last journey step ladder id, if any.
        total_events: Number of non-ignored events.
        first_activity: Earliest event timestamp.
        last_activity: Latest event timestamp.
        status: Activity status relative to the reference end date.
        computed_at: When the profile was computed.
        events_watermark: Highest event row id folded into the profile.
    """

    contributor_id: str
    registered_date: datetime | None
    ladder_journey: tuple[JourneyStep, ...]
    event_counts: Mapping[str, EventCount]
    current_ladder: str | None
    total_events: int
    first_activity: datetime
    last_activity: datetime
    status: ActivityStatus
    computed_at: datetime
    events_watermark: int = 0


@dataclass(frozen=True)
class BatchJobState:
    """Durable state of one batch job kind.

    Attributes:
        job_kind: Job kind key, one active record per kind.
        status: Lifecycle status.
        total_to_process: Work units expected at start.
        processed: Work units completed so far.
        cursor: Job-specific resume position.
        started_at: When the job was started.
        updated_at: Last state write, used to detect stalled jobs.
        completed_at: Completion time when completed.
        cancelled_at: Cancellation time when cancelled.
        details: Job-specific extra fields.
        revision: Write counter used for compare-and-set updates.
    """

    job_kind: str
    status: JobStatus
    total_to_process: int
    processed: int
    cursor: int
    started_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    details: Mapping[str, object] = field(default_factory=dict)
    revision: int = 0


@dataclass(frozen=True)
class JobStatusView:
    """Monitoring view of a batch job."""

    job_kind: str
    status: JobStatus
    total: int
    processed: int
    remaining: int
    percent_complete: float
    started_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    next_tick_due_at: datetime | None = None
    details: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one bounded unit-of-work pass.

    Attributes:
        processed: Work units completed in this pass.
        cursor: Resume position after the last completed unit.
        exhausted: Whether no work remains.
        details: Updated job-specific fields.
        failure: Store failure message when the pass stopped early.
    """

    processed: int
    cursor: int
    exhausted: bool
    details: Mapping[str, object] = field(default_factory=dict)
    failure: str | None = None


@dataclass(frozen=True)
class ImportStartRequest:
    """Options for starting a CSV import job."""

    source_path: str
    auto_register_event_types: bool = True


@dataclass(frozen=True)
class GenerationOptions:
    """Options for starting a profile generation job."""

    min_registered_date: date | None = None
    since_reference_start: bool = False


@dataclass(frozen=True)
class GenerationStartSummary:
    """Counts reported when profile generation starts."""

    total_contributors: int
    existing_profiles: int
    profiles_needing_update: int
    min_registered_date: date | None = None


@dataclass(frozen=True)
class ProfileStats:
    """Profile table rollup."""

    total_profiles: int
    by_ladder: Mapping[str, int]
    by_status: Mapping[str, int]
    profiles_needing_update: int
