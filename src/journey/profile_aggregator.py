"""Per-contributor profile aggregation.

This module folds one contributor's ordered event history into a
profile summary and persists it with an upsert, so recomputation is
always safe to repeat.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Sequence

from core.logging_config import get_logger
from core.timestamps import utc_now
from core.types import ContributorEvent, ContributorProfile, EventCount, LadderConfig
from journey.activity_status import compute_status
from journey.ladder_journey import compute_ladder_journey
from store.event_store import ContributorHistory, EventStore
from store.profile_store import ProfileStore

_LOGGER = get_logger(__name__)


class ProfileAggregator:
    """Compute and persist contributor profiles against fixed snapshots.

    The ladder snapshot and reference end are captured by the caller,
    typically once per generation job, so every contributor in a run is
    measured against the same configuration.
    """

    def __init__(
        self,
        events: EventStore,
        profiles: ProfileStore,
        ladders: LadderConfig,
        reference_end: datetime,
        ignored_event_types: Sequence[str] = (),
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._events = events
        self._profiles = profiles
        self._ladders = ladders
        self._reference_end = reference_end
        self._ignored_event_types = tuple(ignored_event_types)
        self._now = now

    def compute_profile(self, contributor_id: str) -> ContributorProfile | None:
        """Recompute and upsert one contributor's profile.

        Args:
            contributor_id: Contributor to process.

        Returns:
            The persisted profile, or None when the contributor has no
            non-ignored events (nothing is written in that case).

        Raises:
            LadderboardStoreError: If reading events or the upsert fails.
        """
        history = self._events.load_history(contributor_id, self._ignored_event_types)
        profile = build_profile(
            contributor_id,
            history,
            ladders=self._ladders,
            reference_end=self._reference_end,
            computed_at=self._now(),
        )
        if profile is None:
            _LOGGER.debug("profile_skipped", contributor_id=contributor_id, reason="no_events")
            return None
        self._profiles.upsert(profile)
        _LOGGER.debug(
            "profile_computed",
            contributor_id=contributor_id,
            current_ladder=profile.current_ladder,
            total_events=profile.total_events,
            status=profile.status,
        )
        return profile


def build_profile(
    contributor_id: str,
    history: ContributorHistory,
    *,
    ladders: LadderConfig,
    reference_end: datetime,
    computed_at: datetime,
) -> ContributorProfile | None:
    """Fold an ordered history into a profile without touching storage.

    Args:
        contributor_id: Contributor the history belongs to.
        history: Ordered non-ignored events plus the ingest watermark.
        ladders: Ladder snapshot for the journey.
        reference_end: Reference clock end for status and open steps.
        computed_at: Timestamp recorded on the profile.

    Returns:
        Profile record, or None for an empty history.
    """
    events = history.events
    if not events:
        return None
    journey = compute_ladder_journey(events, ladders, reference_end)
    last_activity = events[-1].event_created_date
    return ContributorProfile(
        contributor_id=contributor_id,
        registered_date=first_registered_date(events),
        ladder_journey=journey,
        event_counts=count_events_by_type(events),
        current_ladder=journey[-1].ladder_id if journey else None,
        total_events=len(events),
        first_activity=events[0].event_created_date,
        last_activity=last_activity,
        status=compute_status(last_activity, reference_end),
        computed_at=computed_at,
        events_watermark=history.watermark,
    )


def count_events_by_type(events: Sequence[ContributorEvent]) -> dict[str, EventCount]:
    """Build per-type counts with first and last occurrence, in first-seen order."""
    counts: dict[str, EventCount] = {}
    for event in events:
        existing = counts.get(event.event_type)
        if existing is None:
            counts[event.event_type] = EventCount(
                count=1,
                first_date=event.event_created_date,
                last_date=event.event_created_date,
            )
            continue
        counts[event.event_type] = EventCount(
            count=existing.count + 1,
            first_date=existing.first_date,
            last_date=event.event_created_date,
        )
    return counts


def first_registered_date(events: Sequence[ContributorEvent]) -> datetime | None:
    # Events carry the creation date inconsistently; first one found wins.
    for event in events:
        if event.contributor_created_date is not None:
            return event.contributor_created_date
    return None
