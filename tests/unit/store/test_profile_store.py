"""Unit tests for profile persistence and staleness queries."""

from __future__ import annotations

from datetime import datetime

from core.types import (
    ContributorEvent,
    ContributorProfile,
    EventCount,
    JourneyStep,
    RequirementMet,
)
from store.database import Database
from store.event_store import EventStore
from store.profile_stats import get_profile_stats
from store.profile_store import ProfileStore


def _stores(tmp_path) -> tuple[EventStore, ProfileStore]:
    database = Database(tmp_path / "profiles.sqlite3")
    return EventStore(database), ProfileStore(database)


def _insert(events: EventStore, event_id: str, contributor_id: str, when: datetime) -> None:
    events.insert(
        ContributorEvent(
            event_id=event_id,
            contributor_id=contributor_id,
            event_type="patch",
            event_created_date=when,
        )
    )


def _profile(contributor_id: str, watermark: int, ladder: str | None = "core") -> ContributorProfile:
    joined = datetime(2024, 1, 1, 9)
    journey: tuple[JourneyStep, ...] = ()
    if ladder is not None:
        journey = (
            JourneyStep(
                ladder_id=ladder,
                step_joined=joined,
                step_left=None,
                time_in_step_days=3,
                first_event_id="e1",
                first_event_type="patch",
                first_event_date=joined,
                last_event_id="e1",
                last_event_type="patch",
                last_event_date=joined,
                events_in_step=1,
                requirement_met=RequirementMet("patch", 1, 1),
            ),
        )
    return ContributorProfile(
        contributor_id=contributor_id,
        registered_date=None,
        ladder_journey=journey,
        event_counts={"patch": EventCount(1, joined, joined)},
        current_ladder=ladder,
        total_events=1,
        first_activity=joined,
        last_activity=joined,
        status="active",
        computed_at=datetime(2024, 5, 1),
        events_watermark=watermark,
    )


def test_get_returns_typed_nested_structures(tmp_path) -> None:
    """Stored journeys and counts should deserialize into typed records."""
    _, profiles = _stores(tmp_path)
    profile = _profile("alice", watermark=1)
    profiles.upsert(profile)

    assert profiles.get("alice") == profile


def test_upsert_overwrites_existing_profile(tmp_path) -> None:
    """A second upsert should replace the row, not add one."""
    _, profiles = _stores(tmp_path)
    profiles.upsert(_profile("alice", watermark=1))
    profiles.upsert(_profile("alice", watermark=2, ladder=None))

    stored = profiles.get("alice")

    assert profiles.count() == 1 and stored is not None and stored.current_ladder is None


def test_contributors_without_profile_need_update(tmp_path) -> None:
    """Contributors with events but no profile should be listed."""
    events, profiles = _stores(tmp_path)
    _insert(events, "e1", "bob", datetime(2024, 1, 1))
    _insert(events, "e2", "alice", datetime(2024, 1, 1))

    assert profiles.contributors_needing_update(10) == ["alice", "bob"]


def test_backdated_event_after_profile_marks_it_stale(tmp_path) -> None:
    """Events ingested after the profile should count even if older in time."""
    events, profiles = _stores(tmp_path)
    _insert(events, "e1", "alice", datetime(2024, 3, 1))
    profiles.upsert(_profile("alice", watermark=1))
    _insert(events, "e0", "alice", datetime(2023, 1, 1))

    assert profiles.contributors_needing_update(10) == ["alice"]


def test_up_to_date_profiles_are_not_listed(tmp_path) -> None:
    """Profiles covering every ingested event should not need an update."""
    events, profiles = _stores(tmp_path)
    _insert(events, "e1", "alice", datetime(2024, 3, 1))
    profiles.upsert(_profile("alice", watermark=1))

    assert profiles.count_needing_update() == 0


def test_contributors_needing_update_respects_limit(tmp_path) -> None:
    """The staleness query should be bounded by the limit."""
    events, profiles = _stores(tmp_path)
    for index in range(5):
        _insert(events, f"e{index}", f"user-{index}", datetime(2024, 1, 1))

    assert len(profiles.contributors_needing_update(2)) == 2


def test_profile_stats_group_by_ladder_and_status(tmp_path) -> None:
    """Stats should map missing ladders to 'none' and zero-fill statuses."""
    events, profiles = _stores(tmp_path)
    _insert(events, "e1", "carol", datetime(2024, 1, 1))
    profiles.upsert(_profile("alice", watermark=0))
    profiles.upsert(_profile("bob", watermark=0, ladder=None))

    stats = get_profile_stats(profiles)

    assert stats.total_profiles == 2
    assert dict(stats.by_ladder) == {"core": 1, "none": 1}
    assert dict(stats.by_status) == {"active": 2, "warning": 0, "inactive": 0}
    assert stats.profiles_needing_update == 1
