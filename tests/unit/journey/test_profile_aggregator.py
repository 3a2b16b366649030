"""Unit tests for profile aggregation."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from core.types import ContributorEvent, EventCount, Ladder, LadderConfig, Requirement
from journey.profile_aggregator import ProfileAggregator, count_events_by_type
from store.database import Database
from store.event_store import EventStore
from store.profile_store import ProfileStore

REFERENCE_END = datetime(2024, 3, 15)
COMPUTED_AT = datetime(2024, 3, 20, 8)
LADDERS = LadderConfig(
    ladders=(
        Ladder("connect", "Connect", (Requirement("forum_post", 1),)),
        Ladder("core", "Core", (Requirement("patch", 2),)),
    )
)


def _aggregator(
    tmp_path, ignored: tuple[str, ...] = ()
) -> tuple[ProfileAggregator, EventStore, ProfileStore]:
    database = Database(tmp_path / "aggregate.sqlite3")
    events, profiles = EventStore(database), ProfileStore(database)
    aggregator = ProfileAggregator(
        events,
        profiles,
        LADDERS,
        REFERENCE_END,
        ignored_event_types=ignored,
        now=lambda: COMPUTED_AT,
    )
    return aggregator, events, profiles


def _seed(events: EventStore) -> None:
    rows = [
        ("e1", "forum_post", datetime(2024, 1, 1, 9), None),
        ("e2", "patch", datetime(2024, 1, 10, 9), datetime(2023, 6, 1)),
        ("e3", "patch", datetime(2024, 2, 1, 9), datetime(2023, 7, 1)),
        ("e4", "updated_profile", datetime(2024, 3, 10, 9), None),
    ]
    for event_id, event_type, when, registered in rows:
        events.insert(ContributorEvent(event_id, "alice", event_type, when, registered))


def test_compute_profile_summarizes_history(tmp_path) -> None:
    """A computed profile should reflect counts, journey, and status."""
    aggregator, events, profiles = _aggregator(tmp_path)
    _seed(events)

    profile = aggregator.compute_profile("alice")

    assert profile is not None and profiles.get("alice") == profile
    assert profile.current_ladder == "core" and profile.total_events == 4
    assert profile.registered_date == datetime(2023, 6, 1)
    assert profile.first_activity == datetime(2024, 1, 1, 9)
    assert profile.last_activity == datetime(2024, 3, 10, 9)
    assert profile.status == "active" and profile.computed_at == COMPUTED_AT


def test_ignored_event_types_are_excluded_everywhere(tmp_path) -> None:
    """Ignored types should not count toward totals, counts, or activity."""
    aggregator, events, _ = _aggregator(tmp_path, ignored=("updated_profile",))
    _seed(events)

    profile = aggregator.compute_profile("alice")

    assert profile is not None and profile.total_events == 3
    assert "updated_profile" not in profile.event_counts
    assert profile.last_activity == datetime(2024, 2, 1, 9) and profile.status == "warning"


def test_ignored_events_still_advance_watermark(tmp_path) -> None:
    """Ignored events should not leave the profile flagged as stale."""
    aggregator, events, profiles = _aggregator(tmp_path, ignored=("updated_profile",))
    _seed(events)

    aggregator.compute_profile("alice")

    assert profiles.count_needing_update(("updated_profile",), None) == 0


def test_compute_profile_is_idempotent(tmp_path) -> None:
    """Recomputing without new events should store an identical profile."""
    aggregator, events, profiles = _aggregator(tmp_path)
    _seed(events)

    first = aggregator.compute_profile("alice")
    second = aggregator.compute_profile("alice")

    assert first == second and profiles.count() == 1


def test_contributor_without_events_writes_nothing(tmp_path) -> None:
    """A contributor with only ignored events should not get a profile."""
    aggregator, events, profiles = _aggregator(tmp_path, ignored=("updated_profile",))
    events.insert(ContributorEvent("e9", "bob", "updated_profile", datetime(2024, 1, 1)))

    assert aggregator.compute_profile("bob") is None and profiles.get("bob") is None


def test_count_events_by_type_tracks_first_and_last_dates() -> None:
    """Counts should keep first-seen order with first and last dates."""
    first = ContributorEvent("e1", "alice", "patch", datetime(2024, 1, 1))
    events = [
        first,
        replace(first, event_id="e2", event_type="talk", event_created_date=datetime(2024, 1, 2)),
        replace(first, event_id="e3", event_created_date=datetime(2024, 1, 3)),
    ]

    counts = count_events_by_type(events)

    assert list(counts) == ["patch", "talk"]
    assert counts["patch"] == EventCount(2, datetime(2024, 1, 1), datetime(2024, 1, 3))
