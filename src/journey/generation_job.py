"""Profile generation batch job.

Each tick re-queries contributors that have no profile or have events
ingested after their profile was computed, so the job needs no explicit
offset. The ladder registry, ignored types and reference end date are
snapshotted into the job details at start and reused by every tick.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable

from core.config import LadderboardConfig
from core.constants import PROFILES_GENERATED_SIGNAL
from core.errors import LadderboardStoreError
from core.logging_config import get_logger
from core.timestamps import format_date, parse_date, start_of_day, utc_now
from core.types import BatchJobState, BatchResult, GenerationOptions, GenerationStartSummary
from journey.profile_aggregator import ProfileAggregator
from store.event_store import EventStore
from store.profile_store import ProfileStore
from store.record_payload import ladders_from_payload, ladders_to_payload
from store.reference_clock import ReferenceClock
from store.settings_store import SettingsStore

_LOGGER = get_logger(__name__)


class ProfileGenerationJob:
    """Batch job that recomputes stale contributor profiles."""

    completion_signal: str | None = PROFILES_GENERATED_SIGNAL

    def __init__(
        self,
        config: LadderboardConfig,
        events: EventStore,
        profiles: ProfileStore,
        settings: SettingsStore,
        reference_clock: ReferenceClock,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = config
        self._events = events
        self._profiles = profiles
        self._settings = settings
        self._reference_clock = reference_clock
        self._now = now

    def prepare(
        self,
        options: GenerationOptions,
    ) -> tuple[GenerationStartSummary, dict[str, object]]:
        """Refresh the reference clock and snapshot configuration for a run.

        Args:
            options: Registration-date filter options.

        Returns:
            Start summary and the job details to store.
        """
        self._reference_clock.refresh_from_store()
        min_registered_date = options.min_registered_date
        if min_registered_date is None and options.since_reference_start:
            min_registered_date = self._reference_clock.get_start_date()
        min_registered_at = _optional_start_of_day(min_registered_date)
        ignored_event_types = self._config.ignored_event_types
        summary = GenerationStartSummary(
            total_contributors=self._events.count_contributors(
                ignored_event_types, min_registered_at
            ),
            existing_profiles=self._profiles.count(),
            profiles_needing_update=self._profiles.count_needing_update(
                ignored_event_types, min_registered_at
            ),
            min_registered_date=min_registered_date,
        )
        end_date = self._reference_clock.get_end_date()
        details: dict[str, object] = {
            "ladders": ladders_to_payload(self._settings.load_ladders()),
            "ignored_event_types": list(ignored_event_types),
            "reference_end_date": format_date(end_date) if end_date is not None else None,
            "min_registered_date": (
                format_date(min_registered_date) if min_registered_date is not None else None
            ),
        }
        _LOGGER.info(
            "profile_generation_prepared",
            total_contributors=summary.total_contributors,
            existing_profiles=summary.existing_profiles,
            profiles_needing_update=summary.profiles_needing_update,
            min_registered_date=details["min_registered_date"],
        )
        return summary, details

    def run_batch(self, state: BatchJobState) -> BatchResult:
        """Recompute up to one batch of contributors needing an update."""
        ignored_event_types = _string_list(state.details.get("ignored_event_types"))
        min_registered_at = _optional_start_of_day(
            parse_date(_optional_string(state.details.get("min_registered_date")))
        )
        contributor_ids = self._profiles.contributors_needing_update(
            self._config.profile_batch_size,
            ignored_event_types,
            min_registered_at,
        )
        if not contributor_ids:
            return BatchResult(processed=0, cursor=state.cursor, exhausted=True)
        aggregator = ProfileAggregator(
            self._events,
            self._profiles,
            ladders=ladders_from_payload(state.details.get("ladders")),
            reference_end=self._reference_end(state),
            ignored_event_types=ignored_event_types,
            now=self._now,
        )
        processed = 0
        for contributor_id in contributor_ids:
            try:
                aggregator.compute_profile(contributor_id)
            except LadderboardStoreError as error:
                return BatchResult(
                    processed=processed,
                    cursor=state.cursor + processed,
                    exhausted=False,
                    failure=f"Profile for contributor '{contributor_id}' failed: {error}",
                )
            processed += 1
        return BatchResult(processed=processed, cursor=state.cursor + processed, exhausted=False)

    def on_complete(self, state: BatchJobState) -> None:
        _LOGGER.info("profile_generation_finished", processed=state.processed)

    def on_cancel(self, state: BatchJobState) -> None:
        _LOGGER.info("profile_generation_stopped", processed=state.processed)

    def _reference_end(self, state: BatchJobState) -> datetime:
        end_date = parse_date(_optional_string(state.details.get("reference_end_date")))
        if end_date is None:
            return self._reference_clock.reference_end()
        return start_of_day(end_date)


def _optional_start_of_day(value: date | None) -> datetime | None:
    return start_of_day(value) if value is not None else None


def _optional_string(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _string_list(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value)
