"""Python SDK for contributor ladder operations.

This module exposes high-level APIs for registry management, event
import, profile generation, job monitoring and profile reads, all
backed by one SQLite database under the configured data root.
"""

from __future__ import annotations

from datetime import date, datetime
import time
from typing import Callable, Iterable

from core.config import LadderboardConfig
from core.constants import IMPORT_JOB_KIND, PROFILE_JOB_KIND
from core.registry_config import RegistryDocument, load_registry_file, registry_to_payload
from core.timestamps import start_of_day, utc_now
from core.types import (
    ContributorEvent,
    ContributorProfile,
    EventTypeRegistry,
    GenerationOptions,
    GenerationStartSummary,
    ImportStartRequest,
    InsertOutcome,
    JobStatusView,
    LadderConfig,
    ProfileStats,
    TickOutcome,
)
from ingest.event_import import ImportTally, import_events, insert_event
from ingest.import_job import CsvImportJob
from jobs.batch_engine import BatchEngine, require_engine
from jobs.job_driver import JobDriver
from jobs.notifications import SignalBus
from journey.generation_job import ProfileGenerationJob
from journey.profile_aggregator import ProfileAggregator
from store.database import Database
from store.event_store import EventStore
from store.job_state_store import SqliteJobStateStore
from store.profile_stats import get_profile_stats
from store.profile_store import ProfileStore
from store.reference_clock import ReferenceClock
from store.settings_store import SettingsStore
from store.tick_queue import SqliteTickQueue


class LadderboardClient:
    """Primary SDK entry point for ladder workflows."""

    def __init__(
        self,
        config: LadderboardConfig | None = None,
        signals: SignalBus | None = None,
        clock: Callable[[], float] = time.time,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            signals: Optional signal bus shared with subscribers.
            clock: Epoch-seconds clock used for tick scheduling.
            now: Wall-clock source for ingest and computed-at timestamps.
        """
        self._config = config or LadderboardConfig.from_env()
        self._signals = signals or SignalBus()
        self._clock = clock
        self._now = now
        database = Database(self._config.database_path)
        self._events = EventStore(database)
        self._profiles = ProfileStore(database)
        self._settings = SettingsStore(database)
        self._reference_clock = ReferenceClock(self._settings, self._events)
        self._tick_queue = SqliteTickQueue(database)
        state_store = SqliteJobStateStore(database)
        self._import_job = CsvImportJob(
            self._config, self._events, self._settings, self._reference_clock, now=now
        )
        self._generation_job = ProfileGenerationJob(
            self._config,
            self._events,
            self._profiles,
            self._settings,
            self._reference_clock,
            now=now,
        )
        self._engines = {
            IMPORT_JOB_KIND: BatchEngine(
                IMPORT_JOB_KIND,
                self._import_job,
                state_store,
                self._tick_queue,
                self._signals,
                self._config.tick_delay_seconds,
                clock=clock,
            ),
            PROFILE_JOB_KIND: BatchEngine(
                PROFILE_JOB_KIND,
                self._generation_job,
                state_store,
                self._tick_queue,
                self._signals,
                self._config.tick_delay_seconds,
                clock=clock,
            ),
        }

    @property
    def config(self) -> LadderboardConfig:
        return self._config

    @property
    def signals(self) -> SignalBus:
        """Signal bus that receives job completion signals."""
        return self._signals

    def load_registry(self, registry_path: str) -> RegistryDocument:
        """Load a YAML or JSON registry file and store its sections.

        Sections absent from the document leave the stored registry
        unchanged.

        Args:
            registry_path: Registry document path.

        Returns:
            The validated document.
        """
        document = load_registry_file(registry_path)
        if document.event_types is not None:
            self._settings.save_event_types(document.event_types)
        if document.ladders is not None:
            self._settings.save_ladders(document.ladders)
        return document

    def export_registry(self) -> dict[str, object]:
        """Return both registries in the loadable document format."""
        return registry_to_payload(self.event_types(), self.ladders())

    def event_types(self) -> EventTypeRegistry:
        return self._settings.load_event_types()

    def ladders(self) -> LadderConfig:
        return self._settings.load_ladders()

    def insert_event(self, event: ContributorEvent) -> InsertOutcome:
        """Insert one event; an existing event id yields ``"duplicate"``."""
        return insert_event(self._events, event)

    def import_events(
        self,
        events: Iterable[ContributorEvent],
        auto_register_event_types: bool = True,
    ) -> ImportTally:
        """Import parsed events synchronously, outside the batch engine."""
        return import_events(self._events, self._settings, events, auto_register_event_types)

    def start_import(self, request: ImportStartRequest) -> JobStatusView:
        """Stage a CSV file and start the import job.

        Args:
            request: Import options.

        Returns:
            Initial job status.

        Raises:
            LadderboardIngestError: If the file is missing, not CSV, or empty.
        """
        total_lines, details = self._import_job.stage(request)
        return self._engines[IMPORT_JOB_KIND].start(total_lines, details)

    def start_generation(
        self,
        options: GenerationOptions | None = None,
    ) -> GenerationStartSummary:
        """Start profile generation for contributors needing an update.

        Args:
            options: Optional registration-date filter.

        Returns:
            Counts of contributors, existing profiles and pending updates.
        """
        summary, details = self._generation_job.prepare(options or GenerationOptions())
        self._engines[PROFILE_JOB_KIND].start(summary.profiles_needing_update, details)
        return summary

    def job_status(self, job_kind: str) -> JobStatusView:
        return require_engine(self._engines, job_kind).status()

    def cancel_job(self, job_kind: str) -> JobStatusView:
        return require_engine(self._engines, job_kind).cancel()

    def reset_job(self, job_kind: str) -> None:
        require_engine(self._engines, job_kind).reset()

    def run_due_ticks(self) -> dict[str, TickOutcome]:
        """Run every scheduled tick that is due now."""
        return self._driver().run_due_ticks()

    def run_until_idle(
        self,
        max_ticks: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """Drive all jobs until no tick is pending.

        Returns:
            Number of ticks run.
        """
        return self._driver(sleep).run_until_idle(max_ticks)

    def compute_profile(self, contributor_id: str) -> ContributorProfile | None:
        """Recompute one contributor now against the current registries."""
        aggregator = ProfileAggregator(
            self._events,
            self._profiles,
            ladders=self._settings.load_ladders(),
            reference_end=self._reference_clock.reference_end(),
            ignored_event_types=self._config.ignored_event_types,
            now=self._now,
        )
        return aggregator.compute_profile(contributor_id)

    def get_profile(self, contributor_id: str) -> ContributorProfile | None:
        return self._profiles.get(contributor_id)

    def get_profile_stats(self, min_registered_date: date | None = None) -> ProfileStats:
        """Summarize stored profiles by ladder and status."""
        return get_profile_stats(
            self._profiles,
            self._config.ignored_event_types,
            start_of_day(min_registered_date) if min_registered_date is not None else None,
        )

    def reference_dates(self) -> tuple[date | None, date | None]:
        """Return the stored reference start and end dates."""
        return self._reference_clock.get_start_date(), self._reference_clock.get_end_date()

    def refresh_reference_clock(self) -> tuple[date, date] | None:
        return self._reference_clock.refresh_from_store()

    def delete_all_events(self) -> int:
        return self._events.delete_all()

    def delete_all_profiles(self) -> int:
        return self._profiles.delete_all()

    def _driver(self, sleep: Callable[[float], None] = time.sleep) -> JobDriver:
        return JobDriver(self._engines, self._tick_queue, clock=self._clock, sleep=sleep)
