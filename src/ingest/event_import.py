"""Event validation, deduplicated insert and bulk import.

This module is the single write path into the event store. It
normalizes event types, rejects incomplete events, treats duplicate
event ids as a success outcome, and registers unseen event types.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

from core.errors import EventValidationError, LadderboardIngestError
from core.logging_config import get_logger
from core.registry_config import normalize_key, title_from_key
from core.types import ContributorEvent, InsertOutcome
from store.event_store import EventStore
from store.settings_store import SettingsStore

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ImportTally:
    """Per-outcome event counts for an import pass."""

    imported: int = 0
    duplicates: int = 0
    rejected: int = 0

    def add(self, outcome: InsertOutcome | None) -> "ImportTally":
        """Return a tally with one more event counted under ``outcome``.

        None counts the event as rejected.
        """
        if outcome == "inserted":
            return replace(self, imported=self.imported + 1)
        if outcome == "duplicate":
            return replace(self, duplicates=self.duplicates + 1)
        return replace(self, rejected=self.rejected + 1)


def validate_event(event: ContributorEvent) -> None:
    """Check that an event carries the required identifiers.

    Raises:
        EventValidationError: With every missing field listed.
    """
    missing_fields = tuple(
        field_name
        for field_name, value in (
            ("event_id", event.event_id),
            ("contributor_id", event.contributor_id),
            ("event_type", event.event_type),
        )
        if not value
    )
    if missing_fields:
        raise EventValidationError(missing_fields)


def normalize_event(event: ContributorEvent) -> ContributorEvent:
    return replace(
        event,
        event_id=event.event_id.strip(),
        contributor_id=event.contributor_id.strip(),
        event_type=normalize_key(event.event_type),
    )


class EventImporter:
    """Insert events one at a time and collect unseen event types.

    New event types are buffered and written to the registry by
    ``register_new_event_types`` so a batch performs one registry write.
    """

    def __init__(
        self,
        events: EventStore,
        settings: SettingsStore,
        auto_register_event_types: bool = True,
    ) -> None:
        self._events = events
        self._settings = settings
        self._known_types = settings.load_event_types() if auto_register_event_types else None
        self._new_types: dict[str, str] = {}

    def import_event(self, event: ContributorEvent) -> InsertOutcome:
        """Normalize, validate and insert one event.

        Args:
            event: Parsed event.

        Returns:
            ``"inserted"`` or ``"duplicate"``.

        Raises:
            EventValidationError: If required fields are empty.
            LadderboardStoreError: If the insert fails.
        """
        outcome = insert_event(self._events, event)
        # Duplicates count too: a replayed batch may carry types never registered.
        self._track_event_type(normalize_key(event.event_type))
        return outcome

    def register_new_event_types(self) -> tuple[str, ...]:
        """Persist buffered event types and return their ids."""
        if not self._new_types or self._known_types is None:
            return ()
        registry = self._settings.load_event_types().with_added(self._new_types)
        self._settings.save_event_types(registry)
        added = tuple(self._new_types)
        _LOGGER.info("event_types_registered", event_types=list(added))
        self._known_types = registry
        self._new_types = {}
        return added

    def _track_event_type(self, event_type: str) -> None:
        if self._known_types is None or event_type in self._known_types:
            return
        self._new_types.setdefault(event_type, title_from_key(event_type))


def insert_event(events: EventStore, event: ContributorEvent) -> InsertOutcome:
    """Normalize, validate and insert one event without type registration.

    Raises:
        EventValidationError: If required fields are empty.
        LadderboardStoreError: If the insert fails.
    """
    normalized = normalize_event(event)
    validate_event(normalized)
    return events.insert(normalized)


def import_events(
    events: EventStore,
    settings: SettingsStore,
    batch: Iterable[ContributorEvent],
    auto_register_event_types: bool = True,
) -> ImportTally:
    """Import a batch of already-parsed events.

    Invalid events are counted and skipped; a store failure propagates.

    Args:
        events: Target event store.
        settings: Settings store holding the event-type registry.
        batch: Events to import.
        auto_register_event_types: Whether unseen types are registered.

    Returns:
        Counts of imported, duplicate, and rejected events.
    """
    importer = EventImporter(events, settings, auto_register_event_types)
    tally = ImportTally()
    for event in batch:
        try:
            outcome = importer.import_event(event)
        except LadderboardIngestError as error:
            _LOGGER.debug("import_event_rejected", event_id=event.event_id, error=str(error))
            tally = tally.add(None)
            continue
        tally = tally.add(outcome)
    importer.register_new_event_types()
    return tally
