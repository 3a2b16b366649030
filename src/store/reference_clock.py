"""Reference clock derived from stored event timestamps.

Activity status and ongoing time-in-step use the latest event date
as "now" instead of wall-clock time, so results depend only on data.
"""

from __future__ import annotations

from datetime import date, datetime

from core.constants import SETTING_REFERENCE_END_DATE, SETTING_REFERENCE_START_DATE
from core.errors import LadderboardStoreError
from core.logging_config import get_logger
from core.timestamps import format_date, parse_date, start_of_day
from store.event_store import EventStore
from store.settings_store import SettingsStore

_LOGGER = get_logger(__name__)


class ReferenceClock:
    """Persisted earliest/latest event dates."""

    def __init__(self, settings: SettingsStore, events: EventStore) -> None:
        self._settings = settings
        self._events = events

    def get_start_date(self) -> date | None:
        """Return the date of the oldest event at the last refresh."""
        return _stored_date(self._settings.get(SETTING_REFERENCE_START_DATE))

    def get_end_date(self) -> date | None:
        """Return the date of the newest event at the last refresh."""
        return _stored_date(self._settings.get(SETTING_REFERENCE_END_DATE))

    def refresh_from_store(self) -> tuple[date, date] | None:
        """Recompute and persist both dates from the event store.

        Returns:
            The new (start, end) dates, or None when the store is empty;
            previously stored dates are kept in that case.
        """
        bounds = self._events.timestamp_bounds()
        if bounds is None:
            _LOGGER.info("reference_clock_unchanged", reason="no_events")
            return None
        start_date, end_date = bounds[0].date(), bounds[1].date()
        self._settings.set(SETTING_REFERENCE_START_DATE, format_date(start_date))
        self._settings.set(SETTING_REFERENCE_END_DATE, format_date(end_date))
        _LOGGER.info(
            "reference_clock_refreshed",
            start_date=format_date(start_date),
            end_date=format_date(end_date),
        )
        return start_date, end_date

    def reference_end(self) -> datetime:
        """Return midnight of the end date, refreshing once if unset.

        Raises:
            LadderboardStoreError: If no events exist to derive a date from.
        """
        end_date = self.get_end_date()
        if end_date is None:
            refreshed = self.refresh_from_store()
            if refreshed is None:
                raise LadderboardStoreError(
                    "Reference end date is unavailable: the event store is empty. "
                    "Import events before computing profiles."
                )
            end_date = refreshed[1]
        return start_of_day(end_date)


def _stored_date(raw_value: object) -> date | None:
    if not isinstance(raw_value, str):
        return None
    return parse_date(raw_value)
