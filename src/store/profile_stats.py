"""Profile table rollups for monitoring."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from core.types import ProfileStats
from store.profile_store import ProfileStore

_STATUS_KEYS = ("active", "warning", "inactive")


def get_profile_stats(
    profiles: ProfileStore,
    ignored_event_types: Sequence[str] = (),
    min_registered_date: datetime | None = None,
) -> ProfileStats:
    """Summarize stored profiles.

    Args:
        profiles: Profile store to summarize.
        ignored_event_types: Event types that never mark a profile stale.
        min_registered_date: Optional registration filter for the stale count.

    Returns:
        Totals by current ladder (``none`` when unset) and by status,
        plus the number of contributors needing an update.
    """
    by_status = {status: 0 for status in _STATUS_KEYS}
    by_status.update(profiles.counts_by_status())
    return ProfileStats(
        total_profiles=profiles.count(),
        by_ladder=profiles.counts_by_ladder(),
        by_status=by_status,
        profiles_needing_update=profiles.count_needing_update(
            ignored_event_types, min_registered_date
        ),
    )
