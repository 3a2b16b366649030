"""Activity status derived from the reference clock."""

from __future__ import annotations

from datetime import datetime

from core.constants import STATUS_ACTIVE_DAYS, STATUS_WARNING_DAYS
from core.timestamps import days_between
from core.types import ActivityStatus


def compute_status(last_activity: datetime, reference_end: datetime) -> ActivityStatus:
    """Classify a contributor by days since their last activity.

    Args:
        last_activity: Timestamp of the contributor's latest event.
        reference_end: Reference clock end, never wall-clock time.

    Returns:
        ``active`` within 30 days, ``warning`` within 90 days, else ``inactive``.
    """
    days_since = days_between(last_activity, reference_end)
    if days_since <= STATUS_ACTIVE_DAYS:
        return "active"
    if days_since <= STATUS_WARNING_DAYS:
        return "warning"
    return "inactive"
