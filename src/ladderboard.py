"""Public SDK surface for Ladderboard.

This module provides a stable import path for library users.
It re-exports the primary client and typed models.
"""

from __future__ import annotations

from core.config import LadderboardConfig
from core.types import (
    ContributorEvent,
    ContributorProfile,
    GenerationOptions,
    GenerationStartSummary,
    ImportStartRequest,
    JobStatusView,
    JourneyStep,
    Ladder,
    LadderConfig,
    ProfileStats,
    Requirement,
)
from journey.ladder_journey import compute_ladder_journey
from jobs.notifications import SignalBus
from store.ladder_sdk import LadderboardClient

__all__ = [
    "ContributorEvent",
    "ContributorProfile",
    "GenerationOptions",
    "GenerationStartSummary",
    "ImportStartRequest",
    "JobStatusView",
    "JourneyStep",
    "Ladder",
    "LadderConfig",
    "LadderboardClient",
    "LadderboardConfig",
    "ProfileStats",
    "Requirement",
    "SignalBus",
    "compute_ladder_journey",
]
