"""Ladderboard exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class LadderboardError(Exception):
    """Base exception for all Ladderboard failures."""


class LadderboardConfigError(LadderboardError):
    """Raised for invalid runtime configuration or registry documents."""


class LadderboardIngestError(LadderboardError):
    """Raised for import source failures."""


class LadderboardParseError(LadderboardIngestError):
    """Raised when one CSV line cannot be parsed into an event."""


class EventValidationError(LadderboardIngestError):
    """Raised when an event is missing required fields."""

    def __init__(self, missing_fields: tuple[str, ...]) -> None:
        self.missing_fields = missing_fields
        super().__init__(f"Missing required fields: {', '.join(missing_fields)}")


class LadderboardStoreError(LadderboardError):
    """Raised for persistence failures."""


class LadderboardJobError(LadderboardError):
    """Raised for invalid batch job operations."""
