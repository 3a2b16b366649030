"""Runtime configuration model for Ladderboard.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DATABASE_FILE_NAME,
    DEFAULT_DATA_ROOT,
    DEFAULT_IGNORED_EVENT_TYPES,
    DEFAULT_IMPORT_BATCH_SIZE,
    DEFAULT_PROFILE_BATCH_SIZE,
    DEFAULT_TICK_DELAY_SECONDS,
    IMPORTS_DIR_NAME,
)
from core.errors import LadderboardConfigError
from core.registry_config import normalize_key


@dataclass(frozen=True)
class LadderboardConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for the database and staged imports.
        import_batch_size: CSV lines processed per import tick.
        profile_batch_size: Contributors processed per generation tick.
        tick_delay_seconds: Delay before a follow-up tick becomes due.
        ignored_event_types: Event types excluded from profiles and journeys.
    """

    data_root: Path
    import_batch_size: int = DEFAULT_IMPORT_BATCH_SIZE
    profile_batch_size: int = DEFAULT_PROFILE_BATCH_SIZE
    tick_delay_seconds: float = DEFAULT_TICK_DELAY_SECONDS
    ignored_event_types: tuple[str, ...] = DEFAULT_IGNORED_EVENT_TYPES

    @property
    def database_path(self) -> Path:
        """SQLite database file under the data root."""
        return self.data_root / DATABASE_FILE_NAME

    @property
    def imports_dir(self) -> Path:
        """Directory holding staged CSV files for running imports."""
        return self.data_root / IMPORTS_DIR_NAME

    @classmethod
    def from_env(cls) -> "LadderboardConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            LadderboardConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("LADDERBOARD_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        import_batch_size = _parse_positive_int(
            "LADDERBOARD_IMPORT_BATCH_SIZE",
            os.getenv("LADDERBOARD_IMPORT_BATCH_SIZE", str(DEFAULT_IMPORT_BATCH_SIZE)),
        )
        profile_batch_size = _parse_positive_int(
            "LADDERBOARD_PROFILE_BATCH_SIZE",
            os.getenv("LADDERBOARD_PROFILE_BATCH_SIZE", str(DEFAULT_PROFILE_BATCH_SIZE)),
        )
        tick_delay_seconds = _parse_delay(
            os.getenv("LADDERBOARD_TICK_DELAY_SECONDS", str(DEFAULT_TICK_DELAY_SECONDS))
        )
        ignored_value = os.getenv(
            "LADDERBOARD_IGNORED_EVENT_TYPES", ",".join(DEFAULT_IGNORED_EVENT_TYPES)
        )
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            import_batch_size=import_batch_size,
            profile_batch_size=profile_batch_size,
            tick_delay_seconds=tick_delay_seconds,
            ignored_event_types=_parse_event_type_list(ignored_value),
        )


def _parse_positive_int(variable_name: str, raw_value: str) -> int:
    """Parse a positive integer environment value.

    Args:
        variable_name: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer.

    Raises:
        LadderboardConfigError: If value is not a positive integer.
    """
    try:
        parsed_value = int(raw_value)
    except ValueError as error:
        raise LadderboardConfigError(
            f"Invalid {variable_name} value: expected integer, got '{raw_value}'. "
            f"Set {variable_name} to a positive whole number."
        ) from error
    if parsed_value <= 0:
        raise LadderboardConfigError(
            f"Invalid {variable_name} value: expected a positive integer, got {parsed_value}."
        )
    return parsed_value


def _parse_delay(raw_value: str) -> float:
    try:
        parsed_value = float(raw_value)
    except ValueError as error:
        raise LadderboardConfigError(
            "Invalid LADDERBOARD_TICK_DELAY_SECONDS value: "
            f"expected number, got '{raw_value}'."
        ) from error
    if parsed_value < 0:
        raise LadderboardConfigError(
            "Invalid LADDERBOARD_TICK_DELAY_SECONDS value: delay cannot be negative."
        )
    return parsed_value


def _parse_event_type_list(raw_value: str) -> tuple[str, ...]:
    keys = (normalize_key(item) for item in raw_value.split(","))
    return tuple(key for key in keys if key)
