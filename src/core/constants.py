"""Core constants used across Ladderboard modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".ladderboard")
DATABASE_FILE_NAME = "ladderboard.sqlite3"
IMPORTS_DIR_NAME = "imports"
DEFAULT_IMPORT_BATCH_SIZE = 2000
DEFAULT_PROFILE_BATCH_SIZE = 500
DEFAULT_TICK_DELAY_SECONDS = 1.0
DEFAULT_IGNORED_EVENT_TYPES = ("updated_profile",)
CSV_COLUMN_COUNT = 5
STATUS_ACTIVE_DAYS = 30
STATUS_WARNING_DAYS = 90
SECONDS_PER_DAY = 86400
STORAGE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
STORAGE_DATE_FORMAT = "%Y-%m-%d"
IMPORT_JOB_KIND = "csv_import"
PROFILE_JOB_KIND = "profile_generation"
SUPPORTED_JOB_KINDS = (IMPORT_JOB_KIND, PROFILE_JOB_KIND)
PROFILES_GENERATED_SIGNAL = "profiles_generated"
IMPORT_COMPLETED_SIGNAL = "import_completed"
SETTING_EVENT_TYPES = "event_types"
SETTING_LADDERS = "ladders"
SETTING_REFERENCE_START_DATE = "reference_start_date"
SETTING_REFERENCE_END_DATE = "reference_end_date"
