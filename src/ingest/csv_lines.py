"""CSV line parsing for contributor event exports.

Expected column order:
``external_event_id,contributor_id,contributor_registered_date,event_type,event_date``.
Lines are parsed one at a time so an import can resume at any line.
"""

from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path

from core.constants import CSV_COLUMN_COUNT
from core.errors import LadderboardIngestError, LadderboardParseError
from core.timestamps import parse_timestamp
from core.types import ContributorEvent


def parse_csv_line(line: str, ingested_at: datetime) -> ContributorEvent:
    """Parse one CSV line into an event.

    Columns beyond the fifth are ignored. Field emptiness is checked
    later by validation, not here.

    Args:
        line: Raw line text, with or without trailing newline.
        ingested_at: Fallback timestamp when the event date is empty.

    Returns:
        Parsed event.

    Raises:
        LadderboardParseError: If the line is empty, has fewer than five
            columns, or carries an unparsable timestamp.
    """
    text = line.strip()
    if not text:
        raise LadderboardParseError("Empty line")
    columns = next(csv.reader([text]))
    if len(columns) < CSV_COLUMN_COUNT:
        raise LadderboardParseError(
            f"Not enough columns (expected {CSV_COLUMN_COUNT}, got {len(columns)})"
        )
    event_id, contributor_id, registered_raw, event_type, event_date_raw = (
        column.strip() for column in columns[:CSV_COLUMN_COUNT]
    )
    return ContributorEvent(
        event_id=event_id,
        contributor_id=contributor_id,
        event_type=event_type,
        event_created_date=_parse_column("event_date", event_date_raw) or ingested_at,
        contributor_created_date=_parse_column("contributor_registered_date", registered_raw),
    )


def is_csv_header(line: str) -> bool:
    """Return True when a first line looks like a header row."""
    lowered = line.lower()
    return lowered.startswith("id,") or "user_id" in lowered


def inspect_csv_file(csv_path: Path) -> tuple[bool, int]:
    """Detect a header row and count data lines.

    Args:
        csv_path: CSV file to inspect.

    Returns:
        ``(has_header, data_line_count)``.

    Raises:
        LadderboardIngestError: If the file cannot be read.
    """
    try:
        with csv_path.open("r", encoding="utf-8", newline="") as handle:
            first_line = handle.readline()
            if not first_line:
                return False, 0
            has_header = is_csv_header(first_line)
            remaining = sum(1 for _ in handle)
    except (OSError, UnicodeDecodeError) as error:
        raise LadderboardIngestError(
            f"Failed to read CSV file {csv_path}: {error}. Check the file and retry."
        ) from error
    return has_header, remaining if has_header else remaining + 1


def _parse_column(column_name: str, raw_value: str) -> datetime | None:
    try:
        return parse_timestamp(raw_value)
    except ValueError as error:
        raise LadderboardParseError(
            f"Invalid {column_name} value '{raw_value}': expected YYYY-MM-DD HH:MM:SS"
        ) from error
