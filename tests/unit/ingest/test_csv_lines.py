"""Unit tests for CSV line parsing."""

from __future__ import annotations

from datetime import datetime

import pytest

from core.errors import LadderboardIngestError, LadderboardParseError
from ingest.csv_lines import inspect_csv_file, is_csv_header, parse_csv_line
from tests.fixture_paths import fixture_path

INGESTED_AT = datetime(2024, 4, 1, 12)


def test_parse_csv_line_maps_columns_in_order() -> None:
    """Columns should map to id, contributor, registration, type and date."""
    event = parse_csv_line(
        "e1,alice,2023-01-05 10:00:00,patch,2024-01-10 12:00:00\n", INGESTED_AT
    )

    assert (event.event_id, event.contributor_id, event.event_type) == ("e1", "alice", "patch")
    assert event.contributor_created_date == datetime(2023, 1, 5, 10)
    assert event.event_created_date == datetime(2024, 1, 10, 12)


def test_parse_csv_line_falls_back_to_ingest_time() -> None:
    """An empty event date should use the ingest time and empty registration stays unset."""
    event = parse_csv_line("e1,alice,,patch,", INGESTED_AT)

    assert event.event_created_date == INGESTED_AT and event.contributor_created_date is None


def test_parse_csv_line_ignores_extra_columns_and_honors_quotes() -> None:
    """Quoted commas should stay in a field and trailing columns are dropped."""
    event = parse_csv_line('e1,"alice, jr",,patch,2024-01-10,extra,more', INGESTED_AT)

    assert event.contributor_id == "alice, jr" and event.event_type == "patch"


def test_parse_csv_line_rejects_short_lines() -> None:
    """Lines with fewer than five columns should fail to parse."""
    with pytest.raises(LadderboardParseError, match="Not enough columns"):
        parse_csv_line("bad,line", INGESTED_AT)


def test_parse_csv_line_rejects_blank_lines() -> None:
    """Whitespace-only lines should fail to parse."""
    with pytest.raises(LadderboardParseError, match="Empty line"):
        parse_csv_line("   \n", INGESTED_AT)


def test_parse_csv_line_rejects_bad_timestamps() -> None:
    """Unparsable dates should name the offending column."""
    with pytest.raises(LadderboardParseError, match="event_date"):
        parse_csv_line("e1,alice,,patch,yesterday", INGESTED_AT)


def test_is_csv_header_detects_known_header_shapes() -> None:
    """Header rows start with id or mention user_id."""
    assert is_csv_header("id,user_id,user_registered,event_type,date_recorded")
    assert is_csv_header("event,User_ID,registered,type,date")
    assert not is_csv_header("e1,alice,,patch,2024-01-10")


def test_inspect_csv_file_counts_data_lines() -> None:
    """Header rows should be excluded from the data line count."""
    assert inspect_csv_file(fixture_path("events_with_header.csv")) == (True, 9)
    assert inspect_csv_file(fixture_path("events_no_header.csv")) == (False, 2)
    assert inspect_csv_file(fixture_path("empty.csv")) == (False, 0)


def test_inspect_csv_file_reports_missing_file(tmp_path) -> None:
    """A missing file should raise an ingest error."""
    with pytest.raises(LadderboardIngestError, match="Failed to read CSV file"):
        inspect_csv_file(tmp_path / "missing.csv")
