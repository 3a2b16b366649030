"""Unit tests for registry document parsing."""

from __future__ import annotations

import pytest

from core.errors import LadderboardConfigError
from core.registry_config import (
    load_registry_file,
    normalize_key,
    parse_ladders,
    parse_registry_payload,
    registry_to_payload,
    title_from_key,
)
from core.types import Requirement
from tests.fixture_paths import fixture_path


def test_load_registry_file_reads_yaml_event_types() -> None:
    """YAML event types should accept long and short title forms."""
    document = load_registry_file(str(fixture_path("registry.yaml")))

    assert document.event_types is not None
    assert dict(document.event_types.titles) == {
        "forum_post": "Forum Post",
        "patch": "Patch",
        "support_reply": "Support Reply",
    }


def test_load_registry_file_keeps_ladder_order() -> None:
    """Ladder tiers should keep document order."""
    document = load_registry_file(str(fixture_path("registry.yaml")))

    assert document.ladders is not None
    assert document.ladders.ladder_ids() == ("connect", "core")


def test_load_registry_file_drops_non_positive_requirements() -> None:
    """Requirements with min <= 0 should be dropped."""
    document = load_registry_file(str(fixture_path("registry.yaml")))

    assert document.ladders is not None
    assert document.ladders.ladders[1].requirements == (Requirement("patch", 3),)


def test_load_registry_file_accepts_json_mapping_ladders() -> None:
    """JSON documents may give ladders as an ordered mapping."""
    document = load_registry_file(str(fixture_path("registry.json")))

    assert document.event_types is None
    assert document.ladders is not None and document.ladders.ladder_ids() == ("connect", "core")


def test_load_registry_file_raises_for_missing_file(tmp_path) -> None:
    """Missing registry files should raise a config error."""
    with pytest.raises(LadderboardConfigError, match="does not exist"):
        load_registry_file(str(tmp_path / "missing.yaml"))


def test_load_registry_file_raises_for_invalid_yaml() -> None:
    """Malformed YAML should raise a config error."""
    with pytest.raises(LadderboardConfigError):
        load_registry_file(str(fixture_path("registry_invalid.yaml")))


def test_parse_registry_payload_rejects_unknown_keys() -> None:
    """Unknown root keys should be rejected."""
    with pytest.raises(LadderboardConfigError):
        parse_registry_payload({"ladders": [], "badges": {}})


def test_parse_ladders_rejects_duplicate_ids() -> None:
    """Ladder ids must be unique."""
    payload = [{"id": "core", "requirements": []}, {"id": "Core", "requirements": []}]

    with pytest.raises(LadderboardConfigError, match="Duplicate"):
        parse_ladders(payload)


def test_parse_ladders_rejects_boolean_min() -> None:
    """Boolean thresholds should not be accepted as integers."""
    payload = [{"id": "core", "requirements": [{"event_type": "patch", "min": True}]}]

    with pytest.raises(LadderboardConfigError):
        parse_ladders(payload)


def test_registry_to_payload_reloads_to_same_ladders() -> None:
    """Exported payloads should be accepted by the parser."""
    document = load_registry_file(str(fixture_path("registry.yaml")))
    assert document.event_types is not None and document.ladders is not None

    reloaded = parse_registry_payload(registry_to_payload(document.event_types, document.ladders))

    assert reloaded.ladders == document.ladders


def test_normalize_key_strips_disallowed_characters() -> None:
    """Keys should be lowercased with only [a-z0-9_-] kept."""
    assert normalize_key(" Support Reply! ") == "supportreply"


def test_title_from_key_capitalizes_words() -> None:
    """Titles should be derived from underscore-separated keys."""
    assert title_from_key("support_reply") == "Support Reply"
