"""Unit tests for core config parsing."""

from __future__ import annotations

import pytest

from core.config import LadderboardConfig
from core.errors import LadderboardConfigError


def test_from_env_reads_data_root(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve data root from environment."""
    monkeypatch.setenv("LADDERBOARD_DATA_ROOT", "./.tmp-ladderboard")

    config = LadderboardConfig.from_env()

    assert config.data_root.name == ".tmp-ladderboard"


def test_from_env_uses_batch_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset batch sizes should fall back to the documented defaults."""
    monkeypatch.delenv("LADDERBOARD_IMPORT_BATCH_SIZE", raising=False)
    monkeypatch.delenv("LADDERBOARD_PROFILE_BATCH_SIZE", raising=False)

    config = LadderboardConfig.from_env()

    assert (config.import_batch_size, config.profile_batch_size) == (2000, 500)


def test_from_env_raises_for_invalid_batch_size(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for a non-numeric batch size."""
    monkeypatch.setenv("LADDERBOARD_IMPORT_BATCH_SIZE", "lots")

    with pytest.raises(LadderboardConfigError, match="LADDERBOARD_IMPORT_BATCH_SIZE"):
        LadderboardConfig.from_env()


def test_from_env_rejects_zero_batch_size(monkeypatch: pytest.MonkeyPatch) -> None:
    """Batch sizes must be positive."""
    monkeypatch.setenv("LADDERBOARD_PROFILE_BATCH_SIZE", "0")

    with pytest.raises(LadderboardConfigError):
        LadderboardConfig.from_env()


def test_from_env_rejects_negative_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    """Tick delay cannot be negative."""
    monkeypatch.setenv("LADDERBOARD_TICK_DELAY_SECONDS", "-1")

    with pytest.raises(LadderboardConfigError):
        LadderboardConfig.from_env()


def test_from_env_parses_ignored_event_types(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ignored event types should be split on commas and trimmed."""
    monkeypatch.setenv("LADDERBOARD_IGNORED_EVENT_TYPES", "updated_profile, login ,")

    config = LadderboardConfig.from_env()

    assert config.ignored_event_types == ("updated_profile", "login")


def test_from_env_normalizes_ignored_event_types(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ignored event types should match the keys imported events are stored under."""
    monkeypatch.setenv("LADDERBOARD_IGNORED_EVENT_TYPES", "Updated_Profile, Login")

    config = LadderboardConfig.from_env()

    assert config.ignored_event_types == ("updated_profile", "login")


def test_database_path_lives_under_data_root(tmp_path) -> None:
    """Derived paths should sit under the data root."""
    config = LadderboardConfig(data_root=tmp_path)

    assert config.database_path.parent == tmp_path and config.imports_dir.parent == tmp_path
