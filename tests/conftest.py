"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_CONFIG_VARIABLES = (
    "LADDERBOARD_DATA_ROOT",
    "LADDERBOARD_IMPORT_BATCH_SIZE",
    "LADDERBOARD_PROFILE_BATCH_SIZE",
    "LADDERBOARD_TICK_DELAY_SECONDS",
    "LADDERBOARD_IGNORED_EVENT_TYPES",
)


def pytest_sessionstart() -> None:
    """Put src/ and the repository root on sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    for import_root in (project_root / "src", project_root):
        if str(import_root) not in sys.path:
            sys.path.insert(0, str(import_root))


@pytest.fixture(autouse=True)
def _isolated_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host LADDERBOARD_* variables out of config-dependent tests."""
    for variable_name in _CONFIG_VARIABLES:
        monkeypatch.delenv(variable_name, raising=False)
