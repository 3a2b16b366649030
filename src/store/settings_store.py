"""Durable key/value settings and registry snapshots.

This module stores JSON settings values by key and exposes typed
accessors for the event-type and ladder registries.
"""

from __future__ import annotations

import json
from typing import Callable, TypeVar

from core.constants import SETTING_EVENT_TYPES, SETTING_LADDERS
from core.errors import LadderboardConfigError, LadderboardStoreError
from core.logging_config import get_logger
from core.types import EventTypeRegistry, LadderConfig
from store.database import Database
from store.record_payload import (
    event_types_from_payload,
    event_types_to_payload,
    ladders_from_payload,
    ladders_to_payload,
)

_LOGGER = get_logger(__name__)
_RegistryT = TypeVar("_RegistryT")


class SettingsStore:
    """SQLite-backed key/value settings store."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def get(self, key: str) -> object | None:
        """Return the decoded value for a key, or None when unset."""
        with self._database.connection() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as error:
            raise LadderboardStoreError(
                f"Setting '{key}' holds invalid JSON: {error.msg}. Reset the setting and retry."
            ) from error

    def set(self, key: str, value: object) -> None:
        with self._database.connection() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, json.dumps(value, sort_keys=True)),
            )

    def delete(self, key: str) -> None:
        with self._database.connection() as conn:
            conn.execute("DELETE FROM settings WHERE key = ?", (key,))

    def load_event_types(self) -> EventTypeRegistry:
        """Return a fresh event-type registry snapshot."""
        return _decode_registry(
            SETTING_EVENT_TYPES, self.get(SETTING_EVENT_TYPES), event_types_from_payload
        )

    def save_event_types(self, registry: EventTypeRegistry) -> None:
        self.set(SETTING_EVENT_TYPES, event_types_to_payload(registry))
        _LOGGER.info("event_types_saved", event_type_count=len(registry.titles))

    def load_ladders(self) -> LadderConfig:
        """Return a fresh ordered ladder registry snapshot."""
        return _decode_registry(SETTING_LADDERS, self.get(SETTING_LADDERS), ladders_from_payload)

    def save_ladders(self, ladders: LadderConfig) -> None:
        self.set(SETTING_LADDERS, ladders_to_payload(ladders))
        _LOGGER.info("ladders_saved", ladder_ids=list(ladders.ladder_ids()))


def _decode_registry(
    key: str,
    payload: object,
    decoder: Callable[[object], _RegistryT],
) -> _RegistryT:
    try:
        return decoder(payload)
    except LadderboardConfigError as error:
        raise LadderboardStoreError(
            f"Stored setting '{key}' is invalid: {error}. Reload the registry file."
        ) from error
