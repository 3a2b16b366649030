"""Typed parsing for event-type and ladder registry documents.

This module loads and validates YAML or JSON registry files that
configure the event-type vocabulary and the ordered ladder tiers.
It provides one strict schema shared by the CLI, SDK, and settings store.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
import re
from typing import Mapping, Sequence, cast

import yaml

from core.errors import LadderboardConfigError
from core.types import EventTypeRegistry, Ladder, LadderConfig, Requirement

_KEY_DISALLOWED = re.compile(r"[^a-z0-9_\-]")


@dataclass(frozen=True)
class RegistryDocument:
    """Validated registry document; either section may be absent."""

    event_types: EventTypeRegistry | None = None
    ladders: LadderConfig | None = None


def normalize_key(raw_value: str) -> str:
    """Normalize an identifier to a lowercase ``[a-z0-9_-]`` key."""
    return _KEY_DISALLOWED.sub("", raw_value.strip().lower())


def title_from_key(key: str) -> str:
    """Derive a display title from a key, e.g. ``support_reply`` -> ``Support Reply``."""
    return " ".join(part.capitalize() for part in key.replace("_", " ").split())


def load_registry_file(registry_path: str) -> RegistryDocument:
    """Load and validate a YAML or JSON registry document from disk.

    Args:
        registry_path: File path to the registry document.

    Returns:
        Validated registry document.

    Raises:
        LadderboardConfigError: If file is missing, unreadable, or invalid.
    """
    registry_file = Path(registry_path).expanduser().resolve()
    if not registry_file.exists():
        raise LadderboardConfigError(
            f"Registry file does not exist at {registry_file}. Provide a valid YAML or JSON path."
        )
    try:
        raw_text = registry_file.read_text(encoding="utf-8")
    except OSError as error:
        raise LadderboardConfigError(
            f"Failed to read registry file at {registry_file}: {error}. "
            "Check file permissions and retry."
        ) from error
    payload = _decode_document(registry_file, raw_text)
    if payload is None:
        raise LadderboardConfigError(
            f"Registry file at {registry_file} is empty. Define 'event_types' and/or 'ladders'."
        )
    return parse_registry_payload(payload)


def parse_registry_payload(payload: object) -> RegistryDocument:
    """Validate a decoded registry document.

    Args:
        payload: Decoded YAML/JSON document.

    Returns:
        Validated registry document.

    Raises:
        LadderboardConfigError: If schema checks fail.
    """
    root_mapping = _expect_mapping(payload, "registry root")
    unknown_keys = sorted(set(root_mapping) - {"event_types", "ladders"})
    if unknown_keys:
        raise LadderboardConfigError(
            f"Registry contains unknown root fields: {', '.join(unknown_keys)}."
        )
    if not root_mapping:
        raise LadderboardConfigError("Registry must define 'event_types' and/or 'ladders'.")
    event_types = None
    ladders = None
    if "event_types" in root_mapping:
        event_types = parse_event_types(root_mapping["event_types"])
    if "ladders" in root_mapping:
        ladders = parse_ladders(root_mapping["ladders"])
    return RegistryDocument(event_types=event_types, ladders=ladders)


def parse_event_types(raw_value: object) -> EventTypeRegistry:
    """Parse ``id -> title`` or ``id -> {title}`` event-type mappings."""
    if raw_value is None:
        return EventTypeRegistry()
    type_mapping = _expect_mapping(raw_value, "event_types")
    titles: dict[str, str] = {}
    for raw_key, raw_entry in type_mapping.items():
        event_type = normalize_key(raw_key)
        if not event_type:
            raise LadderboardConfigError(f"Invalid event type id '{raw_key}'.")
        titles[event_type] = _entry_title(raw_entry, title_from_key(event_type), "event type")
    return EventTypeRegistry(titles=titles)


def parse_ladders(raw_value: object) -> LadderConfig:
    """Parse an ordered ladder list or ordered ``id -> ladder`` mapping."""
    if raw_value is None:
        return LadderConfig()
    if isinstance(raw_value, Mapping):
        ladder_mapping = _expect_mapping(raw_value, "ladders")
        rows = [
            _parse_ladder(entry, index, fallback_id=key)
            for index, (key, entry) in enumerate(ladder_mapping.items())
        ]
    else:
        ladder_rows = _expect_sequence(raw_value, "ladders")
        rows = [
            _parse_ladder(entry, index, fallback_id=None) for index, entry in enumerate(ladder_rows)
        ]
    seen_ids: set[str] = set()
    for ladder in rows:
        if ladder.ladder_id in seen_ids:
            raise LadderboardConfigError(f"Duplicate ladder id '{ladder.ladder_id}' in registry.")
        seen_ids.add(ladder.ladder_id)
    return LadderConfig(ladders=tuple(rows))


def registry_to_payload(
    event_types: EventTypeRegistry,
    ladders: LadderConfig,
) -> dict[str, object]:
    """Serialize registries into the document format accepted by the loader."""
    return {
        "event_types": {key: {"title": title} for key, title in event_types.titles.items()},
        "ladders": [
            {
                "id": ladder.ladder_id,
                "title": ladder.title,
                "requirements": [
                    {"event_type": requirement.event_type, "min": requirement.min_count}
                    for requirement in ladder.requirements
                ],
            }
            for ladder in ladders.ladders
        ],
    }


def _decode_document(registry_file: Path, raw_text: str) -> object:
    if registry_file.suffix.lower() == ".json":
        try:
            return cast(object, json.loads(raw_text))
        except json.JSONDecodeError as error:
            raise LadderboardConfigError(
                f"Failed to parse JSON registry at {registry_file}: {error.msg}. "
                "Fix JSON syntax and retry."
            ) from error
    try:
        return cast(object, yaml.safe_load(raw_text))
    except yaml.YAMLError as error:
        raise LadderboardConfigError(
            f"Failed to parse YAML registry at {registry_file}: {error}. Fix YAML syntax and retry."
        ) from error


def _parse_ladder(entry: object, index: int, fallback_id: str | None) -> Ladder:
    context = f"ladder #{index + 1}"
    ladder_mapping = _expect_mapping(entry, context)
    raw_id = ladder_mapping.get("id", fallback_id)
    if not isinstance(raw_id, str) or not normalize_key(raw_id):
        raise LadderboardConfigError(f"Invalid {context}: field 'id' must be a non-empty string.")
    ladder_id = normalize_key(raw_id)
    title = _entry_title(ladder_mapping, title_from_key(ladder_id), context)
    raw_requirements = ladder_mapping.get("requirements") or []
    requirement_rows = _expect_sequence(raw_requirements, f"{context} requirements")
    requirements = []
    for requirement_index, raw_requirement in enumerate(requirement_rows):
        requirement = _parse_requirement(
            raw_requirement, f"{context} requirement #{requirement_index + 1}"
        )
        if requirement is not None:
            requirements.append(requirement)
    return Ladder(ladder_id=ladder_id, title=title, requirements=tuple(requirements))


def _parse_requirement(raw_requirement: object, context: str) -> Requirement | None:
    requirement_mapping = _expect_mapping(raw_requirement, context)
    raw_type = requirement_mapping.get("event_type")
    raw_min = requirement_mapping.get("min", requirement_mapping.get("min_count"))
    if raw_type is None or raw_min is None:
        raise LadderboardConfigError(f"Invalid {context}: expected 'event_type' and 'min'.")
    if not isinstance(raw_type, str):
        raise LadderboardConfigError(f"Invalid {context}: 'event_type' must be a string.")
    if isinstance(raw_min, bool) or not isinstance(raw_min, int):
        raise LadderboardConfigError(f"Invalid {context}: 'min' must be an integer.")
    event_type = normalize_key(raw_type)
    if not event_type or raw_min <= 0:
        return None
    return Requirement(event_type=event_type, min_count=raw_min)


def _entry_title(raw_entry: object, default_title: str, context: str) -> str:
    if isinstance(raw_entry, str):
        return raw_entry.strip() or default_title
    if raw_entry is None:
        return default_title
    entry_mapping = _expect_mapping(raw_entry, context)
    raw_title = entry_mapping.get("title")
    if raw_title is None:
        return default_title
    if not isinstance(raw_title, str):
        raise LadderboardConfigError(
            f"Invalid {context} '{default_title}': 'title' must be a string."
        )
    return raw_title.strip() or default_title


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise LadderboardConfigError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise LadderboardConfigError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise LadderboardConfigError(f"Invalid {context}: expected list, got {type(value).__name__}.")
