"""Shared JSON serialization for nested profile and settings payloads.

This module centralizes the storage-boundary encoding of ladder
journeys, event counts, registries, and job details. In-process code
only ever sees the typed records from core.types.
"""

from __future__ import annotations

from datetime import datetime
import json
from typing import Any, Mapping, cast

from core.registry_config import parse_event_types, parse_ladders, registry_to_payload
from core.timestamps import format_optional_timestamp, format_timestamp, parse_storage_timestamp
from core.types import (
    ContributorProfile,
    EventCount,
    EventTypeRegistry,
    JourneyStep,
    LadderConfig,
    RequirementMet,
)


def journey_step_to_payload(step: JourneyStep) -> dict[str, object]:
    """Serialize a JourneyStep into a JSON-safe payload.

    Args:
        step: Journey step instance.

    Returns:
        Dictionary payload for JSON encoding.
    """
    return {
        "ladder_id": step.ladder_id,
        "step_joined": format_timestamp(step.step_joined),
        "step_left": format_optional_timestamp(step.step_left),
        "time_in_step_days": step.time_in_step_days,
        "first_event_id": step.first_event_id,
        "first_event_type": step.first_event_type,
        "first_event_date": format_timestamp(step.first_event_date),
        "last_event_id": step.last_event_id,
        "last_event_type": step.last_event_type,
        "last_event_date": format_timestamp(step.last_event_date),
        "events_in_step": step.events_in_step,
        "requirement_met": {
            "event_type": step.requirement_met.event_type,
            "min": step.requirement_met.min_count,
            "achieved": step.requirement_met.achieved,
        },
    }


def journey_step_from_payload(payload: Mapping[str, Any]) -> JourneyStep:
    """Deserialize a JSON payload into a JourneyStep."""
    requirement_payload = payload.get("requirement_met") or {}
    return JourneyStep(
        ladder_id=str(payload["ladder_id"]),
        step_joined=_required_timestamp(payload, "step_joined"),
        step_left=parse_storage_timestamp(payload.get("step_left")),
        time_in_step_days=int(payload.get("time_in_step_days") or 0),
        first_event_id=str(payload.get("first_event_id", "")),
        first_event_type=str(payload.get("first_event_type", "")),
        first_event_date=_required_timestamp(payload, "first_event_date"),
        last_event_id=str(payload.get("last_event_id", "")),
        last_event_type=str(payload.get("last_event_type", "")),
        last_event_date=_required_timestamp(payload, "last_event_date"),
        events_in_step=int(payload.get("events_in_step") or 0),
        requirement_met=RequirementMet(
            event_type=str(requirement_payload.get("event_type", "")),
            min_count=int(requirement_payload.get("min") or 0),
            achieved=int(requirement_payload.get("achieved") or 0),
        ),
    )


def encode_journey(journey: tuple[JourneyStep, ...]) -> str:
    return json.dumps([journey_step_to_payload(step) for step in journey], sort_keys=True)


def decode_journey(raw_value: str | None) -> tuple[JourneyStep, ...]:
    rows = _load_json(raw_value, default=[])
    return tuple(journey_step_from_payload(row) for row in rows)


def event_counts_to_payload(event_counts: Mapping[str, EventCount]) -> dict[str, object]:
    return {
        event_type: {
            "count": count.count,
            "first_date": format_timestamp(count.first_date),
            "last_date": format_timestamp(count.last_date),
        }
        for event_type, count in event_counts.items()
    }


def encode_event_counts(event_counts: Mapping[str, EventCount]) -> str:
    """Encode event counts keyed by type, preserving first-seen order."""
    return json.dumps(event_counts_to_payload(event_counts))


def decode_event_counts(raw_value: str | None) -> dict[str, EventCount]:
    payload = _load_json(raw_value, default={})
    return {
        str(event_type): EventCount(
            count=int(row["count"]),
            first_date=_required_timestamp(row, "first_date"),
            last_date=_required_timestamp(row, "last_date"),
        )
        for event_type, row in payload.items()
    }


def profile_to_payload(profile: ContributorProfile) -> dict[str, object]:
    """Serialize a profile for display or export."""
    return {
        "contributor_id": profile.contributor_id,
        "registered_date": format_optional_timestamp(profile.registered_date),
        "current_ladder": profile.current_ladder,
        "status": profile.status,
        "total_events": profile.total_events,
        "first_activity": format_timestamp(profile.first_activity),
        "last_activity": format_timestamp(profile.last_activity),
        "computed_at": format_timestamp(profile.computed_at),
        "event_counts": event_counts_to_payload(profile.event_counts),
        "ladder_journey": [journey_step_to_payload(step) for step in profile.ladder_journey],
    }


def encode_details(details: Mapping[str, object]) -> str:
    return json.dumps(dict(details), sort_keys=True)


def decode_details(raw_value: str | None) -> dict[str, object]:
    payload = _load_json(raw_value, default={})
    return dict(payload) if isinstance(payload, dict) else {}


def event_types_to_payload(registry: EventTypeRegistry) -> dict[str, object]:
    payload = registry_to_payload(registry, LadderConfig())
    return cast(dict[str, object], payload["event_types"])


def event_types_from_payload(payload: object) -> EventTypeRegistry:
    return parse_event_types(payload)


def ladders_to_payload(ladders: LadderConfig) -> list[object]:
    payload = registry_to_payload(EventTypeRegistry(), ladders)
    return cast(list[object], payload["ladders"])


def ladders_from_payload(payload: object) -> LadderConfig:
    return parse_ladders(payload)


def _required_timestamp(payload: Mapping[str, Any], field_name: str) -> datetime:
    parsed = parse_storage_timestamp(payload.get(field_name))
    if parsed is None:
        raise ValueError(f"Stored payload is missing timestamp field '{field_name}'")
    return parsed


def _load_json(raw_value: str | None, default: Any) -> Any:
    if not raw_value:
        return default
    return json.loads(raw_value)
