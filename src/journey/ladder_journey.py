"""Ladder journey replay.

This module replays one contributor's ordered events against the
ordered ladder configuration and produces the tier-transition timeline.
A single event may clear several tiers at once; every intermediate tier
still gets its own zero-length step so the journey never skips a rung.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Sequence

from core.timestamps import whole_days_between
from core.types import ContributorEvent, JourneyStep, Ladder, LadderConfig, RequirementMet


@dataclass
class _OpenStep:
    """Mutable step under construction."""

    ladder_id: str
    step_joined: datetime
    first_event: ContributorEvent
    last_event: ContributorEvent
    events_in_step: int
    requirement_met: RequirementMet

    def close(self, left_at: datetime, time_in_step_days: int | None = None) -> JourneyStep:
        days = whole_days_between(self.step_joined, left_at)
        return self._freeze(left_at, days if time_in_step_days is None else time_in_step_days)

    def finalize(self, reference_end: datetime) -> JourneyStep:
        return self._freeze(None, whole_days_between(self.step_joined, reference_end))

    def _freeze(self, step_left: datetime | None, time_in_step_days: int) -> JourneyStep:
        return JourneyStep(
            ladder_id=self.ladder_id,
            step_joined=self.step_joined,
            step_left=step_left,
            time_in_step_days=time_in_step_days,
            first_event_id=self.first_event.event_id,
            first_event_type=self.first_event.event_type,
            first_event_date=self.first_event.event_created_date,
            last_event_id=self.last_event.event_id,
            last_event_type=self.last_event.event_type,
            last_event_date=self.last_event.event_created_date,
            events_in_step=self.events_in_step,
            requirement_met=self.requirement_met,
        )


def check_ladder_requirements(
    ladder: Ladder,
    counts: Mapping[str, int],
) -> RequirementMet | None:
    """Return the first requirement satisfied by the running counts.

    Requirements are alternatives; the first one in configured order
    whose count reaches its threshold wins, not the highest achieved.

    Args:
        ladder: Tier to check.
        counts: Running event counts by type.

    Returns:
        The met requirement, or None if no requirement is satisfied.
    """
    for requirement in ladder.requirements:
        achieved = counts.get(requirement.event_type, 0)
        if achieved >= requirement.min_count:
            return RequirementMet(
                event_type=requirement.event_type,
                min_count=requirement.min_count,
                achieved=achieved,
            )
    return None


def compute_ladder_journey(
    events: Sequence[ContributorEvent],
    ladders: LadderConfig,
    reference_end: datetime,
) -> tuple[JourneyStep, ...]:
    """Replay events in order and build the tier-transition timeline.

    Args:
        events: Contributor events sorted ascending by timestamp, with
            ignored event types already removed.
        ladders: Ordered ladder configuration snapshot.
        reference_end: Synthetic "now" used to size the ongoing last step.

    Returns:
        Journey steps in ladder order; only the last may be open.
    """
    if ladders.is_empty():
        return ()
    tiers = ladders.ladders
    counts: Counter[str] = Counter()
    closed_steps: list[JourneyStep] = []
    open_step: _OpenStep | None = None
    current_index = -1
    for event in events:
        counts[event.event_type] += 1
        next_index = current_index + 1
        requirement_met = _requirement_for(tiers, next_index, counts)
        if requirement_met is not None:
            if open_step is not None:
                closed_steps.append(open_step.close(event.event_created_date))
            open_step = _open_step(tiers[next_index], event, requirement_met)
            current_index = next_index
            cascade_met = _requirement_for(tiers, current_index + 1, counts)
            while cascade_met is not None:
                open_step.last_event = event
                open_step.events_in_step = 1
                closed_steps.append(open_step.close(event.event_created_date, time_in_step_days=0))
                current_index += 1
                open_step = _open_step(tiers[current_index], event, cascade_met)
                cascade_met = _requirement_for(tiers, current_index + 1, counts)
        if open_step is not None:
            open_step.events_in_step += 1
            open_step.last_event = event
    if open_step is None:
        return ()
    return (*closed_steps, open_step.finalize(reference_end))


def _requirement_for(
    tiers: tuple[Ladder, ...],
    index: int,
    counts: Mapping[str, int],
) -> RequirementMet | None:
    if index >= len(tiers):
        return None
    return check_ladder_requirements(tiers[index], counts)


def _open_step(
    ladder: Ladder,
    event: ContributorEvent,
    requirement_met: RequirementMet,
) -> _OpenStep:
    return _OpenStep(
        ladder_id=ladder.ladder_id,
        step_joined=event.event_created_date,
        first_event=event,
        last_event=event,
        events_in_step=0,
        requirement_met=requirement_met,
    )
