"""
Trigger expression synthesis and expansion.

A trigger expression is the steady-state daily recurrence of a slot plan,
handed to the notification scheduler together with the patient's timezone.
"""

from collections import defaultdict
from typing import Dict, List, Optional

import pendulum
from pendulum import DateTime

from .exceptions import InvalidRequestError, InvalidSlotError
from .models import (
    DEFAULT_TIMEZONE,
    DoseOccurrence,
    SlotPlan,
    TriggerExpression,
    TriggerRule,
    ensure_timezone,
)


DEFAULT_MEDICATION_NAME = "藥物"


def synthesize_trigger(slot_plan: SlotPlan) -> TriggerExpression:
    """
    Compile a slot plan into daily trigger rules.

    Slots are grouped by minute value; each distinct minute becomes one rule
    carrying the set of hours it fires at. ``[08:00, 12:00, 20:00]`` compiles
    to a single rule ``0 8,12,20 * * *`` while ``[08:30, 12:00]`` needs two
    rules, since a plain minute-set x hour-set product would also fire at
    08:00 and 12:30.

    Raises:
        InvalidSlotError: If the slot plan violates the forbidden window
    """
    slot_plan.ensure_outside_forbidden_window()

    hours_by_minute: Dict[int, set] = defaultdict(set)
    for time_of_day in slot_plan.times:
        hours_by_minute[time_of_day.minute].add(time_of_day.hour)

    rules = tuple(
        TriggerRule(minute=minute, hours=tuple(sorted(hours)))
        for minute, hours in sorted(hours_by_minute.items())
    )
    return TriggerExpression(rules=rules)


def expand_trigger(
    trigger: TriggerExpression,
    start: DateTime,
    total_doses: int,
    timezone: str = DEFAULT_TIMEZONE,
    medication_name: Optional[str] = None,
) -> List[DoseOccurrence]:
    """
    Walk a trigger forward and number its first ``total_doses`` firings.

    Expansion starts at 00:00 of ``start``'s calendar day in ``timezone``, so
    every firing of that day counts, including those already past.

    Args:
        trigger: Compiled trigger expression
        start: Any instant on the first day to expand
        total_doses: Exact number of occurrences to produce
        timezone: IANA zone the trigger is evaluated in
        medication_name: Prefix of the per-dose label (``name-N``)

    Returns:
        List of DoseOccurrence objects in firing order
    """
    if isinstance(total_doses, bool) or not isinstance(total_doses, int) or total_doses < 1:
        raise InvalidRequestError(f"total_doses must be a positive integer, got {total_doses!r}")
    ensure_timezone(timezone)

    fire_times = trigger.fire_times()
    if not fire_times:
        raise InvalidSlotError("Trigger expression has no fire times")

    name = medication_name or DEFAULT_MEDICATION_NAME
    day = pendulum.instance(start).in_timezone(timezone).date()
    occurrences: List[DoseOccurrence] = []

    while len(occurrences) < total_doses:
        for time_of_day in fire_times:
            if len(occurrences) >= total_doses:
                break
            sequence = len(occurrences) + 1
            occurrences.append(
                DoseOccurrence(
                    sequence=sequence,
                    label=f"{name}-{sequence}",
                    scheduled_time=time_of_day.on(day, timezone),
                )
            )
        day = day.add(days=1)

    return occurrences
