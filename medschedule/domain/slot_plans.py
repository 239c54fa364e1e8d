"""
Slot-plan resolution: named meal-anchored tables and caregiver custom times.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from .exceptions import InvalidRequestError, InvalidSlotError, UnsupportedDoseCountError
from .models import Slot, SlotPlan, TimeOfDay, TimingPlan


# plan1 slots per dose count; plan2 is plan1 shifted later
PLAN1_TIMES: Dict[int, Tuple[str, ...]] = {
    1: ("08:00",),
    2: ("08:00", "18:00"),
    3: ("08:00", "12:00", "17:00"),
    4: ("08:00", "12:00", "17:00", "21:00"),
}

PLAN2_OFFSET_MINUTES = 60

DEFAULT_DOSE_LABEL = "用藥時間"

# (start hour inclusive, label); a time takes the last bucket it reaches
MEAL_LABEL_BUCKETS: Tuple[Tuple[int, str], ...] = (
    (6, "早餐後"),
    (11, "午餐後"),
    (15, "晚餐後"),
    (20, "睡前"),
)


def meal_label(time_of_day: TimeOfDay) -> str:
    """
    Meal-relative label for a time of day.

    Times in the forbidden window have no meal bucket and get the generic
    dose label.
    """
    label = DEFAULT_DOSE_LABEL
    for start_hour, bucket_label in MEAL_LABEL_BUCKETS:
        if time_of_day.hour >= start_hour:
            label = bucket_label
    return label


def ordinal_label(index: int) -> str:
    """Positional label for the ``index``-th (0-based) dose of a day."""
    return f"第{index + 1}次"


def supported_dose_counts() -> List[int]:
    return sorted(PLAN1_TIMES)


def named_plan_times(doses_per_day: int, timing_plan: TimingPlan) -> List[TimeOfDay]:
    """
    Look up the canonical times of a named plan.

    Raises:
        UnsupportedDoseCountError: If the table has no entry for the dose count
    """
    if doses_per_day not in PLAN1_TIMES:
        raise UnsupportedDoseCountError(
            f"No {timing_plan.value} table for {doses_per_day} doses per day; "
            f"supported counts: {supported_dose_counts()}"
        )

    times = [TimeOfDay.parse(value) for value in PLAN1_TIMES[doses_per_day]]
    if timing_plan is TimingPlan.PLAN2:
        times = [t.shifted(PLAN2_OFFSET_MINUTES) for t in times]
    return times


def resolve_slot_plan(
    doses_per_day: int,
    timing_plan: "str | TimingPlan" = TimingPlan.PLAN1,
    custom_times: Optional[Sequence[str]] = None,
) -> SlotPlan:
    """
    Build the canonical daily slot list for a plan.

    Args:
        doses_per_day: Number of doses per full day
        timing_plan: ``plan1``, ``plan2`` or ``custom``
        custom_times: ``HH:MM`` strings, required for the custom plan

    Returns:
        SlotPlan sorted ascending by time of day

    Raises:
        InvalidRequestError: Bad dose count, unknown plan, missing custom times,
            or custom times given with a named plan
        UnsupportedDoseCountError: Named plan without a table entry
        InvalidSlotError: Malformed, forbidden-window or duplicate custom times
    """
    if isinstance(doses_per_day, bool) or not isinstance(doses_per_day, int) or doses_per_day < 1:
        raise InvalidRequestError(f"doses_per_day must be a positive integer, got {doses_per_day!r}")

    plan = TimingPlan.from_value(timing_plan)

    if plan is TimingPlan.CUSTOM:
        return _resolve_custom(doses_per_day, custom_times)
    if custom_times:
        raise InvalidRequestError(
            f"custom_times only apply to the custom plan, got timing_plan '{plan.value}'"
        )

    times = _collapse(named_plan_times(doses_per_day, plan), doses_per_day)
    slots = [Slot(time=t, label=meal_label(t)) for t in times]
    return SlotPlan(slots=tuple(slots), timing_plan=plan)


def _resolve_custom(doses_per_day: int, custom_times: Optional[Sequence[str]]) -> SlotPlan:
    if not custom_times:
        raise InvalidRequestError("custom_times are required for the custom timing plan")

    if len(custom_times) != doses_per_day:
        raise InvalidSlotError(
            f"Expected {doses_per_day} custom times, got {len(custom_times)}"
        )

    parsed = [TimeOfDay.parse(value) for value in custom_times]

    forbidden = [str(t) for t in parsed if t.in_forbidden_window]
    if forbidden:
        raise InvalidSlotError(
            f"Custom times {forbidden} fall in the forbidden window 00:00-06:00"
        )

    unique_times = _collapse(parsed, doses_per_day)

    slots = [
        Slot(time=t, label=ordinal_label(index))
        for index, t in enumerate(unique_times)
    ]
    return SlotPlan(slots=tuple(slots), timing_plan=TimingPlan.CUSTOM)


def _collapse(times: Sequence[TimeOfDay], doses_per_day: int) -> List[TimeOfDay]:
    """Sort and deduplicate; fewer distinct times than doses is a misconfiguration."""
    unique_times = sorted(set(times))
    if len(unique_times) < doses_per_day:
        raise InvalidSlotError(
            f"Slot times collapse to {len(unique_times)} distinct values, "
            f"{doses_per_day} required"
        )
    return unique_times
