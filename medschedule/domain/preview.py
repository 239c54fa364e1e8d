"""
Caregiver-facing schedule preview.

Groups generated events by calendar day and annotates each dose as passed or
upcoming relative to a reference instant. Nothing here is cached: status is
recomputed on every call.
"""

import heapq
from typing import Dict, Iterable, List, Sequence

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidRequestError
from .models import DoseStatus, PreviewDay, PreviewEntry, ScheduleEvent, weekday_name


DEFAULT_HORIZON_DAYS = 3


def merge_event_streams(*streams: Iterable[ScheduleEvent]) -> List[ScheduleEvent]:
    """
    Merge several chronologically ordered event lists, e.g. one per medication.

    Each event keeps its own medication name.
    """
    return list(heapq.merge(*streams, key=lambda event: event.date_time))


def dose_status(event: ScheduleEvent, reference_instant: DateTime) -> DoseStatus:
    """A dose at or before the reference instant has passed."""
    if event.date_time <= reference_instant:
        return DoseStatus.PASSED
    return DoseStatus.UPCOMING


def preview_schedule(
    events: Sequence[ScheduleEvent],
    reference_instant: DateTime,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    include_passed: bool = True,
) -> List[PreviewDay]:
    """
    Render events as per-day preview buckets.

    Args:
        events: Generated events, from one or several medications
        reference_instant: "Now" for the passed/upcoming status
        horizon_days: Number of event-carrying days to show, counted from the
            day of the earliest event
        include_passed: If False, doses already passed are left out

    Returns:
        List of PreviewDay objects in date order

    Raises:
        InvalidRequestError: If the horizon is not positive or the reference
            instant is naive
    """
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, int) or horizon_days < 1:
        raise InvalidRequestError(f"horizon_days must be a positive integer, got {horizon_days!r}")
    if reference_instant is None or reference_instant.tzinfo is None:
        raise InvalidRequestError("reference_instant must be a timezone-aware datetime")

    reference = pendulum.instance(reference_instant)
    buckets: Dict[Date, List[PreviewEntry]] = {}

    for event in sorted(events, key=lambda e: e.date_time):
        status = dose_status(event, reference)
        if status is DoseStatus.PASSED and not include_passed:
            continue

        day = event.date
        if day not in buckets:
            if len(buckets) >= horizon_days:
                continue
            buckets[day] = []

        buckets[day].append(
            PreviewEntry(
                date_time=event.date_time,
                time=event.time,
                label=event.label,
                status=status,
                is_first_dose=event.is_first_dose,
                medication_name=event.medication_name,
            )
        )

    return [
        PreviewDay(date=day, day_of_week=weekday_name(day), entries=tuple(entries))
        for day, entries in sorted(buckets.items())
    ]
