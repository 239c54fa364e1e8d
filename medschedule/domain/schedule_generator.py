"""
Core dose scheduling logic.

This is the heart of the engine - a pure, timezone-aware calendar
computation without persistence, notifications or any other I/O.
"""

import logging
from datetime import timedelta
from typing import List

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidRequestError, InvalidSlotError
from .models import (
    DEFAULT_TIMEZONE,
    FORBIDDEN_WINDOW_END_HOUR,
    ScheduleEvent,
    ScheduleRequest,
    Slot,
    SlotPlan,
    TimeOfDay,
    TimingPlan,
    ensure_timezone,
)
from .slot_plans import DEFAULT_DOSE_LABEL, meal_label


logger = logging.getLogger(__name__)

FIRST_DOSE_SUFFIX = " (首次)"

MINUTES_PER_DAY = 24 * 60


class SmartScheduleGenerator:
    """
    Generates a multi-day dose calendar anchored on the real first dose.

    Algorithm:
    1. Day 1 (the anchor's calendar day) holds the anchor itself plus every
       slot strictly later than the anchor's time of day
    2. Days 2..treatment_days each hold the complete slot plan
    3. No computed dose may fall in the forbidden overnight window
    4. Wall-clock times are resolved day by day in the request timezone
    5. Events come out in chronological order
    """

    def generate(self, request: ScheduleRequest, slot_plan: SlotPlan) -> List[ScheduleEvent]:
        """
        Generate all dose events for a request.

        Args:
            request: Validated scheduling request
            slot_plan: Canonical daily slots, usually from ``resolve_slot_plan``

        Returns:
            Chronologically ordered list of ScheduleEvent objects

        Raises:
            InvalidSlotError: If the slot plan is inconsistent with the request
                or would place a dose in the forbidden window
        """
        if slot_plan.doses_per_day != request.doses_per_day:
            raise InvalidSlotError(
                f"Slot plan has {slot_plan.doses_per_day} slots, "
                f"request asks for {request.doses_per_day} doses per day"
            )
        slot_plan.ensure_outside_forbidden_window()

        events = self._first_day_events(request, slot_plan)

        anchor_day = request.anchor_date
        for offset in range(1, request.treatment_days):
            events.extend(
                self._full_day_events(
                    day=anchor_day.add(days=offset),
                    day_index=offset + 1,
                    slot_plan=slot_plan,
                    request=request,
                )
            )

        events.sort(key=lambda event: event.date_time)

        logger.debug(
            "Generated %d events over %d days from anchor %s (%s)",
            len(events),
            request.treatment_days,
            request.anchor_date_time.isoformat(),
            request.timezone,
        )
        return events

    def generate_interval_schedule(
        self,
        anchor_date_time: DateTime,
        doses_per_day: int,
        treatment_days: int,
        timezone: str = DEFAULT_TIMEZONE,
        medication_name: "str | None" = None,
    ) -> List[ScheduleEvent]:
        """
        Generate a strict fixed-interval regimen (e.g. antibiotics).

        Doses follow every ``24 / doses_per_day`` hours of elapsed time from
        the anchor, rounded to whole minutes, ``doses_per_day * treatment_days``
        doses in total. Meal
        slots and the forbidden window do not apply: the interval itself is
        the clinical constraint.
        """
        for name, value in (("doses_per_day", doses_per_day), ("treatment_days", treatment_days)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidRequestError(f"{name} must be a positive integer, got {value!r}")
        if anchor_date_time is None or anchor_date_time.tzinfo is None:
            raise InvalidRequestError("anchor_date_time must be a timezone-aware datetime")
        ensure_timezone(timezone)

        anchor = pendulum.instance(anchor_date_time).in_timezone(timezone)
        anchor_utc = anchor.in_timezone("UTC")
        # Whole-minute spacing: 7 doses a day are 206 minutes apart
        step_minutes = round(MINUTES_PER_DAY / doses_per_day)
        step = timedelta(minutes=step_minutes)
        label = f"每 {round(step_minutes / 60, 2):g} 小時"

        events: List[ScheduleEvent] = []
        for index in range(doses_per_day * treatment_days):
            # Elapsed-time arithmetic in UTC, then back to local wall clock
            local = (anchor_utc + step * index).in_timezone(timezone)
            events.append(
                ScheduleEvent(
                    date_time=local,
                    day_index=anchor.date().diff(local.date()).in_days() + 1,
                    is_first_dose=index == 0,
                    label=label,
                    medication_name=medication_name,
                )
            )

        return events

    def _first_day_events(
        self,
        request: ScheduleRequest,
        slot_plan: SlotPlan,
    ) -> List[ScheduleEvent]:
        """
        Build day 1: the anchor plus the slots still ahead of it.

        The anchor is a dose that already happened, so it is never shifted,
        suppressed or checked against the forbidden window.
        """
        anchor = request.anchor_date_time
        events: List[ScheduleEvent] = [
            ScheduleEvent(
                date_time=anchor,
                day_index=1,
                is_first_dose=True,
                label=self._anchor_label(anchor, slot_plan),
                medication_name=request.medication_name,
            )
        ]

        for slot in slot_plan.slots:
            if not slot.time.is_later_than(anchor):
                continue
            events.append(
                self._slot_event(
                    slot=slot,
                    day=request.anchor_date,
                    day_index=1,
                    request=request,
                )
            )

        return events

    def _full_day_events(
        self,
        day: Date,
        day_index: int,
        slot_plan: SlotPlan,
        request: ScheduleRequest,
    ) -> List[ScheduleEvent]:
        return [
            self._slot_event(slot=slot, day=day, day_index=day_index, request=request)
            for slot in slot_plan.slots
        ]

    def _slot_event(
        self,
        slot: Slot,
        day: Date,
        day_index: int,
        request: ScheduleRequest,
    ) -> ScheduleEvent:
        date_time = slot.time.on(day, request.timezone)

        # Resolved wall clock can move across a DST transition
        if date_time.hour < FORBIDDEN_WINDOW_END_HOUR:
            raise InvalidSlotError(
                f"Slot {slot.time} resolves to {date_time.isoformat()}, "
                f"inside the forbidden window"
            )

        return ScheduleEvent(
            date_time=date_time,
            day_index=day_index,
            is_first_dose=False,
            label=slot.label,
            medication_name=request.medication_name,
        )

    @staticmethod
    def _anchor_label(anchor: DateTime, slot_plan: SlotPlan) -> str:
        time_of_day = TimeOfDay.of(anchor)
        label = slot_plan.label_for(time_of_day)
        if label is None:
            if slot_plan.timing_plan is TimingPlan.CUSTOM:
                label = DEFAULT_DOSE_LABEL
            else:
                label = meal_label(time_of_day)
        return f"{label}{FIRST_DOSE_SUFFIX}"
