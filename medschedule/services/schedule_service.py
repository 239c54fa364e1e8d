"""
Application services for planning medication reminders.

The service chains slot resolution, schedule generation, trigger synthesis
and previews so the surrounding HTTP layer (or the CLI) stays thin. The
current instant comes from a clock behind a small protocol, which keeps
previews reproducible in tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

import pendulum
from pendulum import Date, DateTime

from ..domain.models import (
    DEFAULT_TIMEZONE,
    PreviewDay,
    ScheduleEvent,
    ScheduleRequest,
    SlotPlan,
    TimingPlan,
    TriggerExpression,
    ensure_timezone,
)
from ..domain.preview import DEFAULT_HORIZON_DAYS, merge_event_streams, preview_schedule
from ..domain.schedule_generator import SmartScheduleGenerator
from ..domain.slot_plans import resolve_slot_plan
from ..domain.time_phrases import extract_times_from_text
from ..domain.trigger import synthesize_trigger


logger = logging.getLogger(__name__)


class ClockProtocol(Protocol):
    """Protocol describing the clock behaviour needed by the service."""

    def now(self, timezone: str) -> DateTime:
        """Return the current instant in ``timezone``."""


class SystemClock:
    """Wall clock backed by pendulum."""

    def now(self, timezone: str) -> DateTime:
        return pendulum.now(timezone)


@dataclass(frozen=True)
class ReminderPlan:
    """Everything the persistence layer stores for a smart reminder."""
    slot_plan: SlotPlan
    events: Tuple[ScheduleEvent, ...]
    trigger: TriggerExpression
    timezone: str

    @property
    def start_date(self) -> Date:
        return self.events[0].date

    @property
    def end_date(self) -> Date:
        return self.events[-1].date

    @property
    def total_doses(self) -> int:
        return len(self.events)


class MedicationScheduleService:
    """
    Orchestrates the scheduling engine for one or more medications.

    Every operation is a closed computation over its own inputs, so a single
    instance can be shared between concurrent requests.
    """

    def __init__(
        self,
        generator: Optional[SmartScheduleGenerator] = None,
        clock: Optional[ClockProtocol] = None,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> None:
        self._generator = generator or SmartScheduleGenerator()
        self._clock = clock or SystemClock()
        self._timezone = ensure_timezone(timezone)

    @property
    def timezone(self) -> str:
        return self._timezone

    def resolve_slot_plan(
        self,
        *,
        doses_per_day: int,
        timing_plan: str | TimingPlan = TimingPlan.PLAN1,
        custom_times: Optional[Sequence[str]] = None,
    ) -> SlotPlan:
        """Resolve the canonical daily slots for a plan."""
        return resolve_slot_plan(doses_per_day, timing_plan, custom_times)

    def generate_schedule(self, request: ScheduleRequest) -> List[ScheduleEvent]:
        """Resolve the request's slot plan, then generate its events."""
        slot_plan = self.resolve_slot_plan(
            doses_per_day=request.doses_per_day,
            timing_plan=request.timing_plan,
            custom_times=request.custom_times,
        )
        return self._generator.generate(request, slot_plan)

    def generate_interval_schedule(
        self,
        *,
        anchor_date_time: DateTime,
        doses_per_day: int,
        treatment_days: int,
        timezone: Optional[str] = None,
        medication_name: Optional[str] = None,
    ) -> List[ScheduleEvent]:
        """Generate a strict fixed-interval regimen (antibiotics)."""
        return self._generator.generate_interval_schedule(
            anchor_date_time=anchor_date_time,
            doses_per_day=doses_per_day,
            treatment_days=treatment_days,
            timezone=timezone or self._timezone,
            medication_name=medication_name,
        )

    def synthesize_trigger(self, slot_plan: SlotPlan) -> TriggerExpression:
        return synthesize_trigger(slot_plan)

    def plan_reminder(self, request: ScheduleRequest) -> ReminderPlan:
        """
        Compute slot plan, events and trigger expression for a new reminder.
        """
        slot_plan = self.resolve_slot_plan(
            doses_per_day=request.doses_per_day,
            timing_plan=request.timing_plan,
            custom_times=request.custom_times,
        )
        events = self._generator.generate(request, slot_plan)
        trigger = synthesize_trigger(slot_plan)

        logger.debug(
            "Planned reminder %s: %d doses, trigger '%s' (%s)",
            request.medication_name or "<unnamed>",
            len(events),
            trigger,
            request.timezone,
        )

        return ReminderPlan(
            slot_plan=slot_plan,
            events=tuple(events),
            trigger=trigger,
            timezone=request.timezone,
        )

    def preview_schedule(
        self,
        events: Sequence[ScheduleEvent],
        *,
        reference_instant: Optional[DateTime] = None,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        include_passed: bool = True,
    ) -> List[PreviewDay]:
        """
        Preview events; without a reference instant the clock supplies "now".
        """
        reference = reference_instant or self._clock.now(self._timezone)
        return preview_schedule(
            events,
            reference,
            horizon_days=horizon_days,
            include_passed=include_passed,
        )

    def preview_medications(
        self,
        requests: Sequence[ScheduleRequest],
        *,
        reference_instant: Optional[DateTime] = None,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        include_passed: bool = True,
    ) -> List[PreviewDay]:
        """
        Preview several medications of one patient on a shared timeline.
        """
        streams = [self.generate_schedule(request) for request in requests]
        return self.preview_schedule(
            merge_event_streams(*streams),
            reference_instant=reference_instant,
            horizon_days=horizon_days,
            include_passed=include_passed,
        )

    def extract_times_from_text(self, text: Optional[str]) -> List[str]:
        return extract_times_from_text(text)

    def slot_plan_from_text(self, text: Optional[str]) -> Optional[SlotPlan]:
        """
        Build a custom slot plan from a caregiver's free-text statement.

        Returns:
            SlotPlan with one dose per extracted time, or None when the text
            contains no recognisable time

        Raises:
            InvalidSlotError: If an extracted time falls in the forbidden window
        """
        times = extract_times_from_text(text)
        if not times:
            logger.warning("No dose time found in text: %r", text)
            return None

        return resolve_slot_plan(len(times), TimingPlan.CUSTOM, times)


_default_service = MedicationScheduleService()


def generate_schedule(request: ScheduleRequest) -> List[ScheduleEvent]:
    """Resolve the slot plan for ``request`` and generate all of its events."""
    return _default_service.generate_schedule(request)
