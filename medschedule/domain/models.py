"""
Domain models for dose slots, schedule requests and generated events.
"""

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidRequestError, InvalidSlotError


DEFAULT_TIMEZONE = "Asia/Taipei"

# Computed doses never fall in [00:00, FORBIDDEN_WINDOW_END_HOUR:00)
FORBIDDEN_WINDOW_END_HOUR = 6

_HHMM_PATTERN = re.compile(r"^([0-9]{1,2}):([0-9]{2})$")

WEEKDAY_NAMES = {
    0: "星期一",
    1: "星期二",
    2: "星期三",
    3: "星期四",
    4: "星期五",
    5: "星期六",
    6: "星期日",
}


def weekday_name(day: Date) -> str:
    """Localized (zh-TW) weekday name for a date or datetime."""
    return WEEKDAY_NAMES[day.day_of_week]


def ensure_timezone(name: str) -> str:
    """
    Validate an IANA timezone identifier.

    Raises:
        InvalidRequestError: If the identifier is not a known zone
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidRequestError(f"Timezone must be a non-empty IANA identifier, got {name!r}")
    try:
        pendulum.timezone(name)
    except (ValueError, KeyError) as exc:
        raise InvalidRequestError(f"Unknown timezone '{name}'") from exc
    return name


class TimingPlan(str, Enum):
    """Named slot tables plus the caregiver-defined custom plan."""
    PLAN1 = "plan1"
    PLAN2 = "plan2"
    CUSTOM = "custom"

    @classmethod
    def from_value(cls, value: "str | TimingPlan") -> "TimingPlan":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidRequestError(
                f"Unknown timing plan '{value}'. Use one of: plan1, plan2, custom"
            ) from exc


class DoseStatus(str, Enum):
    PASSED = "passed"
    UPCOMING = "upcoming"


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """
    A wall-clock time of day with minute precision.

    Invariant: 0 <= hour < 24 and 0 <= minute < 60.
    """
    hour: int
    minute: int = 0

    def __post_init__(self):
        if not 0 <= self.hour < 24 or not 0 <= self.minute < 60:
            raise InvalidSlotError(
                f"Time of day out of range: {self.hour}:{self.minute:02d}"
            )

    @classmethod
    def parse(cls, value: str) -> "TimeOfDay":
        """
        Parse an ``HH:MM`` string.

        Raises:
            InvalidSlotError: If the value is not a valid HH:MM time
        """
        match = _HHMM_PATTERN.match(str(value).strip()) if value is not None else None
        if not match:
            raise InvalidSlotError(f"Malformed time '{value}', expected HH:MM")
        return cls(hour=int(match.group(1)), minute=int(match.group(2)))

    @classmethod
    def of(cls, dt: DateTime) -> "TimeOfDay":
        """Wall-clock time of day of a datetime, seconds dropped."""
        return cls(hour=dt.hour, minute=dt.minute)

    @property
    def in_forbidden_window(self) -> bool:
        return self.hour < FORBIDDEN_WINDOW_END_HOUR

    def minutes_since_midnight(self) -> int:
        return self.hour * 60 + self.minute

    def shifted(self, minutes: int) -> "TimeOfDay":
        """Return this time moved by ``minutes``; the result must stay on the same day."""
        total = self.minutes_since_midnight() + minutes
        if not 0 <= total < 24 * 60:
            raise InvalidSlotError(f"Shifting {self} by {minutes} minutes leaves the day")
        return TimeOfDay(hour=total // 60, minute=total % 60)

    def is_later_than(self, dt: DateTime) -> bool:
        """True if this time of day is strictly after the wall-clock time of ``dt``."""
        return (self.hour, self.minute, 0, 0) > (dt.hour, dt.minute, dt.second, dt.microsecond)

    def on(self, day: Date, timezone: str) -> DateTime:
        """Resolve this wall-clock time on ``day`` in ``timezone``."""
        return pendulum.datetime(
            day.year, day.month, day.day, self.hour, self.minute, tz=timezone
        )

    def format(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class Slot:
    """A canonical daily dose time and its caregiver-facing label."""
    time: TimeOfDay
    label: str


@dataclass(frozen=True)
class SlotPlan:
    """
    Ordered canonical daily slots used for every day after the anchor's day.

    Invariant: at least one slot, ascending by time of day, no duplicates.
    The forbidden-window rule is enforced by the resolver and re-checked by
    consumers through ``ensure_outside_forbidden_window``.
    """
    slots: Tuple[Slot, ...]
    timing_plan: TimingPlan = TimingPlan.PLAN1

    def __post_init__(self):
        object.__setattr__(self, "slots", tuple(self.slots))
        if not self.slots:
            raise InvalidSlotError("A slot plan needs at least one slot")
        times = [slot.time for slot in self.slots]
        if times != sorted(times) or len(set(times)) != len(times):
            raise InvalidSlotError(
                f"Slot plan times must be ascending and distinct, got {[str(t) for t in times]}"
            )

    @property
    def doses_per_day(self) -> int:
        return len(self.slots)

    @property
    def times(self) -> Tuple[TimeOfDay, ...]:
        return tuple(slot.time for slot in self.slots)

    @property
    def time_strings(self) -> Tuple[str, ...]:
        return tuple(slot.time.format() for slot in self.slots)

    def label_for(self, time_of_day: TimeOfDay) -> Optional[str]:
        for slot in self.slots:
            if slot.time == time_of_day:
                return slot.label
        return None

    def ensure_outside_forbidden_window(self) -> None:
        """
        Raises:
            InvalidSlotError: If any slot lies in the overnight forbidden window
        """
        forbidden = [str(slot.time) for slot in self.slots if slot.time.in_forbidden_window]
        if forbidden:
            raise InvalidSlotError(
                f"Slots {forbidden} fall in the forbidden window "
                f"00:00-{FORBIDDEN_WINDOW_END_HOUR:02d}:00"
            )


@dataclass(frozen=True)
class ScheduleRequest:
    """
    Input aggregate for one scheduling computation.

    ``anchor_date_time`` is the real, already administered first dose. It is
    normalised into ``timezone`` on construction; the instant is unchanged.
    """
    anchor_date_time: DateTime
    doses_per_day: int
    treatment_days: int
    timing_plan: TimingPlan = TimingPlan.PLAN1
    custom_times: Optional[Tuple[str, ...]] = None
    timezone: str = DEFAULT_TIMEZONE
    medication_name: Optional[str] = None

    def __post_init__(self):
        for name in ("doses_per_day", "treatment_days"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidRequestError(f"{name} must be a positive integer, got {value!r}")

        if getattr(self.anchor_date_time, "tzinfo", None) is None:
            raise InvalidRequestError("anchor_date_time must be a timezone-aware datetime")

        ensure_timezone(self.timezone)
        plan = TimingPlan.from_value(self.timing_plan)
        object.__setattr__(self, "timing_plan", plan)
        object.__setattr__(
            self,
            "anchor_date_time",
            pendulum.instance(self.anchor_date_time).in_timezone(self.timezone),
        )

        if self.custom_times is not None:
            object.__setattr__(self, "custom_times", tuple(self.custom_times))
        if plan is TimingPlan.CUSTOM and not self.custom_times:
            raise InvalidRequestError("custom_times are required when timing_plan is 'custom'")
        if plan is not TimingPlan.CUSTOM and self.custom_times:
            raise InvalidRequestError(
                f"custom_times only apply to the custom plan, got timing_plan '{plan.value}'"
            )

    @property
    def anchor_date(self) -> Date:
        return self.anchor_date_time.date()


@dataclass(frozen=True)
class ScheduleEvent:
    """One generated dose occurrence."""
    date_time: DateTime
    day_index: int
    is_first_dose: bool
    label: str
    medication_name: Optional[str] = None

    @property
    def time(self) -> str:
        return self.date_time.format("HH:mm")

    @property
    def date(self) -> Date:
        return self.date_time.date()

    def with_medication(self, medication_name: str) -> "ScheduleEvent":
        return replace(self, medication_name=medication_name)

    def format_display(self) -> str:
        """
        Format the event for display.
        Format: 星期X, YYYY-MM-DD | HH:MM 標籤
        """
        prefix = f"{self.medication_name} · " if self.medication_name else ""
        return (
            f"{weekday_name(self.date_time)}, {self.date_time.format('YYYY-MM-DD')} | "
            f"{self.time} {prefix}{self.label}"
        )


@dataclass(frozen=True)
class TriggerRule:
    """Fires daily at ``minute`` past every hour in ``hours``."""
    minute: int
    hours: Tuple[int, ...]

    def to_cron(self) -> str:
        return f"{self.minute} {','.join(str(hour) for hour in self.hours)} * * *"

    def fire_times(self) -> Tuple[TimeOfDay, ...]:
        return tuple(TimeOfDay(hour=hour, minute=self.minute) for hour in self.hours)


@dataclass(frozen=True)
class TriggerExpression:
    """
    Steady-state daily recurrence compiled from a slot plan.

    Timezone-agnostic: the consuming scheduler evaluates it in the
    request's timezone.
    """
    rules: Tuple[TriggerRule, ...]

    @property
    def cron_lines(self) -> Tuple[str, ...]:
        return tuple(rule.to_cron() for rule in self.rules)

    def fire_times(self) -> Tuple[TimeOfDay, ...]:
        return tuple(sorted(t for rule in self.rules for t in rule.fire_times()))

    @property
    def times(self) -> Tuple[str, ...]:
        return tuple(t.format() for t in self.fire_times())

    def __str__(self) -> str:
        return "; ".join(self.cron_lines)


@dataclass(frozen=True)
class DoseOccurrence:
    """A numbered dose produced by walking a trigger expression forward."""
    sequence: int
    label: str
    scheduled_time: DateTime


@dataclass(frozen=True)
class PreviewEntry:
    """One dose line inside a preview day."""
    date_time: DateTime
    time: str
    label: str
    status: DoseStatus
    is_first_dose: bool = False
    medication_name: Optional[str] = None


@dataclass(frozen=True)
class PreviewDay:
    """Events of one calendar day, annotated for display."""
    date: Date
    day_of_week: str
    entries: Tuple[PreviewEntry, ...]

    @property
    def passed_count(self) -> int:
        return sum(1 for entry in self.entries if entry.status is DoseStatus.PASSED)

    @property
    def upcoming_count(self) -> int:
        return sum(1 for entry in self.entries if entry.status is DoseStatus.UPCOMING)
