"""
Tests for the schedule preview formatter.
"""

import pendulum
import pytest

from medschedule.domain.exceptions import InvalidRequestError
from medschedule.domain.models import DoseStatus, ScheduleEvent, ScheduleRequest
from medschedule.domain.preview import merge_event_streams, preview_schedule
from medschedule.domain.schedule_generator import SmartScheduleGenerator
from medschedule.domain.slot_plans import resolve_slot_plan


TZ = "Asia/Taipei"


def _events(anchor, doses=3, days=3, plan="plan1", custom_times=None, name=None):
    request = ScheduleRequest(
        anchor_date_time=anchor,
        doses_per_day=doses,
        treatment_days=days,
        timing_plan=plan,
        custom_times=custom_times,
        timezone=TZ,
        medication_name=name,
    )
    return SmartScheduleGenerator().generate(request, resolve_slot_plan(doses, plan, custom_times))


class TestPreviewSchedule:
    """Tests for preview_schedule."""

    def test_groups_by_day_with_weekday_and_status(self):
        """Events are bucketed per day and marked passed or upcoming."""
        events = _events(pendulum.datetime(2026, 10, 18, 10, 13, tz=TZ))
        now = pendulum.datetime(2026, 10, 18, 12, 0, tz=TZ)

        days = preview_schedule(events, now, horizon_days=3)

        assert [d.date for d in days] == [
            pendulum.date(2026, 10, 18),
            pendulum.date(2026, 10, 19),
            pendulum.date(2026, 10, 20),
        ]
        assert [d.day_of_week for d in days] == ["星期日", "星期一", "星期二"]

        first_day = days[0]
        assert [(e.time, e.status) for e in first_day.entries] == [
            ("10:13", DoseStatus.PASSED),
            ("12:00", DoseStatus.PASSED),
            ("17:00", DoseStatus.UPCOMING),
        ]
        assert first_day.entries[0].is_first_dose
        assert first_day.entries[0].label == "早餐後 (首次)"
        assert first_day.passed_count == 2
        assert first_day.upcoming_count == 1
        assert all(e.status is DoseStatus.UPCOMING for d in days[1:] for e in d.entries)

    def test_horizon_truncates_days(self):
        """Only the first N event-carrying days are shown."""
        events = _events(pendulum.datetime(2026, 10, 18, 10, 13, tz=TZ), days=5)
        now = pendulum.datetime(2026, 10, 18, 9, 0, tz=TZ)

        days = preview_schedule(events, now, horizon_days=2)

        assert len(days) == 2
        assert days[-1].date == pendulum.date(2026, 10, 19)

    def test_horizon_counts_days_with_events(self):
        """Empty calendar days do not use up the horizon."""
        events = [
            ScheduleEvent(pendulum.datetime(2026, 10, 18, 8, 0, tz=TZ), 1, True, "早餐後 (首次)"),
            ScheduleEvent(pendulum.datetime(2026, 10, 21, 8, 0, tz=TZ), 4, False, "早餐後"),
            ScheduleEvent(pendulum.datetime(2026, 10, 25, 8, 0, tz=TZ), 8, False, "早餐後"),
        ]
        now = pendulum.datetime(2026, 10, 17, 8, 0, tz=TZ)

        days = preview_schedule(events, now, horizon_days=2)

        assert [d.date for d in days] == [pendulum.date(2026, 10, 18), pendulum.date(2026, 10, 21)]

    def test_hide_passed(self):
        """Passed doses can be left out."""
        events = _events(pendulum.datetime(2026, 10, 18, 10, 13, tz=TZ))
        now = pendulum.datetime(2026, 10, 18, 12, 0, tz=TZ)

        days = preview_schedule(events, now, horizon_days=1, include_passed=False)

        assert len(days) == 1
        assert [e.time for e in days[0].entries] == ["17:00"]

    def test_status_only_moves_from_upcoming_to_passed(self):
        """Moving the reference forward never turns a passed dose back to upcoming."""
        events = _events(pendulum.datetime(2026, 10, 18, 10, 13, tz=TZ))
        references = [
            pendulum.datetime(2026, 10, 18, 9, 0, tz=TZ),
            pendulum.datetime(2026, 10, 18, 12, 0, tz=TZ),
            pendulum.datetime(2026, 10, 19, 13, 0, tz=TZ),
            pendulum.datetime(2026, 10, 21, 0, 0, tz=TZ),
        ]

        previous = None
        for reference in references:
            statuses = [e.status for d in preview_schedule(events, reference, horizon_days=3) for e in d.entries]
            if previous is not None:
                for before, after in zip(previous, statuses):
                    assert not (before is DoseStatus.PASSED and after is DoseStatus.UPCOMING)
            previous = statuses

        assert all(s is DoseStatus.PASSED for s in previous)

    def test_merged_medications_keep_their_names(self):
        """Several medications share one timeline."""
        anchor = pendulum.datetime(2026, 10, 18, 10, 13, tz=TZ)
        cold = _events(anchor, days=2, name="感冒藥")
        blood_pressure = _events(anchor, doses=2, days=2, plan="custom", custom_times=["07:30", "19:30"], name="降血壓藥")

        merged = merge_event_streams(cold, blood_pressure)
        days = preview_schedule(merged, anchor, horizon_days=2)

        assert [e.date_time for e in merged] == sorted(e.date_time for e in merged)
        assert [(e.time, e.medication_name) for e in days[1].entries] == [
            ("07:30", "降血壓藥"),
            ("08:00", "感冒藥"),
            ("12:00", "感冒藥"),
            ("17:00", "感冒藥"),
            ("19:30", "降血壓藥"),
        ]

    def test_empty_events(self):
        """No events yields an empty preview."""
        assert preview_schedule([], pendulum.now(TZ)) == []

    def test_invalid_arguments(self):
        """The horizon must be positive and the reference timezone-aware."""
        events = _events(pendulum.datetime(2026, 10, 18, 10, 13, tz=TZ))

        with pytest.raises(InvalidRequestError):
            preview_schedule(events, pendulum.now(TZ), horizon_days=0)

        with pytest.raises(InvalidRequestError):
            preview_schedule(events, pendulum.naive(2026, 10, 18, 12, 0), horizon_days=1)
