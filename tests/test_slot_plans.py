"""
Tests for slot-plan resolution.
"""

import pytest

from medschedule.domain.exceptions import (
    InvalidRequestError,
    InvalidSlotError,
    UnsupportedDoseCountError,
)
from medschedule.domain.models import TimeOfDay, TimingPlan
from medschedule.domain.slot_plans import meal_label, resolve_slot_plan


class TestNamedPlans:
    """Tests for the plan1/plan2 tables."""

    @pytest.mark.parametrize(
        "doses, expected",
        [
            (1, ("08:00",)),
            (2, ("08:00", "18:00")),
            (3, ("08:00", "12:00", "17:00")),
            (4, ("08:00", "12:00", "17:00", "21:00")),
        ],
    )
    def test_plan1_tables(self, doses, expected):
        """Test the canonical plan1 slots."""
        plan = resolve_slot_plan(doses, "plan1")

        assert plan.time_strings == expected
        assert plan.timing_plan is TimingPlan.PLAN1
        assert plan.doses_per_day == doses

    @pytest.mark.parametrize(
        "doses, expected",
        [
            (1, ("09:00",)),
            (2, ("09:00", "19:00")),
            (3, ("09:00", "13:00", "18:00")),
            (4, ("09:00", "13:00", "18:00", "22:00")),
        ],
    )
    def test_plan2_shifts_every_slot_one_hour_later(self, doses, expected):
        """Test that plan2 is plan1 shifted later."""
        assert resolve_slot_plan(doses, TimingPlan.PLAN2).time_strings == expected

    def test_meal_labels(self):
        """Test meal-relative labels on named plans."""
        plan = resolve_slot_plan(4, "plan1")

        assert [slot.label for slot in plan.slots] == ["早餐後", "午餐後", "晚餐後", "睡前"]

    @pytest.mark.parametrize("doses", [5, 6])
    def test_unsupported_dose_count(self, doses):
        """Test that counts without a table entry are rejected."""
        with pytest.raises(UnsupportedDoseCountError):
            resolve_slot_plan(doses, "plan1")

    @pytest.mark.parametrize("doses", [0, -3, True])
    def test_invalid_dose_count(self, doses):
        """Test that non-positive counts are request errors."""
        with pytest.raises(InvalidRequestError):
            resolve_slot_plan(doses, "plan1")

    def test_unknown_plan(self):
        """Test that an unknown plan name is a request error."""
        with pytest.raises(InvalidRequestError):
            resolve_slot_plan(3, "plan3")

    def test_custom_times_rejected_with_named_plan(self):
        """Test that custom times are never silently dropped."""
        with pytest.raises(InvalidRequestError, match="only apply to the custom plan"):
            resolve_slot_plan(2, "plan1", ["07:30", "19:30"])

    def test_once_daily_meal_label(self):
        """Test the single morning slot of a once-daily plan."""
        plan = resolve_slot_plan(1, "plan2")

        assert [(str(slot.time), slot.label) for slot in plan.slots] == [("09:00", "早餐後")]

    def test_named_plans_never_touch_forbidden_window(self):
        """Test that every table entry is pre-vetted."""
        for plan in (TimingPlan.PLAN1, TimingPlan.PLAN2):
            for doses in (1, 2, 3, 4):
                resolved = resolve_slot_plan(doses, plan)
                assert not any(t.in_forbidden_window for t in resolved.times)


class TestCustomPlans:
    """Tests for caregiver-supplied custom times."""

    def test_custom_times_sorted_with_ordinal_labels(self):
        """Test that custom times are sorted and labelled by position."""
        plan = resolve_slot_plan(3, "custom", ["20:00", "07:30", "13:15"])

        assert plan.time_strings == ("07:30", "13:15", "20:00")
        assert [slot.label for slot in plan.slots] == ["第1次", "第2次", "第3次"]
        assert plan.timing_plan is TimingPlan.CUSTOM

    def test_missing_custom_times(self):
        """Test that the custom plan without times is a request error."""
        with pytest.raises(InvalidRequestError):
            resolve_slot_plan(2, "custom")

        with pytest.raises(InvalidRequestError):
            resolve_slot_plan(2, "custom", [])

    def test_length_mismatch(self):
        """Test that the number of times must equal doses per day."""
        with pytest.raises(InvalidSlotError, match="Expected 3 custom times"):
            resolve_slot_plan(3, "custom", ["08:00", "20:00"])

    def test_forbidden_window_rejected(self):
        """Test that custom times inside 00:00-06:00 are rejected."""
        with pytest.raises(InvalidSlotError, match="forbidden window"):
            resolve_slot_plan(2, "custom", ["05:59", "20:00"])

    def test_malformed_time_rejected(self):
        """Test that malformed custom times are rejected."""
        with pytest.raises(InvalidSlotError, match="Malformed"):
            resolve_slot_plan(2, "custom", ["8am", "20:00"])

    def test_non_ascii_digits_rejected(self):
        """Test that full-width digits are not read as a time."""
        with pytest.raises(InvalidSlotError, match="Malformed"):
            resolve_slot_plan(2, "custom", ["０８:３０", "20:00"])

    def test_duplicates_collapse_below_count(self):
        """Test that duplicate times leave too few slots."""
        with pytest.raises(InvalidSlotError, match="collapse"):
            resolve_slot_plan(2, "custom", ["08:00", "08:00"])


class TestMealLabel:
    """Tests for meal-relative labelling."""

    @pytest.mark.parametrize(
        "hour, expected",
        [(3, "用藥時間"), (6, "早餐後"), (10, "早餐後"), (12, "午餐後"), (17, "晚餐後"), (19, "晚餐後"), (21, "睡前")],
    )
    def test_buckets(self, hour, expected):
        """Test the hour buckets."""
        assert meal_label(TimeOfDay(hour, 0)) == expected
