"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .models import (
    DoseOccurrence,
    DoseStatus,
    PreviewDay,
    PreviewEntry,
    ScheduleEvent,
    ScheduleRequest,
    Slot,
    SlotPlan,
    TimeOfDay,
    TimingPlan,
    TriggerExpression,
    TriggerRule,
)
from .preview import merge_event_streams, preview_schedule
from .schedule_generator import SmartScheduleGenerator
from .slot_plans import resolve_slot_plan
from .time_phrases import extract_times_from_text
from .trigger import expand_trigger, synthesize_trigger

__all__ = [
    "DoseOccurrence",
    "DoseStatus",
    "PreviewDay",
    "PreviewEntry",
    "ScheduleEvent",
    "ScheduleRequest",
    "Slot",
    "SlotPlan",
    "TimeOfDay",
    "TimingPlan",
    "TriggerExpression",
    "TriggerRule",
    "SmartScheduleGenerator",
    "expand_trigger",
    "extract_times_from_text",
    "merge_event_streams",
    "preview_schedule",
    "resolve_slot_plan",
    "synthesize_trigger",
]
