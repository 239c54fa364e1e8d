"""
medschedule - medication dose scheduling for caregivers.

Turns a first dose, a daily dose count and a timing plan into a multi-day,
timezone-aware dose calendar, a recurring trigger expression and a
caregiver-facing preview.
"""

__version__ = "0.3.0"

from .domain.exceptions import (
    InvalidRequestError,
    InvalidSlotError,
    MedScheduleError,
    UnsupportedDoseCountError,
)
from .domain.models import (
    PreviewDay,
    PreviewEntry,
    ScheduleEvent,
    ScheduleRequest,
    Slot,
    SlotPlan,
    TimeOfDay,
    TimingPlan,
    TriggerExpression,
)
from .domain.preview import preview_schedule
from .domain.slot_plans import resolve_slot_plan
from .domain.time_phrases import extract_times_from_text
from .domain.trigger import synthesize_trigger
from .services.schedule_service import MedicationScheduleService, generate_schedule

__all__ = [
    "__version__",
    "InvalidRequestError",
    "InvalidSlotError",
    "MedScheduleError",
    "UnsupportedDoseCountError",
    "PreviewDay",
    "PreviewEntry",
    "ScheduleEvent",
    "ScheduleRequest",
    "Slot",
    "SlotPlan",
    "TimeOfDay",
    "TimingPlan",
    "TriggerExpression",
    "MedicationScheduleService",
    "extract_times_from_text",
    "generate_schedule",
    "preview_schedule",
    "resolve_slot_plan",
    "synthesize_trigger",
]
