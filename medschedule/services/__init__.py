"""
Service layer helpers that orchestrate the scheduling domain.
"""

from .schedule_service import (
    ClockProtocol,
    MedicationScheduleService,
    ReminderPlan,
    SystemClock,
    generate_schedule,
)

__all__ = [
    "ClockProtocol",
    "MedicationScheduleService",
    "ReminderPlan",
    "SystemClock",
    "generate_schedule",
]
