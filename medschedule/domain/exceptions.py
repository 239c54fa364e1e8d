"""
Domain-specific exception hierarchy for the medication scheduling engine.
"""


class MedScheduleError(Exception):
    """Base class for all engine-level errors."""


class InvalidRequestError(MedScheduleError):
    """Raised when request parameters (counts, days, plan, timezone) are invalid."""


class UnsupportedDoseCountError(MedScheduleError):
    """Raised when a named timing plan has no entry for the requested dose count."""


class InvalidSlotError(MedScheduleError):
    """Raised for malformed, duplicate or forbidden-window slot times."""
