"""
Free-text time phrase extraction.

Turns caregiver statements such as "早上9點和晚上9點" into canonical
``HH:MM`` strings. Two independent parsers run in order: a period-tagged
parser ("下午3點") and, only when it finds nothing, a bare numeric parser
("8點", "9:30"). Extraction never raises; an empty list means no time was
found.
"""

import re
from enum import Enum
from typing import Callable, Dict, List, Optional


class Period(str, Enum):
    """Chinese day-period words that prefix an hour."""
    EARLY_MORNING = "早上"
    MORNING = "上午"
    NOON = "中午"
    AFTERNOON = "下午"
    EVENING = "晚上"
    LATE_NIGHT = "深夜"
    SMALL_HOURS = "凌晨"


def _unchanged(hour: int) -> int:
    return hour


def _noon(hour: int) -> int:
    # The period alone decides: "中午1點" is still 12:00
    return 12


def _afternoon(hour: int) -> int:
    return hour + 12 if 1 <= hour <= 11 else hour


def _evening(hour: int) -> int:
    if 1 <= hour <= 11:
        return hour + 12
    if hour == 12:
        return 0
    return hour


def _small_hours(hour: int) -> int:
    return 0 if hour == 12 else hour


PERIOD_HOUR_RULES: Dict[Period, Callable[[int], int]] = {
    Period.EARLY_MORNING: _unchanged,
    Period.MORNING: _unchanged,
    Period.NOON: _noon,
    Period.AFTERNOON: _afternoon,
    Period.EVENING: _evening,
    Period.LATE_NIGHT: _evening,
    Period.SMALL_HOURS: _small_hours,
}

_PERIOD_PATTERN = re.compile(
    r"(" + "|".join(period.value for period in Period) + r")\s*([0-9]{1,2})\s*[點点]?"
)

_NUMERIC_PATTERN = re.compile(r"([0-9]{1,2})\s*[點点:：]\s*([0-9]{0,2})")


def _format(hour: int, minute: int) -> Optional[str]:
    if 0 <= hour < 24 and 0 <= minute < 60:
        return f"{hour:02d}:{minute:02d}"
    return None


def convert_period_hour(period: Period, hour: int) -> int:
    """Convert a period-tagged 12-hour style hour to 24-hour form."""
    return PERIOD_HOUR_RULES[period](hour)


def parse_period_times(text: str) -> List[str]:
    """
    Find ``{period}{hour}點`` phrases.

    Minutes are always 00: "下午3點半" yields 15:00.
    """
    times: List[str] = []
    for match in _PERIOD_PATTERN.finditer(text):
        hour = convert_period_hour(Period(match.group(1)), int(match.group(2)))
        formatted = _format(hour, 0)
        if formatted is not None:
            times.append(formatted)
    return times


def parse_numeric_times(text: str) -> List[str]:
    """Find bare ``{hour}點{minute}`` / ``{hour}:{minute}`` phrases, taken literally."""
    times: List[str] = []
    for match in _NUMERIC_PATTERN.finditer(text):
        minute = int(match.group(2)) if match.group(2) else 0
        formatted = _format(int(match.group(1)), minute)
        if formatted is not None:
            times.append(formatted)
    return times


def extract_times_from_text(text: Optional[str]) -> List[str]:
    """
    Extract dose times from free text.

    Returns:
        Ascending, deduplicated ``HH:MM`` strings; empty if nothing matched
    """
    if not text:
        return []

    times = parse_period_times(text)
    if not times:
        times = parse_numeric_times(text)

    return sorted(set(times))
