from __future__ import annotations

from datetime import date, timedelta
import re
from typing import List

from ..core.constants import END_OF_DAY, MINUTES_PER_DAY, SLOT_DURATION_MINUTES
from ..core.exceptions import InvalidTimeFormatException

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def is_valid_time(value: object) -> bool:
    """True for HH:MM within 00:00-23:59, or the 24:00 end-of-day literal."""
    return isinstance(value, str) and (value == END_OF_DAY or bool(_TIME_PATTERN.match(value)))


def validate_time(value: object) -> str:
    """Return ``value`` unchanged, raising InvalidTimeFormatException if malformed."""
    if not is_valid_time(value):
        raise InvalidTimeFormatException(value)
    return value  # type: ignore[return-value]


def time_to_minutes(value: str) -> int:
    """
    Convert HH:MM to minutes since midnight.

    "24:00" maps to 1440 (end of day); nothing is wrapped.
    """
    if value == END_OF_DAY:
        return MINUTES_PER_DAY
    match = _TIME_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise InvalidTimeFormatException(value)
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(minutes: int) -> str:
    """
    Convert minutes since midnight to HH:MM, wrapping modulo one day.

    1440 renders as "00:00" and -60 as "23:00".
    """
    normalized = minutes % MINUTES_PER_DAY
    return f"{normalized // 60:02d}:{normalized % 60:02d}"


def add_thirty_minutes(value: str) -> str:
    """Advance a time by one slot, wrapping at midnight."""
    return minutes_to_time(time_to_minutes(value) + SLOT_DURATION_MINUTES)


def generate_time_slots(earliest: str, latest: str) -> List[str]:
    """
    Slot start times between two bounds.

    Equal bounds mean a full 24 hours starting at ``earliest``; a ``latest``
    before ``earliest`` wraps past midnight (22:00 -> 02:00).
    """
    start = time_to_minutes(earliest)
    end = time_to_minutes(latest)
    if earliest == latest:
        end = start + MINUTES_PER_DAY
    elif end <= start:
        end += MINUTES_PER_DAY
    return [minutes_to_time(m) for m in range(start, end, SLOT_DURATION_MINUTES)]


def is_time_in_range(value: str, range_start: str, range_end: str) -> bool:
    """Half-open containment that understands ranges crossing midnight."""
    minutes = time_to_minutes(value)
    start = time_to_minutes(range_start)
    end = time_to_minutes(range_end)

    if end <= start:
        end += MINUTES_PER_DAY
        if minutes < start:
            minutes += MINUTES_PER_DAY
    return start <= minutes < end


def format_time_display(value: str) -> str:
    """
    Render a 24h time for people.

    "17:00" -> "5 PM", "09:30" -> "9:30 AM".
    """
    minutes = time_to_minutes(value) % MINUTES_PER_DAY
    hours24, mins = divmod(minutes, 60)
    hours12 = 12 if hours24 % 12 == 0 else hours24 % 12
    suffix = "AM" if hours24 < 12 else "PM"
    if mins == 0:
        return f"{hours12} {suffix}"
    return f"{hours12}:{mins:02d} {suffix}"


def get_week_dates(start: date) -> List[date]:
    """Seven consecutive dates beginning at ``start``."""
    return [start + timedelta(days=i) for i in range(7)]
