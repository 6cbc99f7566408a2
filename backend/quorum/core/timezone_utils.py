"""
Calendar helpers for availability computation.

Day-of-week numbering is 0 = Sunday through 6 = Saturday everywhere.
"""

from datetime import date, timedelta
from typing import List

from .constants import REFERENCE_SUNDAY


def day_of_week(value: date) -> int:
    """Sunday-first day index of a calendar date."""
    return (value.weekday() + 1) % 7


def get_utc_day_of_week(utc_date: date) -> int:
    """
    Day of week for a date that is already expressed in UTC.

    Calendar dates carry no zone, so this is the plain Sunday-first index.
    """
    return day_of_week(utc_date)


def get_date_range(start_date: date, end_date: date) -> List[date]:
    """
    Every date from start to end, inclusive.

    Returns an empty list when end precedes start.
    """
    days = (end_date - start_date).days
    return [start_date + timedelta(days=i) for i in range(days + 1)]


def get_reference_date(dow: int) -> date:
    """
    Concrete date for a day of week inside the fixed reference week.

    Pattern rules have no real date, but offset resolution needs one.
    """
    return REFERENCE_SUNDAY + timedelta(days=dow)


def shift_day_of_week(dow: int, days: int) -> int:
    """Move a day index by ``days`` and normalise to 0-6."""
    return (dow + days) % 7


def day_shift(reference: date, actual: date) -> int:
    """Whole-day difference between a converted date and its reference date."""
    return (actual - reference).days
