"""
Centralized timezone handling for availability rules.

Rules:
- All storage: UTC
- All comparisons: UTC
- User input and display: the participant's IANA timezone
- Unknown timezones are rejected, never replaced with a default
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
import logging
from typing import Optional

import pytz

from ..core.constants import END_OF_DAY, MIDNIGHT, UTC
from ..core.exceptions import InvalidTimezoneException
from ..core.timezone_utils import day_of_week
from ..utils.time_utils import validate_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZonedClock:
    """A wall-clock reading: calendar date plus HH:MM in some timezone."""

    date: date
    time: str


def _normalize_end_of_day(time_str: str, on_date: date) -> tuple[str, date]:
    """Treat 24:00 as 00:00 of the following date."""
    validate_time(time_str)
    if time_str == END_OF_DAY:
        return MIDNIGHT, on_date + timedelta(days=1)
    return time_str, on_date


def _wall_time(time_str: str) -> time:
    hours, minutes = time_str.split(":")
    return time(int(hours), int(minutes))


class TimezoneService:
    """Handles all timezone conversions consistently."""

    @staticmethod
    def get_timezone(tz_str: str) -> pytz.BaseTzInfo:
        """Get timezone object; unknown identifiers raise InvalidTimezoneException."""
        if not isinstance(tz_str, str) or not tz_str:
            raise InvalidTimezoneException(tz_str)
        try:
            return pytz.timezone(tz_str)
        except pytz.UnknownTimeZoneError as exc:
            raise InvalidTimezoneException(tz_str) from exc

    @staticmethod
    def is_valid_timezone(tz_str: str) -> bool:
        try:
            TimezoneService.get_timezone(tz_str)
        except InvalidTimezoneException:
            return False
        return True

    @staticmethod
    def localize(naive_dt: datetime, timezone_str: str) -> datetime:
        """
        Attach a timezone to a naive wall-clock datetime.

        Uses the timezone rules valid on that date, so DST is honoured.
        Ambiguous times (fall back) resolve to the first occurrence; times
        inside a spring-forward gap resolve forward using the offset in force
        before the transition.
        """
        tz = TimezoneService.get_timezone(timezone_str)
        try:
            # is_dst=None raises exception for ambiguous/nonexistent times
            return tz.localize(naive_dt, is_dst=None)
        except pytz.exceptions.AmbiguousTimeError:
            return tz.localize(naive_dt, is_dst=True)
        except pytz.exceptions.NonExistentTimeError:
            logger.debug("Wall time %s does not exist in %s; shifting forward", naive_dt, timezone_str)
            return tz.normalize(tz.localize(naive_dt, is_dst=False))

    @staticmethod
    def local_to_utc(time_str: str, local_date: date, timezone_str: str) -> ZonedClock:
        """
        Convert a local wall-clock time to UTC.

        "24:00" is read as 00:00 of the next date before the offset applies.
        """
        adjusted_time, adjusted_date = _normalize_end_of_day(time_str, local_date)
        if timezone_str == UTC:
            return ZonedClock(adjusted_date, adjusted_time)

        naive_dt = datetime.combine(adjusted_date, _wall_time(adjusted_time))
        utc_dt = TimezoneService.localize(naive_dt, timezone_str).astimezone(timezone.utc)
        return ZonedClock(utc_dt.date(), utc_dt.strftime("%H:%M"))

    @staticmethod
    def utc_to_local(time_str: str, utc_date: date, timezone_str: str) -> ZonedClock:
        """
        Convert a UTC wall-clock time to a local timezone.

        "24:00" is read as 00:00 of the next date before the offset applies.
        """
        adjusted_time, adjusted_date = _normalize_end_of_day(time_str, utc_date)
        if timezone_str == UTC:
            return ZonedClock(adjusted_date, adjusted_time)

        tz = TimezoneService.get_timezone(timezone_str)
        utc_dt = datetime.combine(adjusted_date, _wall_time(adjusted_time), tzinfo=timezone.utc)
        local_dt = utc_dt.astimezone(tz)
        return ZonedClock(local_dt.date(), local_dt.strftime("%H:%M"))

    @staticmethod
    def convert_time(time_str: str, on_date: date, from_tz: str, to_tz: str) -> ZonedClock:
        """Convert a wall-clock reading directly between two timezones."""
        utc = TimezoneService.local_to_utc(time_str, on_date, from_tz)
        return TimezoneService.utc_to_local(utc.time, utc.date, to_tz)

    @staticmethod
    def get_local_day_of_week(utc_date: date, timezone_str: str) -> int:
        """Day of week (0 = Sunday) that noon UTC on ``utc_date`` falls on locally."""
        local = TimezoneService.utc_to_local("12:00", utc_date, timezone_str)
        return day_of_week(local.date)

    @staticmethod
    def get_utc_offset_minutes(timezone_str: str, at: Optional[datetime] = None) -> int:
        """UTC offset in minutes at a given instant (now if omitted)."""
        tz = TimezoneService.get_timezone(timezone_str)
        instant = at or datetime.now(timezone.utc)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        offset = instant.astimezone(tz).utcoffset() or timedelta(0)
        return int(offset.total_seconds() // 60)

    @staticmethod
    def get_timezone_abbr(timezone_str: str, at: Optional[datetime] = None) -> str:
        """Abbreviation such as "PST" or "JST" at a given instant (now if omitted)."""
        tz = TimezoneService.get_timezone(timezone_str)
        instant = at or datetime.now(timezone.utc)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(tz).strftime("%Z")
