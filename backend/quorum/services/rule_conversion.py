"""
Conversion of availability rules between a participant's timezone and UTC.

Key principles:
- Storage is UTC (day of week, date, start and end time)
- Whether a range crosses midnight is decided once, from the times the
  participant entered, and then carried as an explicit flag. It is never
  re-derived by comparing two already-converted clock strings: a timezone
  shift can make a same-day range look inverted (16:00-15:30) and an overnight
  range look same-day.
- Patterns have no real date, so a fixed reference week stands in for one
  during offset resolution and only the day-of-week shift is kept.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
import logging
from typing import Iterable, List, Optional, Tuple

from ..core.constants import END_OF_DAY, MIDNIGHT, MINUTES_PER_DAY, UTC
from ..core.enums import RuleSource, RuleType
from ..core.exceptions import InvalidRuleException
from ..core.timezone_utils import day_shift, get_reference_date, shift_day_of_week
from ..domain.range_math import create_range
from ..schemas.availability_rule import AvailabilityRule, ParsedAvailability, PreparedRule, RuleInput
from ..utils.time_utils import minutes_to_time, time_to_minutes
from .timezone_service import TimezoneService, ZonedClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvertedPattern:
    day_of_week: int
    start_time: str
    end_time: str
    crosses_midnight: bool


@dataclass(frozen=True)
class ConvertedOverride:
    date: date
    start_time: str
    end_time: str
    crosses_midnight: bool


@dataclass(frozen=True)
class RemappedPattern:
    days: Tuple[int, ...]
    start_time: str
    end_time: str


@dataclass(frozen=True)
class DisplayRule:
    day_of_week: Optional[int]
    specific_date: Optional[date]
    start_time: str
    end_time: str
    crosses_midnight: bool


def input_crosses_midnight(start_time: str, end_time: str) -> bool:
    """Overnight as entered: the end is at or before the start (and not equal)."""
    return time_to_minutes(end_time) <= time_to_minutes(start_time) and end_time != start_time


def is_full_day(start_time: str, end_time: str) -> bool:
    return start_time == MIDNIGHT and end_time == END_OF_DAY


def _validate_day_of_week(dow: int) -> None:
    if isinstance(dow, bool) or not isinstance(dow, int) or not 0 <= dow <= 6:
        raise InvalidRuleException(
            f"Invalid day of week {dow!r}: expected 0 (Sunday) to 6 (Saturday)",
            details={"day_of_week": dow},
        )


def _to_utc_endpoints(
    start_time: str,
    end_time: str,
    local_date: date,
    from_tz: str,
) -> Tuple[ZonedClock, ZonedClock, bool]:
    """
    Convert both endpoints of a local range anchored on ``local_date``.

    Returns the UTC start, the UTC end and the crosses-midnight flag that the
    stored rule must carry.
    """
    # Capture intent before any conversion
    crosses_midnight = input_crosses_midnight(start_time, end_time)

    utc_start = TimezoneService.local_to_utc(start_time, local_date, from_tz)
    # 24:00 already advances a day inside local_to_utc
    end_date = local_date + timedelta(days=1) if crosses_midnight else local_date
    utc_end = TimezoneService.local_to_utc(end_time, end_date, from_tz)

    # A same-day local range can straddle a UTC day boundary
    if not crosses_midnight and utc_start.date != utc_end.date:
        crosses_midnight = True

    # A true 24-hour window keeps equal clock times under any offset
    if is_full_day(start_time, end_time) and utc_start.time == utc_end.time:
        crosses_midnight = True

    return utc_start, utc_end, crosses_midnight


def _runs_past_midnight(end_time: str, end_minutes: int) -> bool:
    return end_time != END_OF_DAY and end_minutes >= MINUTES_PER_DAY


def _from_utc_endpoints(
    start_time: str,
    end_time: str,
    utc_date: date,
    to_tz: str,
    crosses_midnight: Optional[bool],
) -> Tuple[ZonedClock, str, bool]:
    """
    Convert a stored UTC range anchored on ``utc_date`` to local time.

    The end instant is the start plus the range length as ``create_range``
    reads it, so the carried flag decides the topology. Returns the local
    start, the local end time and whether the local range spans a local
    midnight. Equal clock times on different dates, or an end at the next
    local midnight, come back as an end of "24:00" on the start date.
    """
    utc_range = create_range(start_time, end_time, crosses_midnight)
    end_minutes = utc_range.end_minutes
    utc_end_date = utc_date + timedelta(days=end_minutes // MINUTES_PER_DAY)
    utc_end_time = minutes_to_time(end_minutes)

    local_start = TimezoneService.utc_to_local(start_time, utc_date, to_tz)
    local_end = TimezoneService.utc_to_local(utc_end_time, utc_end_date, to_tz)

    spans_days = local_start.date != local_end.date
    if spans_days and local_start.time == local_end.time:
        return local_start, END_OF_DAY, False
    if local_end.time == MIDNIGHT and local_end.date == local_start.date + timedelta(days=1):
        return local_start, END_OF_DAY, False
    return local_start, local_end.time, spans_days


def convert_pattern_to_utc(
    local_day_of_week: int,
    start_time: str,
    end_time: str,
    from_tz: str,
) -> ConvertedPattern:
    """
    Convert a weekly pattern from a participant's timezone to UTC for storage.

    Example:
        Monday 07:00-09:00 in Asia/Manila (UTC+8) is Sunday 23:00-01:00 UTC,
        stored with crosses_midnight=True.
    """
    _validate_day_of_week(local_day_of_week)
    time_to_minutes(start_time)
    time_to_minutes(end_time)

    if from_tz == UTC:
        return ConvertedPattern(
            local_day_of_week,
            start_time,
            end_time,
            input_crosses_midnight(start_time, end_time),
        )

    reference = get_reference_date(local_day_of_week)
    utc_start, utc_end, crosses_midnight = _to_utc_endpoints(start_time, end_time, reference, from_tz)
    utc_day = shift_day_of_week(local_day_of_week, day_shift(reference, utc_start.date))

    logger.debug(
        "Pattern %s %s-%s (%s) -> UTC day %s %s-%s crosses_midnight=%s",
        local_day_of_week,
        start_time,
        end_time,
        from_tz,
        utc_day,
        utc_start.time,
        utc_end.time,
        crosses_midnight,
    )
    return ConvertedPattern(utc_day, utc_start.time, utc_end.time, crosses_midnight)


def convert_pattern_from_utc(
    utc_day_of_week: int,
    start_time: str,
    end_time: str,
    to_tz: str,
    crosses_midnight: Optional[bool] = None,
) -> ConvertedPattern:
    """
    Convert a stored UTC pattern to a viewer's timezone for display.

    Pass the rule's stored ``crosses_midnight``; it is only inferred from the
    clock values for legacy rules that never had one.
    """
    _validate_day_of_week(utc_day_of_week)

    if to_tz == UTC:
        utc_range = create_range(start_time, end_time, crosses_midnight)
        return ConvertedPattern(
            utc_day_of_week,
            start_time,
            end_time,
            _runs_past_midnight(end_time, utc_range.end_minutes),
        )

    reference = get_reference_date(utc_day_of_week)
    local_start, local_end_time, local_crosses = _from_utc_endpoints(
        start_time, end_time, reference, to_tz, crosses_midnight
    )
    local_day = shift_day_of_week(utc_day_of_week, day_shift(reference, local_start.date))
    return ConvertedPattern(local_day, local_start.time, local_end_time, local_crosses)


def convert_override_to_utc(
    local_date: date,
    start_time: str,
    end_time: str,
    from_tz: str,
) -> ConvertedOverride:
    """Convert a one-off date override from a participant's timezone to UTC."""
    time_to_minutes(start_time)
    time_to_minutes(end_time)

    if from_tz == UTC:
        return ConvertedOverride(
            local_date,
            start_time,
            end_time,
            input_crosses_midnight(start_time, end_time),
        )

    utc_start, utc_end, crosses_midnight = _to_utc_endpoints(start_time, end_time, local_date, from_tz)
    return ConvertedOverride(utc_start.date, utc_start.time, utc_end.time, crosses_midnight)


def convert_override_from_utc(
    utc_date: date,
    start_time: str,
    end_time: str,
    to_tz: str,
    crosses_midnight: Optional[bool] = None,
) -> ConvertedOverride:
    """Convert a stored UTC override to a viewer's timezone for display."""
    if to_tz == UTC:
        utc_range = create_range(start_time, end_time, crosses_midnight)
        return ConvertedOverride(
            utc_date,
            start_time,
            end_time,
            _runs_past_midnight(end_time, utc_range.end_minutes),
        )

    local_start, local_end_time, local_crosses = _from_utc_endpoints(
        start_time, end_time, utc_date, to_tz, crosses_midnight
    )
    return ConvertedOverride(local_start.date, local_start.time, local_end_time, local_crosses)


def convert_pattern_between_timezones(
    days: Iterable[int],
    start_time: str,
    end_time: str,
    from_tz: str,
    to_tz: str,
) -> RemappedPattern:
    """
    Re-express a multi-day pattern from one timezone in another.

    "00:00-24:00" is handled as "available all day": it stays all day on the
    same days in the target timezone. The pattern editor cannot represent an
    overnight pattern, so an all-day pattern must not split into two partial
    days when a participant switches timezone.

    Example:
        Weekdays 15:00-21:00 in America/Los_Angeles become
        Tuesday-Saturday 07:00-13:00 in Asia/Manila.
    """
    source_days = list(days)
    TimezoneService.get_timezone(from_tz)
    TimezoneService.get_timezone(to_tz)

    if from_tz == to_tz or is_full_day(start_time, end_time):
        return RemappedPattern(tuple(source_days), start_time, end_time)

    new_days: List[int] = []
    new_start, new_end = start_time, end_time
    for day in source_days:
        utc = convert_pattern_to_utc(day, start_time, end_time, from_tz)
        local = convert_pattern_from_utc(
            utc.day_of_week, utc.start_time, utc.end_time, to_tz, utc.crosses_midnight
        )
        if local.day_of_week not in new_days:
            new_days.append(local.day_of_week)
        new_start, new_end = local.start_time, local.end_time

    return RemappedPattern(tuple(sorted(new_days)), new_start, new_end)


def prepare_rule_for_storage(rule_input: RuleInput, user_timezone: str) -> PreparedRule:
    """
    Convert a rule entered in the participant's timezone into its UTC record.

    Stamps the original timezone and day of week, and the crosses-midnight
    flag decided from the participant's own times.
    """
    TimezoneService.get_timezone(user_timezone)

    if rule_input.rule_type.is_pattern and rule_input.day_of_week is not None:
        pattern = convert_pattern_to_utc(
            rule_input.day_of_week, rule_input.start_time, rule_input.end_time, user_timezone
        )
        return PreparedRule(
            rule_type=rule_input.rule_type,
            day_of_week=pattern.day_of_week,
            specific_date=None,
            start_time=pattern.start_time,
            end_time=pattern.end_time,
            original_timezone=user_timezone,
            original_day_of_week=rule_input.day_of_week,
            crosses_midnight=pattern.crosses_midnight,
            reason=rule_input.reason,
            source=rule_input.source,
        )

    if rule_input.rule_type.is_override and rule_input.specific_date is not None:
        override = convert_override_to_utc(
            rule_input.specific_date, rule_input.start_time, rule_input.end_time, user_timezone
        )
        return PreparedRule(
            rule_type=rule_input.rule_type,
            day_of_week=None,
            specific_date=override.date,
            start_time=override.start_time,
            end_time=override.end_time,
            original_timezone=user_timezone,
            original_day_of_week=None,
            crosses_midnight=override.crosses_midnight,
            reason=rule_input.reason,
            source=rule_input.source,
        )

    raise InvalidRuleException(
        f"{rule_input.rule_type.value} rule is missing its "
        f"{'day_of_week' if rule_input.rule_type.is_pattern else 'specific_date'}",
        details={"rule_type": rule_input.rule_type.value},
    )


def convert_rule_for_display(rule: AvailabilityRule, display_timezone: str) -> DisplayRule:
    """Convert a stored rule to the viewer's timezone, honouring its stored flag."""
    if rule.day_of_week is not None:
        pattern = convert_pattern_from_utc(
            rule.day_of_week,
            rule.start_time,
            rule.end_time,
            display_timezone,
            rule.crosses_midnight,
        )
        return DisplayRule(
            day_of_week=pattern.day_of_week,
            specific_date=None,
            start_time=pattern.start_time,
            end_time=pattern.end_time,
            crosses_midnight=pattern.crosses_midnight,
        )

    if rule.specific_date is not None:
        override = convert_override_from_utc(
            rule.specific_date,
            rule.start_time,
            rule.end_time,
            display_timezone,
            rule.crosses_midnight,
        )
        return DisplayRule(
            day_of_week=None,
            specific_date=override.date,
            start_time=override.start_time,
            end_time=override.end_time,
            crosses_midnight=override.crosses_midnight,
        )

    logger.warning("Rule %s has neither day_of_week nor specific_date; shown unconverted", rule.id)
    return DisplayRule(
        day_of_week=None,
        specific_date=None,
        start_time=rule.start_time,
        end_time=rule.end_time,
        crosses_midnight=bool(rule.crosses_midnight),
    )


def rules_from_parsed_availability(
    parsed: ParsedAvailability,
    user_timezone: str,
    source: RuleSource = RuleSource.AI,
) -> List[PreparedRule]:
    """
    Turn parsed availability into UTC rule records.

    Patterns become available patterns, additions available overrides and
    exclusions blocked overrides; an exclusion without times blocks the
    whole local day. ``parsed.mode`` is left for the storage layer.
    """
    inputs: List[RuleInput] = []
    for pattern in parsed.patterns:
        inputs.append(
            RuleInput(
                rule_type=RuleType.AVAILABLE_PATTERN,
                day_of_week=pattern.day_of_week,
                start_time=pattern.start_time,
                end_time=pattern.end_time,
                source=source,
            )
        )
    for addition in parsed.additions:
        inputs.append(
            RuleInput(
                rule_type=RuleType.AVAILABLE_OVERRIDE,
                specific_date=addition.date,
                start_time=addition.start_time,
                end_time=addition.end_time,
                reason=addition.reason,
                source=source,
            )
        )
    for exclusion in parsed.exclusions:
        inputs.append(
            RuleInput(
                rule_type=RuleType.BLOCKED_OVERRIDE,
                specific_date=exclusion.date,
                start_time=exclusion.start_time or MIDNIGHT,
                end_time=exclusion.end_time or END_OF_DAY,
                reason=exclusion.reason,
                source=source,
            )
        )
    return [prepare_rule_for_storage(rule_input, user_timezone) for rule_input in inputs]
