"""
Effective availability for one participant.

Priority (highest wins):
1. blocked_override - one-off blocks
2. blocked_pattern - recurring blocks
3. available_override - one-off additions
4. available_pattern - recurring weekly availability

Everything here works in UTC on time ranges; slot expansion only happens
during aggregation.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List

from ..core.enums import RuleType
from ..core.timezone_utils import day_of_week, get_date_range
from ..domain.range_math import TimeRange, add_ranges, create_range, merge_ranges, minute_in_ranges, subtract_ranges
from ..schemas.availability_rule import AvailabilityRule, DateRange
from ..utils.time_utils import time_to_minutes


@dataclass(frozen=True)
class DayAvailability:
    date: date
    available_ranges: List[TimeRange] = field(default_factory=list)
    blocked_ranges: List[TimeRange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.available_ranges


def patterns_for_day(rules: Iterable[AvailabilityRule], utc_day_of_week: int, rule_type: RuleType) -> List[AvailabilityRule]:
    """Pattern rules of ``rule_type`` on a UTC day of week; rows without a day never match."""
    return [
        rule
        for rule in rules
        if rule.rule_type == rule_type and rule.day_of_week is not None and rule.day_of_week == utc_day_of_week
    ]


def overrides_for_date(rules: Iterable[AvailabilityRule], utc_date: date, rule_type: RuleType) -> List[AvailabilityRule]:
    """Override rules of ``rule_type`` on a UTC date; rows without a date never match."""
    return [
        rule
        for rule in rules
        if rule.rule_type == rule_type and rule.specific_date is not None and rule.specific_date == utc_date
    ]


def rules_to_ranges(rules: Iterable[AvailabilityRule]) -> List[TimeRange]:
    # Each rule's stored flag decides whether it runs past midnight
    return [create_range(rule.start_time, rule.end_time, rule.crosses_midnight) for rule in rules]


def compute_effective_for_date(rules: Iterable[AvailabilityRule], utc_date: date) -> DayAvailability:
    """
    Compute effective availability for a single UTC date.

    Available patterns for the day are merged, available overrides for the
    date are added, and every blocked pattern and override is subtracted
    last. Subtraction only carves holes, so separate windows stay separate.
    """
    rule_list = list(rules)
    utc_dow = day_of_week(utc_date)

    # Step 1: base availability from patterns
    available = merge_ranges(rules_to_ranges(patterns_for_day(rule_list, utc_dow, RuleType.AVAILABLE_PATTERN)))

    # Step 2: one-off additions
    additions = overrides_for_date(rule_list, utc_date, RuleType.AVAILABLE_OVERRIDE)
    if additions:
        available = add_ranges(available, rules_to_ranges(additions))

    # Step 3: everything blocked on this day or date
    blocked = merge_ranges(
        [
            *rules_to_ranges(patterns_for_day(rule_list, utc_dow, RuleType.BLOCKED_PATTERN)),
            *rules_to_ranges(overrides_for_date(rule_list, utc_date, RuleType.BLOCKED_OVERRIDE)),
        ]
    )

    # Step 4: blocked always wins
    return DayAvailability(
        date=utc_date,
        available_ranges=subtract_ranges(available, blocked),
        blocked_ranges=blocked,
    )


def compute_effective_ranges(rules: Iterable[AvailabilityRule], date_range: DateRange) -> Dict[date, DayAvailability]:
    """Effective availability for every date in the inclusive range, empty days included."""
    rule_list = list(rules)
    return {
        utc_date: compute_effective_for_date(rule_list, utc_date)
        for utc_date in get_date_range(date_range.start_date, date_range.end_date)
    }


def is_slot_available(rules: Iterable[AvailabilityRule], utc_date: date, utc_time: str) -> bool:
    """Whether ``utc_time`` on ``utc_date`` lies inside an effective available range."""
    minutes = time_to_minutes(utc_time)
    effective = compute_effective_for_date(rules, utc_date)
    return minute_in_ranges(minutes, effective.available_ranges)
