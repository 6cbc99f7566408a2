# backend/quorum/schemas/availability_rule.py
"""
Availability rule schemas.

Stored rules are always in UTC. The participant's original timezone and
day of week are kept for display only and never used for recomputation.
"""

import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from ..core.constants import MAX_REASON_LENGTH
from ..core.enums import EditMode, RuleSource, RuleType
from ..core.timezone_utils import get_date_range
from .base import EndTimeStr, StandardizedModel, StartTimeStr, StrictRequestModel

# Type aliases for clarity
DateType = datetime.date


class AvailabilityRule(StandardizedModel):
    """
    A stored rule, in UTC.

    The pattern/override shape is deliberately not enforced here: a malformed
    row must not stop a whole rule set from being computed, it simply never
    matches a day or date.
    """

    id: Optional[str] = None
    participant_id: Optional[str] = None
    rule_type: RuleType

    # Patterns: UTC day of week (0=Sunday). Overrides: None
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    # Overrides: UTC date. Patterns: None
    specific_date: Optional[DateType] = None

    start_time: StartTimeStr
    end_time: EndTimeStr

    original_timezone: Optional[str] = None
    original_day_of_week: Optional[int] = Field(default=None, ge=0, le=6)

    # None only for legacy rows written before the flag existed
    crosses_midnight: Optional[bool] = None

    reason: Optional[str] = None
    source: RuleSource = RuleSource.MANUAL


class RuleInput(StrictRequestModel):
    """A new rule as entered by a participant, in their local timezone."""

    rule_type: RuleType
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    specific_date: Optional[DateType] = None
    start_time: StartTimeStr
    end_time: EndTimeStr
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)
    source: RuleSource = RuleSource.MANUAL

    @model_validator(mode="after")
    def validate_shape(self) -> "RuleInput":
        """Patterns carry a day of week, overrides a date, never both."""
        if self.rule_type.is_pattern:
            if self.day_of_week is None or self.specific_date is not None:
                raise ValueError(f"{self.rule_type.value} rules need day_of_week and no specific_date")
        elif self.specific_date is None or self.day_of_week is not None:
            raise ValueError(f"{self.rule_type.value} rules need specific_date and no day_of_week")
        return self


class PreparedRule(StandardizedModel):
    """UTC fields ready to be written by the storage layer."""

    rule_type: RuleType
    day_of_week: Optional[int] = None
    specific_date: Optional[DateType] = None
    start_time: str
    end_time: str
    original_timezone: str
    original_day_of_week: Optional[int] = None
    crosses_midnight: bool
    reason: Optional[str] = None
    source: RuleSource = RuleSource.MANUAL

    def to_rule(
        self,
        *,
        rule_id: Optional[str] = None,
        participant_id: Optional[str] = None,
    ) -> AvailabilityRule:
        return AvailabilityRule(
            id=rule_id,
            participant_id=participant_id,
            **self.model_dump(),
        )


class DateRange(StandardizedModel):
    """Inclusive range of dates. An inverted range simply contains no dates."""

    start_date: DateType
    end_date: DateType

    @property
    def day_count(self) -> int:
        return max(0, (self.end_date - self.start_date).days + 1)

    def dates(self) -> List[DateType]:
        return get_date_range(self.start_date, self.end_date)


# Structured output of the availability parser (natural-language front end)


class PatternInput(StrictRequestModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: StartTimeStr
    end_time: EndTimeStr


class OverrideInput(StrictRequestModel):
    date: DateType
    start_time: StartTimeStr
    end_time: EndTimeStr
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)


class ExclusionInput(StrictRequestModel):
    """A blocked date; without times it blocks the whole day."""

    date: DateType
    start_time: Optional[StartTimeStr] = None
    end_time: Optional[EndTimeStr] = None
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)

    @model_validator(mode="after")
    def validate_times_paired(self) -> "ExclusionInput":
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("Exclusions need both start_time and end_time, or neither")
        return self


class ParsedAvailability(StrictRequestModel):
    patterns: List[PatternInput] = Field(default_factory=list)
    additions: List[OverrideInput] = Field(default_factory=list)
    exclusions: List[ExclusionInput] = Field(default_factory=list)
    interpretation: str = ""
    mode: EditMode = EditMode.ADJUST


def is_pattern_rule(rule: AvailabilityRule) -> bool:
    return rule.rule_type.is_pattern


def is_override_rule(rule: AvailabilityRule) -> bool:
    return rule.rule_type.is_override


def is_available_rule(rule: AvailabilityRule) -> bool:
    return rule.rule_type.is_available


def is_blocked_rule(rule: AvailabilityRule) -> bool:
    return rule.rule_type.is_blocked
