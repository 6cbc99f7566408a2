# backend/quorum/schemas/__init__.py
"""
Pydantic schemas for the quorum availability core.

Stored rules are UTC; inputs are in the participant's local timezone.
"""

from .availability_rule import (
    AvailabilityRule,
    DateRange,
    ExclusionInput,
    OverrideInput,
    ParsedAvailability,
    PatternInput,
    PreparedRule,
    RuleInput,
    is_available_rule,
    is_blocked_rule,
    is_override_rule,
    is_pattern_rule,
)
from .base import StandardizedModel, StrictRequestModel

__all__ = [
    "AvailabilityRule",
    "DateRange",
    "ExclusionInput",
    "OverrideInput",
    "ParsedAvailability",
    "PatternInput",
    "PreparedRule",
    "RuleInput",
    "StandardizedModel",
    "StrictRequestModel",
    "is_available_rule",
    "is_blocked_rule",
    "is_override_rule",
    "is_pattern_rule",
]
