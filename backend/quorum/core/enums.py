"""
Core enums for the quorum availability core.

Rule types are the cross product of {available, blocked} x {pattern, override}.
"""

from enum import Enum


class RuleType(str, Enum):
    """Discriminator for stored availability rules."""

    AVAILABLE_PATTERN = "available_pattern"  # every Tuesday 18:00-22:00
    AVAILABLE_OVERRIDE = "available_override"  # Jan 15 18:00-22:00 only
    BLOCKED_PATTERN = "blocked_pattern"  # busy every Wednesday
    BLOCKED_OVERRIDE = "blocked_override"  # busy Jan 20 all day

    @property
    def is_pattern(self) -> bool:
        return self in (RuleType.AVAILABLE_PATTERN, RuleType.BLOCKED_PATTERN)

    @property
    def is_override(self) -> bool:
        return self in (RuleType.AVAILABLE_OVERRIDE, RuleType.BLOCKED_OVERRIDE)

    @property
    def is_available(self) -> bool:
        return self in (RuleType.AVAILABLE_PATTERN, RuleType.AVAILABLE_OVERRIDE)

    @property
    def is_blocked(self) -> bool:
        return self in (RuleType.BLOCKED_PATTERN, RuleType.BLOCKED_OVERRIDE)


class RuleSource(str, Enum):
    """How a rule was created."""

    MANUAL = "manual"
    AI = "ai"


class EditMode(str, Enum):
    """
    Whether parsed availability replaces a participant's rules or adjusts them.

    Consumed by the storage layer; the core only passes it through.
    """

    REPLACE = "replace"
    ADJUST = "adjust"
