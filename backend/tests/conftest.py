# backend/tests/conftest.py
"""
Pytest configuration for the quorum availability core.

Rules built here are stored (UTC) rules unless a test converts them itself.
"""

import itertools
import os

# Keep a developer's local .env out of test runs
os.environ.setdefault("CI", "true")

from datetime import date
from typing import Callable, Optional

import pytest

from quorum.core.enums import RuleType
from quorum.schemas.availability_rule import AvailabilityRule, DateRange
from quorum.services.base import BaseService

_rule_ids = itertools.count(1)


def build_rule(
    rule_type: RuleType,
    start_time: str,
    end_time: str,
    *,
    day_of_week: Optional[int] = None,
    specific_date: Optional[date] = None,
    crosses_midnight: Optional[bool] = False,
    participant_id: str = "p1",
) -> AvailabilityRule:
    return AvailabilityRule(
        id=f"rule-{next(_rule_ids)}",
        participant_id=participant_id,
        rule_type=rule_type,
        day_of_week=day_of_week,
        specific_date=specific_date,
        start_time=start_time,
        end_time=end_time,
        original_timezone="UTC",
        crosses_midnight=crosses_midnight,
    )


@pytest.fixture
def make_rule() -> Callable[..., AvailabilityRule]:
    """Factory for stored rules: make_rule(RuleType.AVAILABLE_PATTERN, "09:00", "17:00", day_of_week=1)."""
    return build_rule


@pytest.fixture
def week_of_jan_8() -> DateRange:
    """Monday 2024-01-08 through Sunday 2024-01-14."""
    return DateRange(start_date=date(2024, 1, 8), end_date=date(2024, 1, 14))


@pytest.fixture(autouse=True)
def clear_service_metrics():
    BaseService._class_metrics.clear()
    yield
    BaseService._class_metrics.clear()
