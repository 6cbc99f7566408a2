# backend/quorum/services/availability_service.py
"""
Availability Service for the quorum availability core

Entry point for collaborators (storage layer, API routes, display layer).
It delegates to the pure conversion, effective-availability and aggregation
functions, and adds logging, operation timing and the date-range bound.
"""

from __future__ import annotations

from datetime import date
import logging
from typing import Dict, Iterable, List, Optional

from ..core.config import settings
from ..core.exceptions import DateRangeTooLargeException
from ..schemas.availability_rule import AvailabilityRule, DateRange, ParsedAvailability, PreparedRule, RuleInput
from . import aggregation, effective_availability, rule_conversion
from .aggregation import (
    AvailabilityBounds,
    Heatmap,
    HeatmapCell,
    OverlapSlot,
    OverlapSummary,
    ParticipantRules,
    SessionSlot,
)
from .base import BaseService
from .effective_availability import DayAvailability
from .rule_conversion import DisplayRule, RemappedPattern

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService):
    """
    Service layer for availability operations.

    Stateless: every method is a pure computation over the rules passed in.
    """

    def _check_date_range(self, date_range: DateRange) -> None:
        """Reject ranges larger than the configured bound."""
        if date_range.day_count > settings.max_date_range_days:
            raise DateRangeTooLargeException(date_range.day_count, settings.max_date_range_days)

    # Rule intake and display

    @BaseService.measure_operation("prepare_rule")
    def prepare_rule(self, rule_input: RuleInput, user_timezone: str) -> PreparedRule:
        prepared = rule_conversion.prepare_rule_for_storage(rule_input, user_timezone)
        self.logger.debug(
            "Prepared %s rule from %s: day=%s date=%s %s-%s crosses_midnight=%s",
            prepared.rule_type.value,
            user_timezone,
            prepared.day_of_week,
            prepared.specific_date,
            prepared.start_time,
            prepared.end_time,
            prepared.crosses_midnight,
        )
        return prepared

    @BaseService.measure_operation("prepare_parsed_availability")
    def prepare_parsed_availability(
        self,
        parsed: ParsedAvailability,
        user_timezone: str,
    ) -> List[PreparedRule]:
        """
        Convert parser output to UTC rules.

        ``parsed.mode`` (replace or adjust) is for the storage layer to act on.
        """
        prepared = rule_conversion.rules_from_parsed_availability(parsed, user_timezone)
        self.log_operation(
            "prepare_parsed_availability",
            timezone=user_timezone,
            mode=parsed.mode.value,
            rule_count=len(prepared),
        )
        return prepared

    @BaseService.measure_operation("display_rules")
    def display_rules(self, rules: Iterable[AvailabilityRule], display_timezone: str) -> List[DisplayRule]:
        return [rule_conversion.convert_rule_for_display(rule, display_timezone) for rule in rules]

    @BaseService.measure_operation("remap_pattern")
    def remap_pattern(
        self,
        days: Iterable[int],
        start_time: str,
        end_time: str,
        from_timezone: str,
        to_timezone: str,
    ) -> RemappedPattern:
        return rule_conversion.convert_pattern_between_timezones(days, start_time, end_time, from_timezone, to_timezone)

    # Single participant

    @BaseService.measure_operation("get_effective_availability")
    def get_effective_availability(
        self,
        rules: Iterable[AvailabilityRule],
        date_range: DateRange,
    ) -> Dict[date, DayAvailability]:
        self._check_date_range(date_range)
        return effective_availability.compute_effective_ranges(rules, date_range)

    @BaseService.measure_operation("is_slot_available")
    def is_slot_available(self, rules: Iterable[AvailabilityRule], utc_date: date, utc_time: str) -> bool:
        return effective_availability.is_slot_available(rules, utc_date, utc_time)

    @BaseService.measure_operation("get_availability_bounds")
    def get_availability_bounds(
        self,
        rules: Iterable[AvailabilityRule],
        date_range: DateRange,
    ) -> AvailabilityBounds:
        self._check_date_range(date_range)
        return aggregation.get_availability_bounds(rules, date_range)

    # Multiple participants

    @BaseService.measure_operation("compute_heatmap")
    def compute_heatmap(self, participant_rules: ParticipantRules, date_range: DateRange) -> Heatmap:
        self._check_date_range(date_range)
        return aggregation.compute_heatmap(participant_rules, date_range)

    @BaseService.measure_operation("get_heatmap_cells")
    def get_heatmap_cells(self, participant_rules: ParticipantRules, date_range: DateRange) -> List[HeatmapCell]:
        self._check_date_range(date_range)
        heatmap = aggregation.compute_heatmap(participant_rules, date_range)
        return aggregation.build_heatmap_cells(heatmap, len(participant_rules))

    @BaseService.measure_operation("find_overlapping_slots")
    def find_overlapping_slots(
        self,
        participant_rules: ParticipantRules,
        date_range: DateRange,
        min_participants: Optional[int] = None,
    ) -> List[OverlapSlot]:
        self._check_date_range(date_range)
        return aggregation.find_overlapping_slots(participant_rules, date_range, min_participants)

    @BaseService.measure_operation("find_session_slots")
    def find_session_slots(
        self,
        participant_rules: ParticipantRules,
        date_range: DateRange,
        session_minutes: Optional[int] = None,
        min_participants: Optional[int] = None,
    ) -> List[SessionSlot]:
        self._check_date_range(date_range)
        minutes = settings.default_session_minutes if session_minutes is None else session_minutes
        sessions = aggregation.find_session_slots(participant_rules, date_range, minutes, min_participants)
        self.logger.debug("Found %d candidate %d-minute sessions", len(sessions), minutes)
        return sessions

    @BaseService.measure_operation("summarize_overlap")
    def summarize_overlap(
        self,
        participant_rules: ParticipantRules,
        date_range: DateRange,
        limit: Optional[int] = None,
    ) -> OverlapSummary:
        self._check_date_range(date_range)
        return aggregation.summarize_overlap(participant_rules, date_range, limit)
