"""
Unit tests for converting rules between local timezones and UTC.

Run with: pytest backend/tests/unit/services/test_rule_conversion.py -v
"""

from datetime import date

import pytest

from quorum.core.enums import EditMode, RuleSource, RuleType
from quorum.core.exceptions import InvalidRuleException, InvalidTimeFormatException, InvalidTimezoneException
from quorum.domain.range_math import create_range
from quorum.schemas.availability_rule import (
    ExclusionInput,
    OverrideInput,
    ParsedAvailability,
    PatternInput,
    RuleInput,
)
from quorum.services.rule_conversion import (
    ConvertedOverride,
    ConvertedPattern,
    DisplayRule,
    convert_override_from_utc,
    convert_override_to_utc,
    convert_pattern_between_timezones,
    convert_pattern_from_utc,
    convert_pattern_to_utc,
    convert_rule_for_display,
    input_crosses_midnight,
    is_full_day,
    prepare_rule_for_storage,
    rules_from_parsed_availability,
)

ROUND_TRIP_TIMEZONES = [
    "UTC",
    "America/Los_Angeles",
    "America/New_York",
    "America/Sao_Paulo",
    "Europe/London",
    "Europe/Berlin",
    "Asia/Tokyo",
    "Asia/Manila",
    "Asia/Kolkata",
    "Asia/Kathmandu",
    "Australia/Sydney",
    "Pacific/Auckland",
    "Pacific/Pago_Pago",
    "Pacific/Kiritimati",
]

ROUND_TRIP_PATTERNS = [
    (1, "09:00", "17:00"),
    (1, "07:00", "09:00"),
    (5, "22:00", "02:00"),
    (0, "00:30", "23:30"),
    (6, "18:00", "23:00"),
    (3, "00:00", "24:00"),
    (2, "13:15", "13:45"),
    (1, "18:00", "24:00"),
    (4, "20:30", "24:00"),
]


class TestIntent:
    @pytest.mark.unit
    def test_input_crosses_midnight(self):
        assert input_crosses_midnight("22:00", "02:00")
        assert input_crosses_midnight("22:00", "00:00")
        assert not input_crosses_midnight("09:00", "17:00")
        assert not input_crosses_midnight("09:00", "09:00")
        assert not input_crosses_midnight("00:00", "24:00")

    @pytest.mark.unit
    def test_is_full_day(self):
        assert is_full_day("00:00", "24:00")
        assert not is_full_day("00:00", "00:00")


class TestPatternToUtc:
    @pytest.mark.unit
    def test_manila_morning_becomes_sunday_night_utc(self):
        result = convert_pattern_to_utc(1, "07:00", "09:00", "Asia/Manila")
        assert result == ConvertedPattern(0, "23:00", "01:00", True)
        utc_range = create_range(result.start_time, result.end_time, result.crosses_midnight)
        assert (utc_range.start_minutes, utc_range.end_minutes) == (1380, 1500)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "day,start,end,tz",
        [
            (1, "17:00", "21:00", "America/Los_Angeles"),
            (2, "01:00", "05:00", "Europe/London"),
            (2, "10:00", "14:00", "Asia/Tokyo"),
        ],
    )
    def test_three_zones_share_one_utc_window(self, day, start, end, tz):
        assert convert_pattern_to_utc(day, start, end, tz) == ConvertedPattern(2, "01:00", "05:00", False)

    @pytest.mark.unit
    def test_local_overnight_that_is_same_day_in_utc_keeps_flag(self):
        result = convert_pattern_to_utc(1, "22:00", "02:00", "Asia/Manila")
        assert result == ConvertedPattern(1, "14:00", "18:00", True)
        assert create_range(result.start_time, result.end_time, result.crosses_midnight).duration == 240

    @pytest.mark.unit
    def test_end_of_day_ending_same_utc_day(self):
        assert convert_pattern_to_utc(1, "22:00", "24:00", "Asia/Tokyo") == ConvertedPattern(1, "13:00", "15:00", False)

    @pytest.mark.unit
    def test_saturday_wraps_to_sunday(self):
        assert convert_pattern_to_utc(6, "20:00", "23:00", "America/Los_Angeles") == ConvertedPattern(
            0, "04:00", "07:00", False
        )

    @pytest.mark.unit
    def test_utc_is_identity(self):
        assert convert_pattern_to_utc(5, "22:00", "02:00", "UTC") == ConvertedPattern(5, "22:00", "02:00", True)
        assert convert_pattern_to_utc(3, "00:00", "24:00", "UTC") == ConvertedPattern(3, "00:00", "24:00", False)

    @pytest.mark.unit
    def test_fractional_offset(self):
        assert convert_pattern_to_utc(1, "09:00", "17:00", "Asia/Kolkata") == ConvertedPattern(1, "03:30", "11:30", False)
        assert convert_pattern_to_utc(1, "09:00", "17:00", "Asia/Kathmandu") == ConvertedPattern(
            1, "03:15", "11:15", False
        )

    @pytest.mark.unit
    def test_invalid_inputs(self):
        with pytest.raises(InvalidTimezoneException):
            convert_pattern_to_utc(1, "09:00", "17:00", "Mars/Olympus_Mons")
        with pytest.raises(InvalidTimeFormatException):
            convert_pattern_to_utc(1, "9:00", "17:00", "UTC")
        with pytest.raises(InvalidRuleException):
            convert_pattern_to_utc(7, "09:00", "17:00", "UTC")


class TestFullDayInvariance:
    @pytest.mark.unit
    @pytest.mark.parametrize("tz", ROUND_TRIP_TIMEZONES)
    @pytest.mark.parametrize("day", range(7))
    def test_full_day_is_exactly_1440_minutes(self, tz, day):
        result = convert_pattern_to_utc(day, "00:00", "24:00", tz)
        utc_range = create_range(result.start_time, result.end_time, result.crosses_midnight)
        assert utc_range.end_minutes - utc_range.start_minutes == 1440

    @pytest.mark.unit
    def test_kolkata_full_day_is_flagged(self):
        assert convert_pattern_to_utc(1, "00:00", "24:00", "Asia/Kolkata") == ConvertedPattern(0, "18:30", "18:30", True)


class TestPatternRoundTrip:
    @pytest.mark.unit
    @pytest.mark.parametrize("tz", ROUND_TRIP_TIMEZONES)
    @pytest.mark.parametrize("day,start,end", ROUND_TRIP_PATTERNS)
    def test_round_trip_restores_day_and_times(self, tz, day, start, end):
        utc = convert_pattern_to_utc(day, start, end, tz)
        local = convert_pattern_from_utc(utc.day_of_week, utc.start_time, utc.end_time, tz, utc.crosses_midnight)
        assert (local.day_of_week, local.start_time, local.end_time) == (day, start, end)

    @pytest.mark.unit
    def test_from_utc_reports_local_overnight(self):
        local = convert_pattern_from_utc(1, "14:00", "18:00", "Asia/Manila", True)
        assert local == ConvertedPattern(1, "22:00", "02:00", True)

    @pytest.mark.unit
    def test_local_midnight_end_becomes_end_of_day(self):
        local = convert_pattern_from_utc(1, "13:00", "15:00", "Asia/Tokyo", False)
        assert local == ConvertedPattern(1, "22:00", "24:00", False)
        assert create_range(local.start_time, local.end_time, local.crosses_midnight).duration == 120

    @pytest.mark.unit
    def test_utc_full_day_viewed_elsewhere_ends_at_end_of_day(self):
        local = convert_pattern_from_utc(3, "00:00", "24:00", "Asia/Tokyo", False)
        assert local == ConvertedPattern(3, "09:00", "24:00", False)

    @pytest.mark.unit
    def test_los_angeles_full_day_shown_in_tokyo(self):
        utc = convert_pattern_to_utc(1, "00:00", "24:00", "America/Los_Angeles")
        assert utc == ConvertedPattern(1, "08:00", "08:00", True)
        shown = convert_pattern_from_utc(utc.day_of_week, utc.start_time, utc.end_time, "Asia/Tokyo", utc.crosses_midnight)
        assert shown == ConvertedPattern(1, "17:00", "24:00", False)

    @pytest.mark.unit
    def test_legacy_rule_without_flag_is_inferred(self):
        assert convert_pattern_from_utc(0, "23:00", "01:00", "Asia/Manila") == ConvertedPattern(1, "07:00", "09:00", False)


class TestOverrides:
    @pytest.mark.unit
    def test_manila_override_moves_to_previous_utc_date(self):
        result = convert_override_to_utc(date(2024, 1, 15), "07:00", "09:00", "Asia/Manila")
        assert result == ConvertedOverride(date(2024, 1, 14), "23:00", "01:00", True)

    @pytest.mark.unit
    def test_local_overnight_override(self):
        result = convert_override_to_utc(date(2024, 1, 15), "22:00", "02:00", "Asia/Manila")
        assert result == ConvertedOverride(date(2024, 1, 15), "14:00", "18:00", True)

    @pytest.mark.unit
    def test_override_moves_to_next_utc_date(self):
        result = convert_override_to_utc(date(2024, 1, 15), "20:00", "23:00", "America/Los_Angeles")
        assert result == ConvertedOverride(date(2024, 1, 16), "04:00", "07:00", False)

    @pytest.mark.unit
    def test_full_day_override(self):
        result = convert_override_to_utc(date(2024, 1, 15), "00:00", "24:00", "America/Los_Angeles")
        assert result == ConvertedOverride(date(2024, 1, 15), "08:00", "08:00", True)

    @pytest.mark.unit
    def test_override_on_dst_change_uses_real_offsets(self):
        # 01:00 EST to 04:00 EDT is two real hours
        result = convert_override_to_utc(date(2024, 3, 10), "01:00", "04:00", "America/New_York")
        assert result == ConvertedOverride(date(2024, 3, 10), "06:00", "08:00", False)

    @pytest.mark.unit
    def test_override_round_trip(self):
        utc = convert_override_to_utc(date(2024, 1, 15), "07:00", "09:00", "Asia/Manila")
        local = convert_override_from_utc(utc.date, utc.start_time, utc.end_time, "Asia/Manila", utc.crosses_midnight)
        assert local == ConvertedOverride(date(2024, 1, 15), "07:00", "09:00", False)

    @pytest.mark.unit
    @pytest.mark.parametrize("tz", ["Europe/London", "Asia/Tokyo", "America/New_York", "Asia/Kolkata"])
    def test_override_ending_at_midnight_round_trips(self, tz):
        utc = convert_override_to_utc(date(2024, 1, 15), "18:00", "24:00", tz)
        local = convert_override_from_utc(utc.date, utc.start_time, utc.end_time, tz, utc.crosses_midnight)
        assert local == ConvertedOverride(date(2024, 1, 15), "18:00", "24:00", False)

    @pytest.mark.unit
    def test_utc_override_is_identity(self):
        assert convert_override_to_utc(date(2024, 1, 15), "23:00", "01:00", "UTC") == ConvertedOverride(
            date(2024, 1, 15), "23:00", "01:00", True
        )
        assert convert_override_from_utc(date(2024, 1, 15), "23:00", "01:00", "UTC", True) == ConvertedOverride(
            date(2024, 1, 15), "23:00", "01:00", True
        )


class TestBetweenTimezones:
    @pytest.mark.unit
    def test_weekdays_shift_forward(self):
        result = convert_pattern_between_timezones([1, 2, 3, 4, 5], "15:00", "21:00", "America/Los_Angeles", "Asia/Manila")
        assert result.days == (2, 3, 4, 5, 6)
        assert (result.start_time, result.end_time) == ("07:00", "13:00")

    @pytest.mark.unit
    def test_sunday_wraps_to_saturday(self):
        result = convert_pattern_between_timezones([0], "08:00", "10:00", "Asia/Tokyo", "America/Los_Angeles")
        assert result.days == (6,)
        assert (result.start_time, result.end_time) == ("15:00", "17:00")

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "from_tz,to_tz",
        [
            ("America/Los_Angeles", "Asia/Manila"),
            ("Asia/Manila", "America/Los_Angeles"),
            ("Asia/Kolkata", "Pacific/Pago_Pago"),
            ("UTC", "Pacific/Kiritimati"),
        ],
    )
    def test_full_day_stays_full_day_on_same_days(self, from_tz, to_tz):
        result = convert_pattern_between_timezones([1, 3], "00:00", "24:00", from_tz, to_tz)
        assert result.days == (1, 3)
        assert (result.start_time, result.end_time) == ("00:00", "24:00")

    @pytest.mark.unit
    def test_same_timezone_is_identity(self):
        result = convert_pattern_between_timezones([4, 2], "09:00", "12:00", "Asia/Tokyo", "Asia/Tokyo")
        assert result.days == (4, 2)
        assert (result.start_time, result.end_time) == ("09:00", "12:00")

    @pytest.mark.unit
    def test_unknown_timezone_raises_even_for_full_day(self):
        with pytest.raises(InvalidTimezoneException):
            convert_pattern_between_timezones([1], "00:00", "24:00", "UTC", "Not/AZone")


class TestStorageAndDisplay:
    @pytest.mark.unit
    def test_prepare_pattern(self):
        rule_input = RuleInput(
            rule_type=RuleType.AVAILABLE_PATTERN,
            day_of_week=1,
            start_time="07:00",
            end_time="09:00",
        )
        prepared = prepare_rule_for_storage(rule_input, "Asia/Manila")
        assert prepared.day_of_week == 0
        assert prepared.specific_date is None
        assert (prepared.start_time, prepared.end_time) == ("23:00", "01:00")
        assert prepared.crosses_midnight is True
        assert prepared.original_timezone == "Asia/Manila"
        assert prepared.original_day_of_week == 1

    @pytest.mark.unit
    def test_prepare_override(self):
        rule_input = RuleInput(
            rule_type=RuleType.BLOCKED_OVERRIDE,
            specific_date=date(2024, 1, 15),
            start_time="00:00",
            end_time="24:00",
            reason="Holiday",
        )
        prepared = prepare_rule_for_storage(rule_input, "America/Los_Angeles")
        assert prepared.specific_date == date(2024, 1, 15)
        assert prepared.day_of_week is None
        assert (prepared.start_time, prepared.end_time) == ("08:00", "08:00")
        assert prepared.crosses_midnight is True
        assert prepared.original_day_of_week is None
        assert prepared.reason == "Holiday"

    @pytest.mark.unit
    def test_prepare_rejects_unknown_timezone(self):
        rule_input = RuleInput(rule_type=RuleType.AVAILABLE_PATTERN, day_of_week=1, start_time="09:00", end_time="10:00")
        with pytest.raises(InvalidTimezoneException):
            prepare_rule_for_storage(rule_input, "Nowhere/City")

    @pytest.mark.unit
    def test_prepare_rejects_shapeless_rule(self):
        rule_input = RuleInput.model_construct(
            rule_type=RuleType.AVAILABLE_OVERRIDE,
            day_of_week=None,
            specific_date=None,
            start_time="09:00",
            end_time="10:00",
            reason=None,
            source=RuleSource.MANUAL,
        )
        with pytest.raises(InvalidRuleException):
            prepare_rule_for_storage(rule_input, "UTC")

    @pytest.mark.unit
    def test_prepared_rule_displays_as_entered(self):
        rule_input = RuleInput(rule_type=RuleType.AVAILABLE_PATTERN, day_of_week=1, start_time="07:00", end_time="09:00")
        stored = prepare_rule_for_storage(rule_input, "Asia/Manila").to_rule(rule_id="r1", participant_id="a")

        assert convert_rule_for_display(stored, "Asia/Manila") == DisplayRule(1, None, "07:00", "09:00", False)
        assert convert_rule_for_display(stored, "America/Los_Angeles") == DisplayRule(0, None, "15:00", "17:00", False)

    @pytest.mark.unit
    def test_override_display(self, make_rule):
        rule = make_rule(
            RuleType.AVAILABLE_OVERRIDE,
            "23:00",
            "01:00",
            specific_date=date(2024, 1, 14),
            crosses_midnight=True,
        )
        assert convert_rule_for_display(rule, "Asia/Manila") == DisplayRule(None, date(2024, 1, 15), "07:00", "09:00", False)

    @pytest.mark.unit
    def test_malformed_rule_is_shown_unconverted(self, make_rule):
        rule = make_rule(RuleType.AVAILABLE_PATTERN, "09:00", "10:00", day_of_week=None)
        assert convert_rule_for_display(rule, "Asia/Tokyo") == DisplayRule(None, None, "09:00", "10:00", False)


class TestParsedAvailability:
    @pytest.fixture
    def parsed(self):
        return ParsedAvailability(
            patterns=[PatternInput(day_of_week=1, start_time="18:00", end_time="22:00")],
            additions=[OverrideInput(date=date(2024, 1, 20), start_time="10:00", end_time="14:00")],
            exclusions=[ExclusionInput(date=date(2024, 1, 22), reason="Travel")],
            interpretation="Mondays 6-10pm, Saturday the 20th 10-2, not the 22nd",
            mode=EditMode.REPLACE,
        )

    @pytest.mark.unit
    def test_parsed_availability_in_utc(self, parsed):
        prepared = rules_from_parsed_availability(parsed, "UTC")

        assert [p.rule_type for p in prepared] == [
            RuleType.AVAILABLE_PATTERN,
            RuleType.AVAILABLE_OVERRIDE,
            RuleType.BLOCKED_OVERRIDE,
        ]
        assert all(p.source == RuleSource.AI for p in prepared)
        exclusion = prepared[2]
        assert exclusion.specific_date == date(2024, 1, 22)
        assert (exclusion.start_time, exclusion.end_time) == ("00:00", "24:00")
        assert exclusion.crosses_midnight is False
        assert exclusion.reason == "Travel"

    @pytest.mark.unit
    def test_whole_day_exclusion_covers_local_day(self, parsed):
        prepared = rules_from_parsed_availability(parsed, "Asia/Manila")
        exclusion = prepared[2]
        assert exclusion.specific_date == date(2024, 1, 21)
        assert (exclusion.start_time, exclusion.end_time) == ("16:00", "16:00")
        assert create_range(exclusion.start_time, exclusion.end_time, exclusion.crosses_midnight).duration == 1440
