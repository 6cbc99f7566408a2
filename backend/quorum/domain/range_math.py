"""
Range algebra over minute offsets.

A TimeRange is half-open ``[start, end)`` in minutes from the midnight of a
reference date. Overnight ranges are linear, not wrapped: ``end_minutes`` may
run past 1440 (up to 2880). A range with ``end <= start`` is a legal
construction artifact of timezone conversion and counts as zero coverage
everywhere in this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from ..core.constants import END_OF_DAY, MIDNIGHT, MINUTES_PER_DAY, SLOT_DURATION_MINUTES
from ..utils.time_utils import minutes_to_time, time_to_minutes


@dataclass(frozen=True)
class TimeRange:
    start_minutes: int
    end_minutes: int

    @property
    def duration(self) -> int:
        return max(0, self.end_minutes - self.start_minutes)

    @property
    def is_empty(self) -> bool:
        return self.end_minutes <= self.start_minutes


@dataclass(frozen=True)
class Slot:
    """A 30-minute slot marker: the slot starting at ``time`` on ``date``."""

    date: date
    time: str


def create_range(
    start_time: str,
    end_time: str,
    crosses_midnight: Optional[bool] = None,
) -> TimeRange:
    """
    Build a TimeRange from HH:MM strings.

    ``crosses_midnight`` is authoritative when given:
      - True: the range is overnight; an end at or before the start moves to
        the next day (equal endpoints give a full 24 hours).
      - False: never add a day, even if the clock values look inverted. The
        result may have zero or negative length.
      - None: legacy rows; an end strictly before the start is overnight and
        00:00-00:00 is a full day.

    "24:00" as an end is always exactly 1440, whatever the flag says.
    """
    start_minutes = time_to_minutes(start_time)
    end_minutes = time_to_minutes(end_time)

    if end_time == END_OF_DAY:
        return TimeRange(start_minutes, MINUTES_PER_DAY)

    if crosses_midnight is True:
        if end_minutes <= start_minutes:
            end_minutes += MINUTES_PER_DAY
    elif crosses_midnight is None:
        if end_minutes < start_minutes:
            end_minutes += MINUTES_PER_DAY
        elif start_time == MIDNIGHT and end_time == MIDNIGHT:
            end_minutes = MINUTES_PER_DAY

    return TimeRange(start_minutes, end_minutes)


def ranges_overlap(a: TimeRange, b: TimeRange) -> bool:
    """Touching endpoints do not overlap."""
    return a.start_minutes < b.end_minutes and b.start_minutes < a.end_minutes


def ranges_adjacent(a: TimeRange, b: TimeRange) -> bool:
    return a.end_minutes == b.start_minutes or b.end_minutes == a.start_minutes


def merge_two(a: TimeRange, b: TimeRange) -> Optional[TimeRange]:
    """Union of two ranges if they overlap or touch, else None."""
    if not ranges_overlap(a, b) and not ranges_adjacent(a, b):
        return None
    return TimeRange(
        min(a.start_minutes, b.start_minutes),
        max(a.end_minutes, b.end_minutes),
    )


def merge_ranges(ranges: Iterable[TimeRange]) -> List[TimeRange]:
    """
    Collapse ranges into a minimal, sorted, non-overlapping list.

    Empty ranges are dropped; ranges separated by any gap stay separate.
    """
    ordered = sorted(
        (r for r in ranges if not r.is_empty),
        key=lambda r: (r.start_minutes, r.end_minutes),
    )
    if not ordered:
        return []

    merged: List[TimeRange] = [ordered[0]]
    for current in ordered[1:]:
        combined = merge_two(merged[-1], current)
        if combined is not None:
            merged[-1] = combined
        else:
            merged.append(current)
    return merged


def subtract_one(a: TimeRange, b: TimeRange) -> List[TimeRange]:
    """Remove ``b`` from ``a``; yields zero, one or two ranges."""
    if a.is_empty:
        return []
    if b.is_empty or not ranges_overlap(a, b):
        return [a]

    result: List[TimeRange] = []
    if a.start_minutes < b.start_minutes:
        result.append(TimeRange(a.start_minutes, b.start_minutes))
    if a.end_minutes > b.end_minutes:
        result.append(TimeRange(b.end_minutes, a.end_minutes))
    return result


def subtract_ranges(base: Iterable[TimeRange], to_subtract: Iterable[TimeRange]) -> List[TimeRange]:
    """
    Remove every subtrahend from every base range.

    Only carves holes: gaps between base ranges are never filled.
    """
    result = merge_ranges(base)
    for sub in to_subtract:
        if not result:
            break
        remaining: List[TimeRange] = []
        for current in result:
            remaining.extend(subtract_one(current, sub))
        result = remaining
    return merge_ranges(result)


def add_ranges(a: Iterable[TimeRange], b: Iterable[TimeRange]) -> List[TimeRange]:
    return merge_ranges([*a, *b])


def intersect_two(a: TimeRange, b: TimeRange) -> Optional[TimeRange]:
    if not ranges_overlap(a, b):
        return None
    return TimeRange(
        max(a.start_minutes, b.start_minutes),
        min(a.end_minutes, b.end_minutes),
    )


def intersect_ranges(a: Iterable[TimeRange], b: Iterable[TimeRange]) -> List[TimeRange]:
    """All pairwise intersections between two lists, merged."""
    right = list(b)
    result: List[TimeRange] = []
    for range_a in a:
        for range_b in right:
            overlap = intersect_two(range_a, range_b)
            if overlap is not None:
                result.append(overlap)
    return merge_ranges(result)


def total_minutes(ranges: Iterable[TimeRange]) -> int:
    """Covered minutes; overlapping input is counted once."""
    return sum(r.duration for r in merge_ranges(ranges))


def minute_in_ranges(minute: int, ranges: Iterable[TimeRange]) -> bool:
    return any(r.start_minutes <= minute < r.end_minutes for r in ranges)


def clamp_to_window(
    ranges: Iterable[TimeRange],
    window_start: int,
    window_end: int,
) -> List[TimeRange]:
    """Clip ranges to ``[window_start, window_end)``."""
    return intersect_ranges(ranges, [TimeRange(window_start, window_end)])


def ranges_to_slots(ranges: Iterable[TimeRange], on_date: date) -> List[Slot]:
    """
    Expand ranges into 30-minute slot markers.

    Each full 1440 minutes past the start of ``on_date`` moves the slot to the
    next calendar date, so a range ending at 1560 emits slots on ``on_date``
    and on the day after. The slot at ``end_minutes`` itself is excluded.
    """
    slots: List[Slot] = []
    for current in ranges:
        for absolute in range(current.start_minutes, current.end_minutes, SLOT_DURATION_MINUTES):
            day_offset = absolute // MINUTES_PER_DAY
            slots.append(Slot(on_date + timedelta(days=day_offset), minutes_to_time(absolute)))
    return slots


def slots_to_ranges(slots: Iterable[Slot]) -> Dict[date, List[TimeRange]]:
    """
    Group slot markers per date and fold consecutive slots into ranges.

    A missing slot, even a single one, starts a new range.
    """
    by_date: Dict[date, List[int]] = {}
    for slot in slots:
        by_date.setdefault(slot.date, []).append(time_to_minutes(slot.time))

    result: Dict[date, List[TimeRange]] = {}
    for slot_date, minutes_list in by_date.items():
        ordered = sorted(set(minutes_list))
        ranges: List[TimeRange] = []
        range_start = ordered[0]
        range_end = range_start + SLOT_DURATION_MINUTES
        for minutes in ordered[1:]:
            if minutes == range_end:
                range_end = minutes + SLOT_DURATION_MINUTES
                continue
            ranges.append(TimeRange(range_start, range_end))
            range_start = minutes
            range_end = minutes + SLOT_DURATION_MINUTES
        ranges.append(TimeRange(range_start, range_end))
        result[slot_date] = ranges
    return result
