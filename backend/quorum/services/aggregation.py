"""
Multi-participant aggregation over effective availability.

Each participant's heatmap is computed independently and the results are
combined with ``merge_heatmaps``, an associative merge, so the work can be
split across participants freely.

All dates and times are UTC.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from functools import reduce
import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..core.config import settings
from ..core.constants import END_OF_DAY, HEATMAP_KEY_SEPARATOR, MIDNIGHT, MINUTES_PER_DAY, SLOT_DURATION_MINUTES
from ..core.exceptions import ValidationException
from ..core.timezone_utils import get_date_range
from ..domain.range_math import Slot, ranges_to_slots
from ..schemas.availability_rule import AvailabilityRule, DateRange
from ..utils.time_utils import minutes_to_time, time_to_minutes
from .effective_availability import compute_effective_for_date

logger = logging.getLogger(__name__)

ParticipantRules = Mapping[str, Iterable[AvailabilityRule]]


@dataclass(frozen=True)
class HeatmapEntry:
    count: int
    participant_ids: Tuple[str, ...]


Heatmap = Dict[str, HeatmapEntry]


@dataclass(frozen=True)
class OverlapSlot:
    date: date
    time: str
    participant_ids: Tuple[str, ...]


@dataclass(frozen=True)
class SessionSlot:
    """A candidate session; ``end_date`` differs from ``date`` when it runs past midnight."""

    date: date
    start_time: str
    end_time: str
    end_date: date
    participant_ids: Tuple[str, ...]


@dataclass(frozen=True)
class HeatmapCell:
    date: date
    time: str
    available_count: int
    available_participant_ids: Tuple[str, ...]
    total_participants: int

    @property
    def ratio(self) -> float:
        if self.total_participants == 0:
            return 0.0
        return self.available_count / self.total_participants


@dataclass(frozen=True)
class OverlapRange:
    """Contiguous slots that share the same set of available participants."""

    date: date
    start_time: str
    end_date: date
    end_time: str
    available_count: int
    participant_ids: Tuple[str, ...]
    total_participants: int


@dataclass(frozen=True)
class OverlapSummary:
    perfect_slots: List[OverlapRange]
    best_slots: List[OverlapRange]


@dataclass(frozen=True)
class AvailabilityBounds:
    earliest: Optional[str]
    latest: Optional[str]

    @property
    def has_availability(self) -> bool:
        return self.earliest is not None


def heatmap_key(slot_date: date, time: str) -> str:
    return f"{slot_date.isoformat()}{HEATMAP_KEY_SEPARATOR}{time}"


def parse_heatmap_key(key: str) -> Slot:
    """Split a ``YYYY-MM-DD|HH:MM`` key back into a slot."""
    date_part, separator, time_part = key.partition(HEATMAP_KEY_SEPARATOR)
    if not separator:
        raise ValidationException(
            f"Invalid heatmap key {key!r}: expected YYYY-MM-DD|HH:MM",
            code="INVALID_HEATMAP_KEY",
            details={"key": key},
        )
    try:
        slot_date = date.fromisoformat(date_part)
    except ValueError as exc:
        raise ValidationException(
            f"Invalid heatmap key {key!r}: bad date",
            code="INVALID_HEATMAP_KEY",
            details={"key": key},
        ) from exc
    time_to_minutes(time_part)
    return Slot(slot_date, time_part)


def _absolute_minutes(slot_date: date, time: str) -> int:
    return slot_date.toordinal() * MINUTES_PER_DAY + time_to_minutes(time)


def _from_absolute_minutes(minutes: int) -> Tuple[date, str]:
    return date.fromordinal(minutes // MINUTES_PER_DAY), minutes_to_time(minutes)


def participant_heatmap(participant_id: str, rules: Iterable[AvailabilityRule], date_range: DateRange) -> Heatmap:
    """
    Slots one participant is available for, each counted once.

    The day before the range is computed too, so an overnight range starting
    there contributes the slots that fall inside the range.
    """
    rule_list = list(rules)
    keys: Dict[str, None] = {}
    for utc_date in get_date_range(date_range.start_date - timedelta(days=1), date_range.end_date):
        effective = compute_effective_for_date(rule_list, utc_date)
        for slot in ranges_to_slots(effective.available_ranges, utc_date):
            if date_range.start_date <= slot.date <= date_range.end_date:
                keys[heatmap_key(slot.date, slot.time)] = None
    return {key: HeatmapEntry(1, (participant_id,)) for key in keys}


def merge_heatmaps(left: Heatmap, right: Heatmap) -> Heatmap:
    """Combine two heatmaps into a new one; neither input is modified."""
    merged: Heatmap = dict(left)
    for key, entry in right.items():
        existing = merged.get(key)
        if existing is None:
            merged[key] = entry
        else:
            merged[key] = HeatmapEntry(
                existing.count + entry.count,
                existing.participant_ids + entry.participant_ids,
            )
    return merged


def compute_heatmap(participant_rules: ParticipantRules, date_range: DateRange) -> Heatmap:
    """Per-slot count and ids of available participants, keyed ``YYYY-MM-DD|HH:MM``."""
    heatmap = reduce(
        merge_heatmaps,
        (participant_heatmap(pid, rules, date_range) for pid, rules in participant_rules.items()),
        {},
    )
    logger.debug(
        "Heatmap for %d participants over %d days: %d slots",
        len(participant_rules),
        date_range.day_count,
        len(heatmap),
    )
    return heatmap


def _resolve_threshold(participant_rules: ParticipantRules, min_participants: Optional[int]) -> int:
    return len(participant_rules) if min_participants is None else min_participants


def find_overlapping_slots(
    participant_rules: ParticipantRules,
    date_range: DateRange,
    min_participants: Optional[int] = None,
) -> List[OverlapSlot]:
    """
    Slots with at least ``min_participants`` available (everyone by default),
    sorted by date then time.
    """
    threshold = _resolve_threshold(participant_rules, min_participants)
    heatmap = compute_heatmap(participant_rules, date_range)

    result: List[OverlapSlot] = []
    for key, entry in heatmap.items():
        if entry.count >= threshold:
            slot = parse_heatmap_key(key)
            result.append(OverlapSlot(slot.date, slot.time, entry.participant_ids))

    result.sort(key=lambda s: (s.date, s.time))
    return result


def find_session_slots(
    participant_rules: ParticipantRules,
    date_range: DateRange,
    session_minutes: int,
    min_participants: Optional[int] = None,
) -> List[SessionSlot]:
    """
    Every start position where a session of ``session_minutes`` fits.

    A window is ``ceil(session_minutes / 30)`` consecutive overlapping slots;
    a single missing slot breaks it. Windows may cross midnight. The window's
    participants are those present in every one of its slots. Windows slide
    one slot at a time, so overlapping candidates are all returned.
    """
    if session_minutes <= 0:
        raise ValidationException(
            f"Session length must be positive, got {session_minutes}",
            code="INVALID_SESSION_LENGTH",
            details={"session_minutes": session_minutes},
        )

    threshold = _resolve_threshold(participant_rules, min_participants)
    slots_needed = math.ceil(session_minutes / SLOT_DURATION_MINUTES)
    overlapping = find_overlapping_slots(participant_rules, date_range, min_participants)
    absolute = [_absolute_minutes(slot.date, slot.time) for slot in overlapping]

    sessions: List[SessionSlot] = []
    for i in range(len(overlapping) - slots_needed + 1):
        window = range(i, i + slots_needed)
        if any(absolute[j + 1] - absolute[j] != SLOT_DURATION_MINUTES for j in window[:-1]):
            continue

        present = [set(overlapping[j].participant_ids) for j in window]
        common = tuple(pid for pid in overlapping[i].participant_ids if all(pid in ids for ids in present))
        if len(common) < threshold:
            continue

        end_date, end_time = _from_absolute_minutes(absolute[window[-1]] + SLOT_DURATION_MINUTES)
        sessions.append(
            SessionSlot(
                date=overlapping[i].date,
                start_time=overlapping[i].time,
                end_time=end_time,
                end_date=end_date,
                participant_ids=common,
            )
        )
    return sessions


def build_heatmap_cells(heatmap: Heatmap, total_participants: int) -> List[HeatmapCell]:
    """Flatten a heatmap into cells sorted by date then time."""
    cells = []
    for key, entry in heatmap.items():
        slot = parse_heatmap_key(key)
        cells.append(HeatmapCell(slot.date, slot.time, entry.count, entry.participant_ids, total_participants))
    cells.sort(key=lambda c: (c.date, c.time))
    return cells


def _merge_cells(cells: Sequence[HeatmapCell]) -> List[OverlapRange]:
    """Fold neighbouring cells with the same participants into ranges."""
    merged: List[OverlapRange] = []
    run_start: Optional[HeatmapCell] = None
    run_end = 0
    run_ids: frozenset = frozenset()

    def close_run() -> None:
        if run_start is None:
            return
        end_date, end_time = _from_absolute_minutes(run_end)
        # A run ending exactly at midnight ends at 24:00 on its own date
        if end_time == MIDNIGHT and end_date == run_start.date + timedelta(days=1):
            end_date, end_time = run_start.date, END_OF_DAY
        merged.append(
            OverlapRange(
                date=run_start.date,
                start_time=run_start.time,
                end_date=end_date,
                end_time=end_time,
                available_count=run_start.available_count,
                participant_ids=tuple(sorted(run_start.available_participant_ids)),
                total_participants=run_start.total_participants,
            )
        )

    for cell in cells:
        start = _absolute_minutes(cell.date, cell.time)
        ids = frozenset(cell.available_participant_ids)
        if run_start is not None and start == run_end and ids == run_ids:
            run_end = start + SLOT_DURATION_MINUTES
            continue
        close_run()
        run_start, run_end, run_ids = cell, start + SLOT_DURATION_MINUTES, ids
    close_run()
    return merged


def summarize_overlap(
    participant_rules: ParticipantRules,
    date_range: DateRange,
    limit: Optional[int] = None,
) -> OverlapSummary:
    """
    Perfect and best meeting windows.

    Perfect windows have everyone available. Best windows have at least half
    the participants but not all, ordered by how many are available. Both
    lists are capped at ``limit`` (``settings.best_slots_limit`` by default).
    """
    total = len(participant_rules)
    if total == 0:
        return OverlapSummary(perfect_slots=[], best_slots=[])
    cap = settings.best_slots_limit if limit is None else limit

    cells = build_heatmap_cells(compute_heatmap(participant_rules, date_range), total)

    perfect = _merge_cells([c for c in cells if c.available_count == total])

    min_for_best = math.ceil(total / 2)
    best_cells = [c for c in cells if min_for_best <= c.available_count < total]
    best_cells.sort(key=lambda c: (-c.available_count, c.date, c.time))
    best = _merge_cells(best_cells)

    return OverlapSummary(perfect_slots=perfect[:cap], best_slots=best[:cap])


def get_availability_bounds(rules: Iterable[AvailabilityRule], date_range: DateRange) -> AvailabilityBounds:
    """
    Earliest slot start and latest slot end, by clock time, across a range.

    Used to tell other participants when someone is usually around; the
    latest bound of a slot ending at midnight is "24:00".
    """
    rule_list = list(rules)
    minutes: List[int] = []
    for utc_date in get_date_range(date_range.start_date, date_range.end_date):
        effective = compute_effective_for_date(rule_list, utc_date)
        minutes.extend(time_to_minutes(slot.time) for slot in ranges_to_slots(effective.available_ranges, utc_date))

    if not minutes:
        return AvailabilityBounds(earliest=None, latest=None)

    latest_end = max(minutes) + SLOT_DURATION_MINUTES
    return AvailabilityBounds(
        earliest=minutes_to_time(min(minutes)),
        latest=END_OF_DAY if latest_end == MINUTES_PER_DAY else minutes_to_time(latest_end),
    )
