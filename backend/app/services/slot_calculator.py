"""
Free-slot computation within business hours.

Pure functions: occupied intervals in, ordered free gaps out. Times are
handled as minutes since midnight, like the rest of the scheduling code.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from app.models.schedule import BusinessCalendarConfig, ScheduleSlot
from app.utils.datetime_utils import round_down, round_up


@dataclass
class TimeInterval:
    start_minutes: int
    end_minutes: int

    @property
    def duration(self) -> int:
        return self.end_minutes - self.start_minutes


def _to_intervals(slots: Iterable[ScheduleSlot]) -> list[TimeInterval]:
    return [
        TimeInterval(slot.start_minutes, slot.end_minutes)
        for slot in slots
        if slot.end_minutes > slot.start_minutes
    ]


def merge_intervals(intervals: list[TimeInterval]) -> list[TimeInterval]:
    """Sort by start and coalesce overlapping or adjacent intervals."""
    merged: list[TimeInterval] = []
    for interval in sorted(intervals, key=lambda item: (item.start_minutes, item.end_minutes)):
        if merged and interval.start_minutes <= merged[-1].end_minutes:
            merged[-1].end_minutes = max(merged[-1].end_minutes, interval.end_minutes)
            continue
        merged.append(TimeInterval(interval.start_minutes, interval.end_minutes))
    return merged


def _clip_to_business_hours(
    intervals: list[TimeInterval],
    config: BusinessCalendarConfig,
) -> list[TimeInterval]:
    clipped: list[TimeInterval] = []
    for interval in intervals:
        start = max(interval.start_minutes, config.start_minutes)
        end = min(interval.end_minutes, config.end_minutes)
        if end > start:
            clipped.append(TimeInterval(start, end))
    return clipped


def free_intervals(
    occupied: Iterable[ScheduleSlot],
    config: BusinessCalendarConfig,
) -> list[TimeInterval]:
    """Quantized gaps of the business window not covered by ``occupied``."""
    step = config.min_granularity_minutes
    busy = _clip_to_business_hours(merge_intervals(_to_intervals(occupied)), config)

    gaps: list[TimeInterval] = []
    cursor = config.start_minutes
    for block in busy:
        if block.start_minutes > cursor:
            gaps.append(TimeInterval(cursor, block.start_minutes))
        cursor = max(cursor, block.end_minutes)
    if cursor < config.end_minutes:
        gaps.append(TimeInterval(cursor, config.end_minutes))

    quantized: list[TimeInterval] = []
    for gap in gaps:
        start = round_up(gap.start_minutes, step)
        end = round_down(gap.end_minutes, step)
        if end - start >= step:
            quantized.append(TimeInterval(start, end))
    return quantized


def free_slots(
    day: date,
    assignee_id: str,
    occupied: Iterable[ScheduleSlot],
    config: BusinessCalendarConfig,
) -> list[ScheduleSlot]:
    """
    Compute the free slots of an assignee's day.

    Args:
        day: Day being planned
        assignee_id: Assignee the occupancy belongs to
        occupied: Events, pinned tasks and claimed blocks on that day
        config: Business calendar

    Returns:
        Gaps inside [business_start, business_end), ascending by start time.
        Gaps narrower than the granularity are dropped.
    """
    return [
        ScheduleSlot.from_minutes(day, gap.start_minutes, gap.end_minutes)
        for gap in free_intervals(occupied, config)
    ]


def occupied_minutes(occupied: Iterable[ScheduleSlot], config: BusinessCalendarConfig) -> int:
    """Minutes of the merged occupied set that fall inside business hours."""
    busy = _clip_to_business_hours(merge_intervals(_to_intervals(occupied)), config)
    return sum(interval.duration for interval in busy)
