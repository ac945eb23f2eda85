"""
Interval-overlap checks shared by the engine and manual (drag) placement.
"""

from __future__ import annotations

from datetime import date, time
from typing import Iterable, Optional, TypeVar
from uuid import UUID

from app.core.logger import setup_logger
from app.interfaces.schedule_gateway import IScheduleGateway
from app.models.schedule import (
    BusinessCalendarConfig,
    OccupiedInterval,
    PlacementValidation,
    ScheduleSlot,
)
from app.utils.datetime_utils import time_to_minutes

logger = setup_logger(__name__)

SlotT = TypeVar("SlotT", bound=ScheduleSlot)

REASON_OVERLAP = "overlap"
REASON_AFTER_DUE_DATE = "after_due_date"
REASON_OUTSIDE_BUSINESS_HOURS = "outside_business_hours"


def overlaps(a: ScheduleSlot, b: ScheduleSlot) -> bool:
    """Half-open overlap: touching boundaries (end == start) do not conflict."""
    return (
        a.date == b.date
        and a.start_minutes < b.end_minutes
        and b.start_minutes < a.end_minutes
    )


def find_conflicts(candidate: ScheduleSlot, intervals: Iterable[SlotT]) -> list[SlotT]:
    """Return every interval overlapping the candidate."""
    return [interval for interval in intervals if overlaps(candidate, interval)]


def placement_block(day: date, start_time: time, duration_minutes: int) -> ScheduleSlot:
    """Block a manual placement occupies: the full duration from ``start_time``."""
    start = time_to_minutes(start_time)
    return ScheduleSlot.from_minutes(day, start, start + duration_minutes)


class ConflictDetector:
    """Occupancy lookups and placement validation for one business calendar."""

    def __init__(self, gateway: IScheduleGateway, config: BusinessCalendarConfig):
        self.gateway = gateway
        self.config = config

    async def occupied(
        self,
        day: date,
        assignee_id: str,
        exclude_task_id: Optional[UUID] = None,
    ) -> list[OccupiedInterval]:
        """Events and pinned tasks of the assignee on ``day``, sorted by start."""
        return await self.gateway.get_events_and_pinned_tasks(
            assignee_id, day, day, exclude_task_id=exclude_task_id
        )

    async def validate_placement(
        self,
        day: date,
        start_time: time,
        duration_minutes: int,
        assignee_id: str,
        exclude_task_id: Optional[UUID] = None,
        due_date: Optional[date] = None,
    ) -> PlacementValidation:
        """
        Check a candidate placement.

        Args:
            day: Target date
            start_time: Target start time
            duration_minutes: Length of the block
            assignee_id: Assignee whose calendar is checked
            exclude_task_id: Task being placed (its own block is ignored)
            due_date: Deadline; the target date may not be later

        Returns:
            PlacementValidation with the conflicting intervals, if any
        """
        if due_date is not None and day > due_date:
            return PlacementValidation(valid=False, reason=REASON_AFTER_DUE_DATE)

        start = time_to_minutes(start_time)
        end = start + duration_minutes
        if start < self.config.start_minutes or end > self.config.end_minutes:
            return PlacementValidation(valid=False, reason=REASON_OUTSIDE_BUSINESS_HOURS)

        candidate = placement_block(day, start_time, duration_minutes)
        conflicts = find_conflicts(
            candidate, await self.occupied(day, assignee_id, exclude_task_id)
        )
        if conflicts:
            logger.info(
                f"Placement {day.isoformat()} {start_time.strftime('%H:%M')} "
                f"for {assignee_id} conflicts with {len(conflicts)} interval(s)"
            )
            return PlacementValidation(valid=False, conflicts=conflicts, reason=REASON_OVERLAP)
        return PlacementValidation(valid=True)
