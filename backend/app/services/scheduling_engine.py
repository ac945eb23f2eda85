"""
Scheduling engine for deadline-anchored task placement.

Places a single task into the assignee's business-hours calendar, filling
from the top of the due date and cascading overflow backward one day at a
time.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, time, timedelta
from typing import Mapping, Optional, Sequence
from uuid import UUID

from app.core.exceptions import NotFoundError, SchedulingFailureError
from app.core.logger import setup_logger
from app.interfaces.schedule_gateway import IScheduleGateway
from app.models.enums import TaskStatus, UnscheduledReason
from app.models.schedule import (
    BusinessCalendarConfig,
    OccupiedInterval,
    PlacementPlan,
    ScheduleResult,
    ScheduleSegment,
    ScheduleSlot,
    ScheduleWrite,
)
from app.models.task import Task
from app.services.concurrency_guard import ConcurrencyGuard
from app.services.slot_calculator import (
    TimeInterval,
    free_intervals,
    free_slots,
    occupied_minutes,
)
from app.utils.datetime_utils import minutes_to_time, round_down, round_up

logger = setup_logger(__name__)


def _segment(day: date, start_minutes: int, end_minutes: int) -> ScheduleSegment:
    return ScheduleSegment(
        date=day,
        start_time=minutes_to_time(start_minutes),
        end_time=minutes_to_time(end_minutes),
        minutes=end_minutes - start_minutes,
    )


def unschedulable_reason(task: Task) -> Optional[UnscheduledReason]:
    """Why the engine leaves a task without a position, if it does."""
    if task.status == TaskStatus.DONE:
        return UnscheduledReason.COMPLETED
    if task.due_date is None:
        return UnscheduledReason.MISSING_DUE_DATE
    if task.estimated_minutes is None:
        return UnscheduledReason.MISSING_ESTIMATE
    return None


def cascade_window(due_date: date, config: BusinessCalendarConfig) -> list[date]:
    """Every day a placement for ``due_date`` may touch, earliest first."""
    return [
        due_date - timedelta(days=offset)
        for offset in range(config.max_cascade_days, -1, -1)
    ]


def plan_placement(
    task: Task,
    occupancy: Mapping[date, Sequence[ScheduleSlot]],
    config: BusinessCalendarConfig,
) -> PlacementPlan:
    """
    Compute where a task goes, without touching persistence.

    On the due date the first slot large enough wins (fill from top). When
    the work does not fit, the largest free slot is consumed from its end and
    the rest moves to the previous day, where it is again packed against the
    end of the day. Each day contributes at most one block and never more
    than its remaining capacity.

    Args:
        task: Task with due date and estimate set
        occupancy: Occupied intervals per date (events, pinned and claimed blocks)
        config: Business calendar

    Returns:
        PlacementPlan whose canonical position is the earliest block of the chain

    Raises:
        SchedulingFailureError: If max_cascade_days is exhausted
    """
    step = config.min_granularity_minutes
    reserved = round_up(task.remaining_minutes(step), step)
    remaining = reserved
    cursor = task.due_date
    depth = 0
    segments: list[ScheduleSegment] = []

    while True:
        day_occupied = occupancy.get(cursor, [])
        budget = round_down(
            max(0, config.daily_capacity_minutes - occupied_minutes(day_occupied, config)),
            step,
        )
        gaps = free_intervals(day_occupied, config) if budget > 0 else []

        if gaps:
            chosen: Optional[TimeInterval] = None
            if remaining <= budget:
                fitting = [gap for gap in gaps if gap.duration >= remaining]
                if fitting:
                    # Due date fills from the top; earlier days pack toward the deadline
                    chosen = fitting[0] if depth == 0 else fitting[-1]
            if chosen is not None:
                if depth == 0:
                    segments.append(_segment(cursor, chosen.start_minutes, chosen.start_minutes + remaining))
                else:
                    segments.append(_segment(cursor, chosen.end_minutes - remaining, chosen.end_minutes))
                remaining = 0
            else:
                largest = max(gaps, key=lambda gap: (gap.duration, gap.start_minutes))
                take = min(largest.duration, budget, remaining)
                segments.append(_segment(cursor, largest.end_minutes - take, largest.end_minutes))
                remaining -= take
                logger.debug(
                    f"Task {task.id}: {take} min on {cursor.isoformat()}, {remaining} min left"
                )

        if remaining == 0:
            break

        depth += 1
        if depth > config.max_cascade_days:
            raise SchedulingFailureError(task.id, remaining, depth, cursor)
        cursor -= timedelta(days=1)

    segments.sort(key=lambda segment: (segment.date, segment.start_time))
    earliest = segments[0]
    return PlacementPlan(
        scheduled_date=earliest.date,
        scheduled_start_time=earliest.start_time,
        segments=segments,
        reserved_minutes=reserved,
        cascade_depth=depth,
    )


def group_by_date(intervals: Sequence[ScheduleSlot]) -> dict[date, list[ScheduleSlot]]:
    grouped: dict[date, list[ScheduleSlot]] = defaultdict(list)
    for interval in intervals:
        grouped[interval.date].append(interval)
    return grouped


def build_result(task: Task, version: int, plan: Optional[PlacementPlan] = None) -> ScheduleResult:
    """Result for a task that holds a position (planned now or stored)."""
    scheduled_date = plan.scheduled_date if plan else task.scheduled_date
    start_time: Optional[time] = plan.scheduled_start_time if plan else task.scheduled_start_time
    segments = plan.segments if plan else task.segments
    end_time = next(
        (
            segment.end_time
            for segment in segments
            if segment.date == scheduled_date and segment.start_time == start_time
        ),
        None,
    )
    return ScheduleResult(
        task_id=task.id,
        scheduled=scheduled_date is not None,
        scheduled_date=scheduled_date,
        scheduled_start_time=start_time,
        scheduled_end_time=end_time,
        pinned=task.pinned,
        version=version,
        cascade_depth=plan.cascade_depth if plan else 0,
        segments=segments,
    )


class SchedulingEngine:
    """
    Service for deadline-anchored task placement.

    Provides:
    - scheduleTask: read occupancy, plan, version-checked write
    - Available-slot lookup for drag previews
    - Clearing a task's placement
    """

    def __init__(
        self,
        gateway: IScheduleGateway,
        guard: ConcurrencyGuard,
        config: BusinessCalendarConfig,
    ):
        """
        Initialize scheduling engine.

        Args:
            gateway: Persistence gateway (occupancy reads, CAS writes)
            guard: Shared lock registry and retry policy
            config: Business calendar for this call
        """
        self.gateway = gateway
        self.guard = guard
        self.config = config

    async def schedule_task(self, task_id: UUID) -> ScheduleResult:
        """
        Place a task, retrying the whole call on version conflicts.

        Returns:
            ScheduleResult with the canonical position, or ``scheduled=False``
            and a reason for tasks the engine does not place

        Raises:
            NotFoundError: If the task does not exist
            SchedulingFailureError: If the cascade runs out of days
            RetryExhaustedError: If conflicts persist through every retry
        """
        return await self.guard.run(lambda: self._schedule_once(task_id), task_id)

    async def _schedule_once(self, task_id: UUID) -> ScheduleResult:
        task = await self._get_task(task_id)

        if task.pinned:
            return build_result(task, task.version)

        reason = unschedulable_reason(task)
        if reason is not None:
            version = task.version
            if task.scheduled_date is not None or task.segments:
                version = await self.gateway.write_schedule(task.id, task.version, ScheduleWrite())
                logger.info(f"Cleared placement of task {task.id} ({reason.value})")
            return ScheduleResult(task_id=task.id, scheduled=False, version=version, reason=reason)

        window = cascade_window(task.due_date, self.config)
        async with self.guard.hold(task.assignee_id, window):
            occupancy = await self._occupancy(task.assignee_id, window[0], window[-1], task.id)
            plan = plan_placement(task, occupancy, self.config)

            if (
                plan.scheduled_date == task.scheduled_date
                and plan.scheduled_start_time == task.scheduled_start_time
                and plan.segments == task.segments
            ):
                return build_result(task, task.version, plan)

            version = await self.gateway.write_schedule(
                task.id,
                task.version,
                ScheduleWrite(
                    scheduled_date=plan.scheduled_date,
                    scheduled_start_time=plan.scheduled_start_time,
                    pinned=False,
                    segments=plan.segments,
                ),
            )

        if plan.cascade_depth:
            logger.info(
                f"Task {task.id} cascaded {plan.cascade_depth} day(s): "
                f"{plan.scheduled_date.isoformat()} {plan.scheduled_start_time.strftime('%H:%M')} "
                f"(due {task.due_date.isoformat()}, {plan.reserved_minutes} min)"
            )
        else:
            logger.info(
                f"Task {task.id} placed at {plan.scheduled_date.isoformat()} "
                f"{plan.scheduled_start_time.strftime('%H:%M')} ({plan.reserved_minutes} min)"
            )
        return build_result(task, version, plan)

    async def clear_schedule(self, task_id: UUID) -> int:
        """Drop a task's position and claimed blocks. Returns the new version."""

        async def clear() -> int:
            task = await self._get_task(task_id)
            if task.scheduled_date is None and not task.segments and not task.pinned:
                return task.version
            return await self.gateway.write_schedule(task.id, task.version, ScheduleWrite())

        return await self.guard.run(clear, task_id)

    async def available_slots(
        self,
        day: date,
        duration_minutes: int,
        assignee_id: str,
        exclude_task_id: Optional[UUID] = None,
    ) -> list[ScheduleSlot]:
        """
        Free slots on ``day`` long enough for ``duration_minutes``.

        Blocks already claimed by auto-scheduled tasks count as occupied.
        """
        occupancy = await self._occupancy(assignee_id, day, day, exclude_task_id)
        return [
            slot
            for slot in free_slots(day, assignee_id, occupancy.get(day, []), self.config)
            if slot.duration_minutes >= duration_minutes
        ]

    async def _get_task(self, task_id: UUID) -> Task:
        task = await self.gateway.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    async def _occupancy(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
        exclude_task_id: Optional[UUID],
    ) -> dict[date, list[ScheduleSlot]]:
        fixed: list[OccupiedInterval] = await self.gateway.get_events_and_pinned_tasks(
            assignee_id, start_date, end_date, exclude_task_id=exclude_task_id
        )
        claimed = await self.gateway.get_claimed_segments(
            assignee_id, start_date, end_date, exclude_task_id=exclude_task_id
        )
        return group_by_date([*fixed, *claimed])
