"""
Re-invocation of the scheduling engine after task, event and drag changes.

Only tasks touched by a change are re-planned; there is no global recompute.
"""

from __future__ import annotations

from datetime import date, time
from typing import Awaitable, Callable, Optional
from uuid import UUID

from app.core.exceptions import InvalidPlacementError, NotFoundError, SchedulingFailureError
from app.core.logger import setup_logger
from app.models.enums import TaskStatus, UnscheduledReason
from app.models.event import Event
from app.models.schedule import (
    RescheduleSummary,
    ScheduleResult,
    ScheduleSegment,
    ScheduleSlot,
    ScheduleWrite,
    UnscheduledTask,
)
from app.models.task import Task
from app.services.conflict_detector import ConflictDetector, find_conflicts, placement_block
from app.services.scheduling_engine import SchedulingEngine
from app.utils.datetime_utils import round_up, time_to_minutes

logger = setup_logger(__name__)

# Changes to these fields move a task's placement
SCHEDULING_FIELDS = ("due_date", "estimated_minutes", "logged_minutes", "status", "assignee_id")


def _event_slot(event: Event) -> ScheduleSlot:
    return ScheduleSlot.from_minutes(
        event.date, time_to_minutes(event.start_time), time_to_minutes(event.end_time)
    )


class ScheduleCoordinator:
    """Decides which tasks to (re)schedule after a mutation and applies drag placements."""

    def __init__(self, engine: SchedulingEngine, detector: ConflictDetector):
        self.engine = engine
        self.detector = detector

    @property
    def config(self):
        return self.engine.config

    async def reschedule(self, task_id: UUID) -> ScheduleResult:
        """
        Run the engine for a task as a side effect of another mutation.

        A SchedulingFailureError is logged and the task is left unscheduled
        instead of failing the triggering request.
        """
        try:
            return await self.engine.schedule_task(task_id)
        except SchedulingFailureError as e:
            logger.warning(f"Leaving task {task_id} unscheduled: {e.message}")
            version = await self.engine.clear_schedule(task_id)
            return ScheduleResult(
                task_id=task_id,
                scheduled=False,
                version=version,
                reason=UnscheduledReason.NO_CAPACITY,
            )

    async def on_task_created(self, task: Task) -> ScheduleResult:
        return await self.reschedule(task.id)

    async def on_task_updated(self, before: Task, after: Task) -> Optional[ScheduleResult]:
        """
        Re-plan a task whose scheduling inputs changed.

        Completing a task clears its placement, pinned or not. A pinned task
        that moves to another assignee, or whose position falls after a new
        due date, is released back to the engine. Returns None when nothing
        relevant changed.
        """
        changed = [
            field
            for field in SCHEDULING_FIELDS
            if getattr(before, field) != getattr(after, field)
        ]
        if not changed:
            return None
        logger.debug(f"Task {after.id} changed {', '.join(changed)}")

        if after.status == TaskStatus.DONE:
            version = await self.engine.clear_schedule(after.id)
            return ScheduleResult(
                task_id=after.id,
                scheduled=False,
                version=version,
                reason=UnscheduledReason.COMPLETED,
            )

        if after.pinned and after.assignee_id != before.assignee_id:
            # The pinned block was only checked against the previous assignee.
            logger.info(
                f"Unpinning task {after.id}: reassigned from {before.assignee_id} "
                f"to {after.assignee_id}"
            )
            await self.engine.clear_schedule(after.id)
        elif (
            after.pinned
            and after.due_date is not None
            and after.scheduled_date is not None
            and after.scheduled_date > after.due_date
        ):
            logger.info(
                f"Unpinning task {after.id}: pinned on {after.scheduled_date.isoformat()}, "
                f"now due {after.due_date.isoformat()}"
            )
            await self.engine.clear_schedule(after.id)

        return await self.reschedule(after.id)

    async def on_time_logged(self, task: Task) -> ScheduleResult:
        return await self.reschedule(task.id)

    async def on_task_deleted(self, task: Task) -> None:
        # Claimed blocks go with the row; other tasks keep their positions.
        logger.info(f"Task {task.id} deleted, released {len(task.segments)} block(s)")

    async def save_event(
        self,
        assignee_id: str,
        day: date,
        write: Callable[[], Awaitable[Event]],
    ) -> tuple[Event, RescheduleSummary]:
        """
        Persist an event change and re-plan the tasks it displaces.

        The write and the overlap lookup run under the (assignee, day) lock, so
        a placement racing with the event either lands before it and is found
        here, or reads occupancy that already contains it. Displaced tasks are
        re-planned after the lock is released.

        Args:
            assignee_id: Assignee of the event after the write
            day: Date of the event after the write
            write: Coroutine factory performing the create or update
        """
        async with self.engine.guard.hold(assignee_id, [day]):
            event = await write()
            if (event.assignee_id, event.date) == (assignee_id, day):
                affected = await self._tasks_overlapping(assignee_id, _event_slot(event))
            else:
                affected = None
        if affected is None:
            return event, await self.on_event_changed(event)
        return event, await self._displace(event, affected)

    async def on_event_changed(self, event: Event) -> RescheduleSummary:
        """Re-plan auto-scheduled tasks whose blocks now overlap the event."""
        async with self.engine.guard.hold(event.assignee_id, [event.date]):
            affected = await self._tasks_overlapping(event.assignee_id, _event_slot(event))
        return await self._displace(event, affected)

    async def _displace(self, event: Event, affected: list[Task]) -> RescheduleSummary:
        summary = await self._reschedule_many(affected)
        if affected:
            logger.info(
                f"Event {event.id} on {event.date.isoformat()} displaced "
                f"{len(affected)} task(s), {len(summary.failed)} left unscheduled"
            )
        return summary

    async def commit_placement(self, task_id: UUID, day: date, start_time: time) -> ScheduleResult:
        """
        Pin a task at a user-chosen position (drag-and-drop commit).

        The block covers the remaining work and must end by business end.
        Auto-scheduled tasks overlapping the new block are re-planned afterwards.

        Raises:
            NotFoundError: If the task does not exist
            InvalidPlacementError: If the target is after the due date,
                outside business hours, or overlaps an event or pinned task
            ConcurrencyConflictError: If the task changed between read and write
        """

        async def place() -> tuple[Task, ScheduleSlot, ScheduleSegment, int]:
            task = await self.engine.gateway.get_task(task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found")

            step = self.config.min_granularity_minutes
            duration = round_up(task.remaining_minutes(step), step)

            async with self.engine.guard.hold(task.assignee_id, [day]):
                validation = await self.detector.validate_placement(
                    day,
                    start_time,
                    duration,
                    task.assignee_id,
                    exclude_task_id=task.id,
                    due_date=task.due_date,
                )
                if not validation.valid:
                    raise InvalidPlacementError(
                        f"Task {task.id} cannot be placed at "
                        f"{day.isoformat()} {start_time.strftime('%H:%M')}",
                        reason=validation.reason,
                        conflicts=validation.conflicts,
                    )

                block = placement_block(day, start_time, duration)
                segment = ScheduleSegment(
                    date=day,
                    start_time=block.start_time,
                    end_time=block.end_time,
                    minutes=block.duration_minutes,
                )
                version = await self.engine.gateway.write_schedule(
                    task.id,
                    task.version,
                    ScheduleWrite(
                        scheduled_date=day,
                        scheduled_start_time=block.start_time,
                        pinned=True,
                        segments=[segment],
                    ),
                )
            return task, block, segment, version

        task, block, segment, version = await self.engine.guard.run(place, task_id)
        logger.info(
            f"Task {task.id} pinned at {day.isoformat()} {block.start_time.strftime('%H:%M')}"
        )

        displaced = [
            other
            for other in await self._tasks_overlapping(task.assignee_id, block)
            if other.id != task.id
        ]
        await self._reschedule_many(displaced)

        return ScheduleResult(
            task_id=task.id,
            scheduled=True,
            scheduled_date=day,
            scheduled_start_time=block.start_time,
            scheduled_end_time=block.end_time,
            pinned=True,
            version=version,
            segments=[segment],
        )

    async def release_pin(self, task_id: UUID) -> ScheduleResult:
        """Hand a pinned task back to the engine and re-plan it."""

        async def unpin() -> None:
            task = await self.engine.gateway.get_task(task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found")
            if not task.pinned:
                return
            await self.engine.gateway.write_schedule(task.id, task.version, ScheduleWrite())
            logger.info(f"Task {task.id} unpinned")

        await self.engine.guard.run(unpin, task_id)
        return await self.reschedule(task_id)

    async def _tasks_overlapping(self, assignee_id: str, slot: ScheduleSlot) -> list[Task]:
        tasks = await self.engine.gateway.list_tasks_with_segments_on(assignee_id, slot.date)
        return [
            task
            for task in tasks
            if find_conflicts(
                slot,
                [
                    ScheduleSlot(
                        date=segment.date,
                        start_time=segment.start_time,
                        end_time=segment.end_time,
                        duration_minutes=segment.minutes,
                    )
                    for segment in task.segments
                ],
            )
        ]

    async def _reschedule_many(self, tasks: list[Task]) -> RescheduleSummary:
        summary = RescheduleSummary()
        for task in tasks:
            result = await self.reschedule(task.id)
            if result.scheduled:
                summary.rescheduled.append(result)
            else:
                summary.failed.append(
                    UnscheduledTask(
                        task_id=task.id,
                        reason=result.reason.value if result.reason else "unscheduled",
                    )
                )
        return summary
