"""
SQLite implementation of the schedule gateway.

Occupancy reads join events and task segments; placement writes are a
compare-and-swap on ``tasks.version``.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, delete, select
from sqlalchemy import update as sa_update

from app.core.exceptions import ConcurrencyConflictError, NotFoundError
from app.core.logger import setup_logger
from app.infrastructure.local.database import (
    EventORM,
    TaskORM,
    TaskSegmentORM,
    get_session_factory,
)
from app.infrastructure.local.task_repository import load_segments, task_orm_to_model
from app.interfaces.schedule_gateway import IScheduleGateway
from app.models.enums import IntervalKind, TaskStatus
from app.models.schedule import OccupiedInterval, ScheduleWrite
from app.models.task import Task
from app.utils.datetime_utils import now_utc, time_to_minutes

logger = setup_logger(__name__)


def _interval(day: date, start, end, kind: IntervalKind, source_id: str) -> OccupiedInterval:
    return OccupiedInterval(
        date=day,
        start_time=start,
        end_time=end,
        duration_minutes=time_to_minutes(end) - time_to_minutes(start),
        kind=kind,
        source_id=UUID(source_id),
    )


class SqliteScheduleGateway(IScheduleGateway):
    """SQLite implementation of the scheduling read/write contract."""

    def __init__(self, session_factory=None):
        """
        Initialize gateway.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    async def get_task(self, task_id: UUID) -> Optional[Task]:
        async with self._session_factory() as session:
            result = await session.execute(select(TaskORM).where(TaskORM.id == str(task_id)))
            orm = result.scalar_one_or_none()
            if not orm:
                return None
            segments = await load_segments(session, [orm.id])
            return task_orm_to_model(orm, segments[orm.id])

    async def _segments(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
        pinned: bool,
        exclude_task_id: Optional[UUID],
    ) -> list[OccupiedInterval]:
        conditions = [
            TaskSegmentORM.assignee_id == assignee_id,
            TaskSegmentORM.date >= start_date,
            TaskSegmentORM.date <= end_date,
            TaskORM.pinned == pinned,
            TaskORM.status != TaskStatus.DONE.value,
        ]
        if exclude_task_id is not None:
            conditions.append(TaskSegmentORM.task_id != str(exclude_task_id))

        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskSegmentORM)
                .join(TaskORM, TaskORM.id == TaskSegmentORM.task_id)
                .where(and_(*conditions))
                .order_by(TaskSegmentORM.date.asc(), TaskSegmentORM.start_time.asc())
            )
            kind = IntervalKind.PINNED_TASK if pinned else IntervalKind.TASK
            return [
                _interval(orm.date, orm.start_time, orm.end_time, kind, orm.task_id)
                for orm in result.scalars().all()
            ]

    async def get_events_and_pinned_tasks(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
        exclude_task_id: Optional[UUID] = None,
    ) -> list[OccupiedInterval]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(EventORM).where(
                    and_(
                        EventORM.assignee_id == assignee_id,
                        EventORM.date >= start_date,
                        EventORM.date <= end_date,
                    )
                )
            )
            intervals = [
                _interval(orm.date, orm.start_time, orm.end_time, IntervalKind.EVENT, orm.id)
                for orm in result.scalars().all()
            ]

        intervals.extend(
            await self._segments(assignee_id, start_date, end_date, True, exclude_task_id)
        )
        intervals.sort(key=lambda interval: (interval.date, interval.start_time, interval.end_time))
        return intervals

    async def get_claimed_segments(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
        exclude_task_id: Optional[UUID] = None,
    ) -> list[OccupiedInterval]:
        return await self._segments(assignee_id, start_date, end_date, False, exclude_task_id)

    async def write_schedule(
        self,
        task_id: UUID,
        expected_version: int,
        update: ScheduleWrite,
    ) -> int:
        new_version = expected_version + 1
        async with self._session_factory() as session:
            result = await session.execute(
                sa_update(TaskORM)
                .where(and_(TaskORM.id == str(task_id), TaskORM.version == expected_version))
                .values(
                    scheduled_date=update.scheduled_date,
                    scheduled_start_time=update.scheduled_start_time,
                    pinned=update.pinned,
                    version=new_version,
                    updated_at=now_utc(),
                )
            )
            if result.rowcount == 0:
                exists = await session.scalar(select(TaskORM.id).where(TaskORM.id == str(task_id)))
                await session.rollback()
                if exists is None:
                    raise NotFoundError(f"Task {task_id} not found")
                logger.info(f"Version conflict on task {task_id} (expected v{expected_version})")
                raise ConcurrencyConflictError(task_id, expected_version)

            assignee_id = await session.scalar(
                select(TaskORM.assignee_id).where(TaskORM.id == str(task_id))
            )
            await session.execute(delete(TaskSegmentORM).where(TaskSegmentORM.task_id == str(task_id)))
            for segment in update.segments:
                session.add(
                    TaskSegmentORM(
                        id=str(uuid4()),
                        task_id=str(task_id),
                        assignee_id=assignee_id,
                        date=segment.date,
                        start_time=segment.start_time,
                        end_time=segment.end_time,
                        minutes=segment.minutes,
                    )
                )
            await session.commit()
            return new_version

    async def list_tasks_with_segments_on(self, assignee_id: str, day: date) -> list[Task]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskORM)
                .where(
                    and_(
                        TaskORM.assignee_id == assignee_id,
                        TaskORM.pinned == False,  # noqa: E712
                        TaskORM.status != TaskStatus.DONE.value,
                        TaskORM.id.in_(
                            select(TaskSegmentORM.task_id).where(
                                and_(
                                    TaskSegmentORM.assignee_id == assignee_id,
                                    TaskSegmentORM.date == day,
                                )
                            )
                        ),
                    )
                )
                .order_by(TaskORM.due_date.asc(), TaskORM.created_at.asc())
            )
            orms = result.scalars().all()
            segments = await load_segments(session, [orm.id for orm in orms])
            return [task_orm_to_model(orm, segments[orm.id]) for orm in orms]
