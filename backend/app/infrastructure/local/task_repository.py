"""
SQLite implementation of Task repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.infrastructure.local.database import (
    TaskORM,
    TaskSegmentORM,
    TimeEntryORM,
    get_session_factory,
)
from app.interfaces.task_repository import ITaskRepository
from app.models.enums import TaskStatus
from app.models.schedule import ScheduleSegment
from app.models.task import Task, TaskCreate, TaskUpdate, TimeEntry, TimeEntryCreate
from app.utils.datetime_utils import now_utc


def segment_orm_to_model(orm: TaskSegmentORM) -> ScheduleSegment:
    return ScheduleSegment(
        date=orm.date,
        start_time=orm.start_time,
        end_time=orm.end_time,
        minutes=orm.minutes,
    )


def task_orm_to_model(orm: TaskORM, segments: list[TaskSegmentORM]) -> Task:
    """Convert ORM objects to the Pydantic task model."""
    return Task(
        id=UUID(orm.id),
        assignee_id=orm.assignee_id,
        title=orm.title,
        status=TaskStatus(orm.status),
        due_date=orm.due_date,
        estimated_minutes=orm.estimated_minutes,
        logged_minutes=orm.logged_minutes or 0,
        scheduled_date=orm.scheduled_date,
        scheduled_start_time=orm.scheduled_start_time,
        pinned=bool(orm.pinned),
        version=orm.version,
        segments=[
            segment_orm_to_model(segment)
            for segment in sorted(segments, key=lambda s: (s.date, s.start_time))
        ],
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


async def load_segments(session: AsyncSession, task_ids: list[str]) -> dict[str, list[TaskSegmentORM]]:
    """Load segments for several tasks in one query, grouped by task id."""
    grouped: dict[str, list[TaskSegmentORM]] = {task_id: [] for task_id in task_ids}
    if not task_ids:
        return grouped
    result = await session.execute(
        select(TaskSegmentORM).where(TaskSegmentORM.task_id.in_(task_ids))
    )
    for segment in result.scalars().all():
        grouped.setdefault(segment.task_id, []).append(segment)
    return grouped


class SqliteTaskRepository(ITaskRepository):
    """SQLite implementation of task repository."""

    def __init__(self, session_factory=None):
        """
        Initialize repository.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    async def _to_model(self, session: AsyncSession, orm: TaskORM) -> Task:
        segments = await load_segments(session, [orm.id])
        return task_orm_to_model(orm, segments[orm.id])

    async def create(self, task: TaskCreate) -> Task:
        """Create a new task."""
        async with self._session_factory() as session:
            now = now_utc()
            orm = TaskORM(
                id=str(uuid4()),
                assignee_id=task.assignee_id,
                title=task.title,
                status=TaskStatus.TODO.value,
                due_date=task.due_date,
                estimated_minutes=task.estimated_minutes,
                logged_minutes=0,
                pinned=False,
                version=1,
                created_at=now,
                updated_at=now,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return task_orm_to_model(orm, [])

    async def get(self, task_id: UUID) -> Optional[Task]:
        """Get a task by ID."""
        async with self._session_factory() as session:
            result = await session.execute(select(TaskORM).where(TaskORM.id == str(task_id)))
            orm = result.scalar_one_or_none()
            return await self._to_model(session, orm) if orm else None

    async def list(
        self,
        assignee_id: Optional[str] = None,
        include_done: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Task]:
        """List tasks with optional filters."""
        async with self._session_factory() as session:
            query = select(TaskORM)

            if assignee_id is not None:
                query = query.where(TaskORM.assignee_id == assignee_id)

            if not include_done:
                query = query.where(TaskORM.status != TaskStatus.DONE.value)

            query = query.order_by(TaskORM.due_date.asc(), TaskORM.created_at.asc())
            query = query.limit(limit).offset(offset)

            result = await session.execute(query)
            orms = result.scalars().all()
            segments = await load_segments(session, [orm.id for orm in orms])
            return [task_orm_to_model(orm, segments[orm.id]) for orm in orms]

    async def update(self, task_id: UUID, update: TaskUpdate) -> Task:
        """Update an existing task."""
        async with self._session_factory() as session:
            result = await session.execute(select(TaskORM).where(TaskORM.id == str(task_id)))
            orm = result.scalar_one_or_none()

            if not orm:
                raise NotFoundError(f"Task {task_id} not found")

            update_data = update.model_dump(exclude_unset=True)
            changed = False
            for field, value in update_data.items():
                if value is None and field in ("title", "assignee_id", "status"):
                    continue
                if hasattr(value, "value"):  # Enum
                    value = value.value
                if getattr(orm, field) != value:
                    setattr(orm, field, value)
                    changed = True

            if "assignee_id" in update_data and update_data["assignee_id"]:
                await session.execute(
                    sa_update(TaskSegmentORM)
                    .where(TaskSegmentORM.task_id == orm.id)
                    .values(assignee_id=orm.assignee_id)
                )

            if changed:
                orm.version = orm.version + 1
                orm.updated_at = now_utc()
                await session.commit()
                await session.refresh(orm)
            return await self._to_model(session, orm)

    async def delete(self, task_id: UUID) -> bool:
        """Delete a task."""
        async with self._session_factory() as session:
            result = await session.execute(select(TaskORM).where(TaskORM.id == str(task_id)))
            orm = result.scalar_one_or_none()

            if not orm:
                return False

            await session.execute(delete(TaskSegmentORM).where(TaskSegmentORM.task_id == orm.id))
            await session.execute(delete(TimeEntryORM).where(TimeEntryORM.task_id == orm.id))
            await session.delete(orm)
            await session.commit()
            return True

    async def add_time_entry(self, task_id: UUID, entry: TimeEntryCreate) -> TimeEntry:
        """Log time against a task."""
        async with self._session_factory() as session:
            result = await session.execute(select(TaskORM).where(TaskORM.id == str(task_id)))
            orm = result.scalar_one_or_none()

            if not orm:
                raise NotFoundError(f"Task {task_id} not found")

            now = now_utc()
            entry_orm = TimeEntryORM(
                id=str(uuid4()),
                task_id=orm.id,
                minutes=entry.minutes,
                note=entry.note,
                created_at=now,
            )
            session.add(entry_orm)
            orm.logged_minutes = (orm.logged_minutes or 0) + entry.minutes
            orm.version = orm.version + 1
            orm.updated_at = now
            await session.commit()
            await session.refresh(entry_orm)
            return TimeEntry(
                id=UUID(entry_orm.id),
                task_id=UUID(entry_orm.task_id),
                minutes=entry_orm.minutes,
                note=entry_orm.note,
                created_at=entry_orm.created_at,
            )

    async def list_time_entries(self, task_id: UUID) -> list[TimeEntry]:
        """List time entries of a task."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(TimeEntryORM)
                .where(TimeEntryORM.task_id == str(task_id))
                .order_by(TimeEntryORM.created_at.asc())
            )
            return [
                TimeEntry(
                    id=UUID(orm.id),
                    task_id=UUID(orm.task_id),
                    minutes=orm.minutes,
                    note=orm.note,
                    created_at=orm.created_at,
                )
                for orm in result.scalars().all()
            ]
