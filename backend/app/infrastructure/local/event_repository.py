"""
SQLite implementation of Event repository.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select

from app.core.exceptions import NotFoundError, ValidationError
from app.infrastructure.local.database import EventORM, get_session_factory
from app.interfaces.event_repository import IEventRepository
from app.models.event import Event, EventCreate, EventUpdate
from app.utils.datetime_utils import now_utc


class SqliteEventRepository(IEventRepository):
    """SQLite implementation of event repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: EventORM) -> Event:
        """Convert ORM object to Pydantic model."""
        return Event(
            id=UUID(orm.id),
            assignee_id=orm.assignee_id,
            title=orm.title,
            date=orm.date,
            start_time=orm.start_time,
            end_time=orm.end_time,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    async def create(self, event: EventCreate) -> Event:
        """Create a new event."""
        async with self._session_factory() as session:
            now = now_utc()
            orm = EventORM(
                id=str(uuid4()),
                assignee_id=event.assignee_id,
                title=event.title,
                date=event.date,
                start_time=event.start_time,
                end_time=event.end_time,
                created_at=now,
                updated_at=now,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, event_id: UUID) -> Optional[Event]:
        """Get an event by ID."""
        async with self._session_factory() as session:
            result = await session.execute(select(EventORM).where(EventORM.id == str(event_id)))
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def list(
        self,
        assignee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Event]:
        """List events with optional filters."""
        async with self._session_factory() as session:
            query = select(EventORM)
            if assignee_id is not None:
                query = query.where(EventORM.assignee_id == assignee_id)
            if start_date is not None:
                query = query.where(EventORM.date >= start_date)
            if end_date is not None:
                query = query.where(EventORM.date <= end_date)
            query = query.order_by(EventORM.date.asc(), EventORM.start_time.asc())

            result = await session.execute(query)
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def update(self, event_id: UUID, update: EventUpdate) -> Event:
        """Update an event."""
        async with self._session_factory() as session:
            result = await session.execute(select(EventORM).where(EventORM.id == str(event_id)))
            orm = result.scalar_one_or_none()

            if not orm:
                raise NotFoundError(f"Event {event_id} not found")

            update_data = update.model_dump(exclude_unset=True, exclude_none=True)
            start_time = update_data.get("start_time", orm.start_time)
            end_time = update_data.get("end_time", orm.end_time)
            if end_time <= start_time:
                raise ValidationError(
                    "endTime must be later than startTime",
                    details={"start_time": str(start_time), "end_time": str(end_time)},
                )

            for field, value in update_data.items():
                setattr(orm, field, value)
            orm.updated_at = now_utc()

            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def delete(self, event_id: UUID) -> bool:
        """Delete an event."""
        async with self._session_factory() as session:
            result = await session.execute(select(EventORM).where(EventORM.id == str(event_id)))
            orm = result.scalar_one_or_none()

            if not orm:
                return False

            await session.delete(orm)
            await session.commit()
            return True
