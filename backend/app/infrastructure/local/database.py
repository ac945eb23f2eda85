"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
"""

from functools import lru_cache
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.core.config import get_settings
from app.utils.datetime_utils import now_utc


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class TaskORM(Base):
    """Task ORM model."""

    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    assignee_id = Column(String(255), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    status = Column(String(20), default="TODO", index=True)
    due_date = Column(Date, nullable=True)
    estimated_minutes = Column(Integer, nullable=True)
    logged_minutes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    # Placement (wire names: scheduledDate / scheduledStartTime / pinned / version)
    scheduled_date = Column(Date, nullable=True)
    scheduled_start_time = Column(Time, nullable=True)
    pinned = Column(Boolean, nullable=False, default=False, index=True)
    version = Column(Integer, nullable=False, default=1)


class TaskSegmentORM(Base):
    """Per-day block claimed by a task's current placement."""

    __tablename__ = "task_segments"
    __table_args__ = (Index("ix_task_segments_assignee_date", "assignee_id", "date"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    assignee_id = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    minutes = Column(Integer, nullable=False)


class TimeEntryORM(Base):
    """Time logged against a task."""

    __tablename__ = "time_entries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    minutes = Column(Integer, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)


class EventORM(Base):
    """Calendar event ORM model (fixed occupied interval)."""

    __tablename__ = "events"
    __table_args__ = (Index("ix_events_assignee_date", "assignee_id", "date"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    assignee_id = Column(String(255), nullable=False)
    title = Column(String(500), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


# ===========================================
# Database Session Management
# ===========================================


@lru_cache()
def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=False)


def get_session_factory():
    """Get async session factory."""
    engine = get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine=None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
