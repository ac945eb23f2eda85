"""
Shared fixtures: a throwaway SQLite database per test.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.infrastructure.local.database import init_db
from app.infrastructure.local.event_repository import SqliteEventRepository
from app.infrastructure.local.schedule_gateway import SqliteScheduleGateway
from app.infrastructure.local.task_repository import SqliteTaskRepository
from app.models.schedule import BusinessCalendarConfig
from app.services.concurrency_guard import ConcurrencyGuard
from app.services.conflict_detector import ConflictDetector
from app.services.schedule_coordinator import ScheduleCoordinator
from app.services.scheduling_engine import SchedulingEngine


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory bound to a fresh file-backed SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scheduler.db'}")
    await init_db(engine)
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def assignee_id() -> str:
    return "attorney-1"


@pytest.fixture
def calendar() -> BusinessCalendarConfig:
    return BusinessCalendarConfig()


@pytest.fixture
def task_repo(session_factory) -> SqliteTaskRepository:
    return SqliteTaskRepository(session_factory=session_factory)


@pytest.fixture
def event_repo(session_factory) -> SqliteEventRepository:
    return SqliteEventRepository(session_factory=session_factory)


@pytest.fixture
def gateway(session_factory) -> SqliteScheduleGateway:
    return SqliteScheduleGateway(session_factory=session_factory)


@pytest.fixture
def guard() -> ConcurrencyGuard:
    return ConcurrencyGuard(max_retries=3)


@pytest.fixture
def engine(gateway, guard, calendar) -> SchedulingEngine:
    return SchedulingEngine(gateway, guard, calendar)


@pytest.fixture
def coordinator(engine, gateway, calendar) -> ScheduleCoordinator:
    return ScheduleCoordinator(engine, ConflictDetector(gateway, calendar))
