"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the correct
infrastructure implementations based on environment configuration.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from app.core.config import get_settings
from app.interfaces.event_repository import IEventRepository
from app.interfaces.schedule_gateway import IScheduleGateway
from app.interfaces.task_repository import ITaskRepository
from app.models.schedule import BusinessCalendarConfig
from app.services.concurrency_guard import ConcurrencyGuard
from app.services.conflict_detector import ConflictDetector
from app.services.schedule_coordinator import ScheduleCoordinator
from app.services.scheduling_engine import SchedulingEngine


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_task_repository() -> ITaskRepository:
    """Get task repository instance."""
    from app.infrastructure.local.task_repository import SqliteTaskRepository
    return SqliteTaskRepository()


@lru_cache()
def get_event_repository() -> IEventRepository:
    """Get event repository instance."""
    from app.infrastructure.local.event_repository import SqliteEventRepository
    return SqliteEventRepository()


@lru_cache()
def get_schedule_gateway() -> IScheduleGateway:
    """Get schedule gateway instance."""
    from app.infrastructure.local.schedule_gateway import SqliteScheduleGateway
    return SqliteScheduleGateway()


# ===========================================
# Scheduling Dependencies
# ===========================================


@lru_cache()
def get_calendar_config() -> BusinessCalendarConfig:
    """Get business calendar built from settings."""
    return BusinessCalendarConfig.from_settings(get_settings())


@lru_cache()
def get_concurrency_guard() -> ConcurrencyGuard:
    """Get the process-wide lock registry (one per process, shared by every request)."""
    return ConcurrencyGuard(max_retries=get_settings().SCHEDULE_MAX_RETRIES)


def get_scheduling_engine(
    gateway: Annotated[IScheduleGateway, Depends(get_schedule_gateway)],
    guard: Annotated[ConcurrencyGuard, Depends(get_concurrency_guard)],
    config: Annotated[BusinessCalendarConfig, Depends(get_calendar_config)],
) -> SchedulingEngine:
    """Get SchedulingEngine instance."""
    return SchedulingEngine(gateway, guard, config)


def get_conflict_detector(
    gateway: Annotated[IScheduleGateway, Depends(get_schedule_gateway)],
    config: Annotated[BusinessCalendarConfig, Depends(get_calendar_config)],
) -> ConflictDetector:
    """Get ConflictDetector instance."""
    return ConflictDetector(gateway, config)


def get_schedule_coordinator(
    engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)],
    detector: Annotated[ConflictDetector, Depends(get_conflict_detector)],
) -> ScheduleCoordinator:
    """Get ScheduleCoordinator instance."""
    return ScheduleCoordinator(engine, detector)


# Type aliases for cleaner dependency injection
TaskRepo = Annotated[ITaskRepository, Depends(get_task_repository)]
EventRepo = Annotated[IEventRepository, Depends(get_event_repository)]
ScheduleGateway = Annotated[IScheduleGateway, Depends(get_schedule_gateway)]
CalendarConfig = Annotated[BusinessCalendarConfig, Depends(get_calendar_config)]
Engine = Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
Detector = Annotated[ConflictDetector, Depends(get_conflict_detector)]
Coordinator = Annotated[ScheduleCoordinator, Depends(get_schedule_coordinator)]
