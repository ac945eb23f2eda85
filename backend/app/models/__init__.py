"""Pydantic models (schemas) for the application."""

from app.models.enums import IntervalKind, TaskStatus, UnscheduledReason
from app.models.event import Event, EventCreate, EventUpdate
from app.models.schedule import (
    BusinessCalendarConfig,
    OccupiedInterval,
    PlacementValidation,
    ScheduleResult,
    ScheduleSegment,
    ScheduleSlot,
)
from app.models.task import Task, TaskCreate, TaskUpdate, TimeEntry, TimeEntryCreate

__all__ = [
    # Enums
    "TaskStatus",
    "IntervalKind",
    "UnscheduledReason",
    # Task
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "TimeEntry",
    "TimeEntryCreate",
    # Event
    "Event",
    "EventCreate",
    "EventUpdate",
    # Schedule
    "BusinessCalendarConfig",
    "OccupiedInterval",
    "PlacementValidation",
    "ScheduleResult",
    "ScheduleSegment",
    "ScheduleSlot",
]
