"""
Task model definitions.

Tasks are the work items the engine places into an assignee's business-hours calendar.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, computed_field

from app.models.base import CamelModel, ClockTime
from app.models.enums import TaskStatus
from app.models.schedule import ScheduleSegment


class TaskBase(CamelModel):
    """Base task fields shared across create/read."""

    title: str = Field(..., min_length=1, max_length=500, description="Task title")
    assignee_id: str = Field(..., min_length=1, max_length=255, description="Assigned user ID")
    due_date: Optional[date] = Field(None, description="Deadline; placement never goes past it")
    estimated_minutes: Optional[int] = Field(
        None, ge=1, alias="estimatedDuration", description="Estimated duration (minutes)"
    )


class TaskCreate(TaskBase):
    """Schema for creating a new task."""

    pass


class TaskUpdate(CamelModel):
    """Schema for updating an existing task."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    assignee_id: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[TaskStatus] = None
    due_date: Optional[date] = None
    estimated_minutes: Optional[int] = Field(None, ge=1, alias="estimatedDuration")


class Task(TaskBase):
    """Complete task model with all fields."""

    id: UUID
    status: TaskStatus = Field(TaskStatus.TODO, description="Status")
    logged_minutes: int = Field(
        0, ge=0, alias="loggedDuration", description="Sum of time entries (minutes)"
    )
    scheduled_date: Optional[date] = None
    scheduled_start_time: Optional[ClockTime] = None
    pinned: bool = Field(False, description="Position set by a user drag; skipped by the engine")
    version: int = Field(1, ge=1, description="Optimistic lock counter")
    segments: list[ScheduleSegment] = Field(
        default_factory=list, description="Per-day blocks claimed by the current placement"
    )
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="scheduledEndTime")
    @property
    def scheduled_end_time(self) -> Optional[ClockTime]:
        """End of the block that starts at the canonical position."""
        if not self.scheduled_date or not self.scheduled_start_time:
            return None
        for segment in self.segments:
            if segment.date == self.scheduled_date and segment.start_time == self.scheduled_start_time:
                return segment.end_time
        return None

    @property
    def is_schedulable(self) -> bool:
        return self.due_date is not None and self.estimated_minutes is not None

    def remaining_minutes(self, min_granularity_minutes: int) -> int:
        """Estimate minus logged time, never below the minimum visible block."""
        estimated = self.estimated_minutes or 0
        return max(estimated - self.logged_minutes, min_granularity_minutes)


class TimeEntryCreate(CamelModel):
    """Schema for logging time against a task."""

    minutes: int = Field(..., ge=1, le=24 * 60)
    note: Optional[str] = Field(None, max_length=2000)


class TimeEntry(TimeEntryCreate):
    """Persisted time entry."""

    id: UUID
    task_id: UUID
    created_at: datetime
