"""
Schedule models for slot computation and placement outputs.
"""

from __future__ import annotations

from datetime import date, time
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import ConfigDict, Field, model_validator

from app.models.base import CamelModel, ClockTime
from app.models.enums import IntervalKind, UnscheduledReason
from app.utils.datetime_utils import minutes_to_time, parse_clock, time_to_minutes

if TYPE_CHECKING:
    from app.core.config import Settings


class BusinessCalendarConfig(CamelModel):
    """Business-hours calendar; read-only for the duration of a scheduling call."""

    model_config = ConfigDict(frozen=True)

    business_start: ClockTime = time(9, 0)
    business_end: ClockTime = time(18, 0)
    daily_capacity_minutes: int = Field(540, ge=1)
    max_cascade_days: int = Field(14, ge=0)
    min_granularity_minutes: int = Field(15, ge=1)

    @model_validator(mode="after")
    def validate_window(self):
        if self.business_end <= self.business_start:
            raise ValueError("businessEnd must be later than businessStart")
        return self

    @classmethod
    def from_settings(cls, settings: "Settings") -> "BusinessCalendarConfig":
        start = parse_clock(settings.BUSINESS_START)
        end = parse_clock(settings.BUSINESS_END)
        if start is None or end is None:
            raise ValueError(
                f"Invalid business hours: {settings.BUSINESS_START}-{settings.BUSINESS_END}"
            )
        return cls(
            business_start=minutes_to_time(start),
            business_end=minutes_to_time(end),
            daily_capacity_minutes=settings.DAILY_CAPACITY_MINUTES,
            max_cascade_days=settings.MAX_CASCADE_DAYS,
            min_granularity_minutes=settings.MIN_GRANULARITY_MINUTES,
        )

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.business_start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.business_end)


class ScheduleSlot(CamelModel):
    """Half-open [start, end) interval on one day."""

    date: date
    start_time: ClockTime
    end_time: ClockTime
    duration_minutes: int = Field(..., ge=0)

    @classmethod
    def from_minutes(cls, day: date, start_minutes: int, end_minutes: int, **extra) -> "ScheduleSlot":
        return cls(
            date=day,
            start_time=minutes_to_time(start_minutes),
            end_time=minutes_to_time(end_minutes),
            duration_minutes=end_minutes - start_minutes,
            **extra,
        )

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes


class OccupiedInterval(ScheduleSlot):
    """Occupied interval with its origin, reported back as a conflict."""

    kind: IntervalKind
    source_id: Optional[UUID] = None


class ScheduleSegment(CamelModel):
    """Block of a task's work claimed on a single day."""

    date: date
    start_time: ClockTime
    end_time: ClockTime
    minutes: int = Field(..., ge=1)


class PlacementPlan(CamelModel):
    """Outcome of the backward placement loop."""

    scheduled_date: date
    scheduled_start_time: ClockTime
    segments: list[ScheduleSegment]
    reserved_minutes: int
    cascade_depth: int = 0


class ScheduleWrite(CamelModel):
    """Fields written back under the version check."""

    scheduled_date: Optional[date] = None
    scheduled_start_time: Optional[ClockTime] = None
    pinned: bool = False
    segments: list[ScheduleSegment] = Field(default_factory=list)


class ScheduleResult(CamelModel):
    """Position reported to the caller of scheduleTask."""

    task_id: UUID
    scheduled: bool
    scheduled_date: Optional[date] = None
    scheduled_start_time: Optional[ClockTime] = None
    scheduled_end_time: Optional[ClockTime] = None
    pinned: bool = False
    version: int
    cascade_depth: int = 0
    segments: list[ScheduleSegment] = Field(default_factory=list)
    reason: Optional[UnscheduledReason] = None


class PlacementValidation(CamelModel):
    """Result of a placement check (drag preview or authoritative commit)."""

    valid: bool
    conflicts: list[OccupiedInterval] = Field(default_factory=list)
    reason: Optional[str] = None


class ValidatePlacementRequest(CamelModel):
    date: date
    start_time: ClockTime
    duration_minutes: int = Field(..., ge=1)
    assignee_id: str = Field(..., min_length=1)
    exclude_task_id: Optional[UUID] = None
    due_date: Optional[date] = None


class PlacementRequest(CamelModel):
    """Drag-and-drop commit target."""

    date: date
    start_time: ClockTime


class UnscheduledTask(CamelModel):
    """Task left without a new position, with the reason."""

    task_id: UUID
    reason: str


class RescheduleSummary(CamelModel):
    """Tasks re-planned after a calendar change."""

    rescheduled: list[ScheduleResult] = Field(default_factory=list)
    failed: list[UnscheduledTask] = Field(default_factory=list)
