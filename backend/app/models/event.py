"""
Calendar event model definitions.

Events are fixed occupied intervals (hearings, meetings, ...). The scheduler
reads them but never moves them.
"""

import datetime as dt
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, model_validator

from app.models.base import CamelModel, ClockTime


class EventBase(CamelModel):
    """Base event fields shared across create/read."""

    title: str = Field(..., min_length=1, max_length=500)
    assignee_id: str = Field(..., min_length=1, max_length=255)
    date: date
    start_time: ClockTime
    end_time: ClockTime

    @model_validator(mode="after")
    def validate_time_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be later than startTime")
        return self


class EventCreate(EventBase):
    """Schema for creating an event."""

    pass


class EventUpdate(CamelModel):
    """Schema for updating an event. The merged result is re-validated."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    date: Optional[dt.date] = None
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None


class Event(EventBase):
    """Complete event model with all fields."""

    id: UUID
    created_at: datetime
    updated_at: datetime
