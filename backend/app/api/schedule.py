"""
Schedule API endpoints.

Free-slot lookup and placement checks backing the drag-and-drop preview.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from app.api.deps import CalendarConfig, Detector, Engine
from app.models.schedule import (
    BusinessCalendarConfig,
    PlacementValidation,
    ScheduleSlot,
    ValidatePlacementRequest,
)

router = APIRouter()


@router.get("/slots", response_model=list[ScheduleSlot])
async def get_available_slots(
    engine: Engine,
    day: date = Query(..., alias="date", description="Target date"),
    duration_minutes: int = Query(..., ge=1, alias="durationMinutes"),
    assignee_id: str = Query(..., min_length=1, alias="assigneeId"),
    exclude_task_id: Optional[UUID] = Query(None, alias="excludeTaskId"),
):
    """Free slots on a date that can hold the requested duration."""
    return await engine.available_slots(
        day,
        duration_minutes,
        assignee_id,
        exclude_task_id=exclude_task_id,
    )


@router.post("/validate-placement", response_model=PlacementValidation)
async def validate_placement(
    request: ValidatePlacementRequest,
    detector: Detector,
):
    """Check a candidate placement against events and pinned tasks."""
    return await detector.validate_placement(
        request.date,
        request.start_time,
        request.duration_minutes,
        request.assignee_id,
        exclude_task_id=request.exclude_task_id,
        due_date=request.due_date,
    )


@router.get("/config", response_model=BusinessCalendarConfig)
async def get_calendar_config(config: CalendarConfig):
    """Business calendar used for scheduling."""
    return config
