"""
Calendar events API endpoints.

Events are fixed occupied intervals; creating or moving one re-plans only
the auto-scheduled tasks it now overlaps.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import Coordinator, EventRepo
from app.api.errors import to_http_exception
from app.core.exceptions import SchedulerAppError
from app.models.event import Event, EventCreate, EventUpdate

router = APIRouter()


@router.post("", response_model=Event, status_code=status.HTTP_201_CREATED)
async def create_event(
    event: EventCreate,
    repo: EventRepo,
    coordinator: Coordinator,
):
    """Create an event."""
    try:
        created_event, _ = await coordinator.save_event(
            event.assignee_id,
            event.date,
            lambda: repo.create(event),
        )
    except SchedulerAppError as e:
        raise to_http_exception(e)
    return created_event


@router.get("", response_model=list[Event])
async def list_events(
    repo: EventRepo,
    assignee_id: Optional[str] = Query(None, alias="assigneeId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
):
    """List events with optional filters."""
    return await repo.list(assignee_id=assignee_id, start_date=start_date, end_date=end_date)


@router.get("/{event_id}", response_model=Event)
async def get_event(
    event_id: UUID,
    repo: EventRepo,
):
    """Get an event by ID."""
    event = await repo.get(event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
    return event


@router.patch("/{event_id}", response_model=Event)
async def update_event(
    event_id: UUID,
    update: EventUpdate,
    repo: EventRepo,
    coordinator: Coordinator,
):
    """Update an event."""
    current_event = await get_event(event_id, repo)

    try:
        updated_event, _ = await coordinator.save_event(
            current_event.assignee_id,
            update.date or current_event.date,
            lambda: repo.update(event_id, update),
        )
    except SchedulerAppError as e:
        raise to_http_exception(e)
    return updated_event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID,
    repo: EventRepo,
):
    """Delete an event. Tasks keep their positions."""
    deleted = await repo.delete(event_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
