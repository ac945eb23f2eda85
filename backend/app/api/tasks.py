"""
Tasks API endpoints.

CRUD operations for tasks, time logging, and scheduling actions
(auto-schedule, drag placement, unpin).
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import Coordinator, Engine, TaskRepo
from app.api.errors import to_http_exception
from app.core.exceptions import SchedulerAppError
from app.models.schedule import PlacementRequest, ScheduleResult
from app.models.task import Task, TaskCreate, TaskUpdate, TimeEntry, TimeEntryCreate

router = APIRouter()


async def _get_task_or_404(repo: TaskRepo, task_id: UUID) -> Task:
    task = await repo.get(task_id)
    if task:
        return task
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Task {task_id} not found",
    )


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    task: TaskCreate,
    repo: TaskRepo,
    coordinator: Coordinator,
):
    """Create a new task and place it on the assignee's calendar."""
    created_task = await repo.create(task)

    try:
        await coordinator.on_task_created(created_task)
    except SchedulerAppError as e:
        raise to_http_exception(e)

    return await _get_task_or_404(repo, created_task.id)


@router.get("", response_model=list[Task])
async def list_tasks(
    repo: TaskRepo,
    assignee_id: Optional[str] = Query(None, alias="assigneeId", description="Filter by assignee"),
    include_done: bool = Query(False, alias="includeDone", description="Include completed tasks"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    """List tasks with optional filters."""
    return await repo.list(
        assignee_id=assignee_id,
        include_done=include_done,
        limit=limit,
        offset=offset,
    )


@router.get("/{task_id}", response_model=Task)
async def get_task(
    task_id: UUID,
    repo: TaskRepo,
):
    """Get a task by ID."""
    return await _get_task_or_404(repo, task_id)


@router.patch("/{task_id}", response_model=Task)
async def update_task(
    task_id: UUID,
    update: TaskUpdate,
    repo: TaskRepo,
    coordinator: Coordinator,
):
    """Update a task; its placement is recomputed when a scheduling input changed."""
    current_task = await _get_task_or_404(repo, task_id)

    try:
        updated_task = await repo.update(task_id, update)
        await coordinator.on_task_updated(current_task, updated_task)
    except SchedulerAppError as e:
        raise to_http_exception(e)

    return await _get_task_or_404(repo, task_id)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    repo: TaskRepo,
    coordinator: Coordinator,
):
    """Delete a task."""
    task = await _get_task_or_404(repo, task_id)

    deleted = await repo.delete(task_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task {task_id} not found",
        )
    await coordinator.on_task_deleted(task)


@router.get("/{task_id}/time-entries", response_model=list[TimeEntry])
async def list_time_entries(
    task_id: UUID,
    repo: TaskRepo,
):
    """List time logged against a task."""
    await _get_task_or_404(repo, task_id)
    return await repo.list_time_entries(task_id)


@router.post(
    "/{task_id}/time-entries",
    response_model=TimeEntry,
    status_code=status.HTTP_201_CREATED,
)
async def log_time(
    task_id: UUID,
    entry: TimeEntryCreate,
    repo: TaskRepo,
    coordinator: Coordinator,
):
    """Log time against a task; the remaining work is re-planned."""
    try:
        time_entry = await repo.add_time_entry(task_id, entry)
        task = await _get_task_or_404(repo, task_id)
        await coordinator.on_time_logged(task)
    except SchedulerAppError as e:
        raise to_http_exception(e)
    return time_entry


@router.post("/{task_id}/schedule", response_model=ScheduleResult)
async def schedule_task(
    task_id: UUID,
    engine: Engine,
):
    """
    Run the scheduling engine for a task.

    Unlike the implicit runs after create/update, a cascade that runs out
    of days is reported as 422.
    """
    try:
        return await engine.schedule_task(task_id)
    except SchedulerAppError as e:
        raise to_http_exception(e)


@router.post("/{task_id}/placement", response_model=ScheduleResult)
async def commit_placement(
    task_id: UUID,
    placement: PlacementRequest,
    coordinator: Coordinator,
):
    """Pin a task at a dragged-to position."""
    try:
        return await coordinator.commit_placement(task_id, placement.date, placement.start_time)
    except SchedulerAppError as e:
        raise to_http_exception(e)


@router.delete("/{task_id}/pin", response_model=ScheduleResult)
async def release_pin(
    task_id: UUID,
    coordinator: Coordinator,
):
    """Return a pinned task to automatic scheduling."""
    try:
        return await coordinator.release_pin(task_id)
    except SchedulerAppError as e:
        raise to_http_exception(e)
