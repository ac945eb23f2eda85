from datetime import date, datetime, time, timezone
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
from fastapi import HTTPException

from app.api.tasks import commit_placement, create_task, schedule_task, update_task
from app.core.exceptions import (
    InvalidPlacementError,
    RetryExhaustedError,
    SchedulingFailureError,
)
from app.models.enums import IntervalKind
from app.models.schedule import OccupiedInterval, PlacementRequest
from app.models.task import Task, TaskCreate, TaskUpdate

FRIDAY = date(2026, 3, 13)


def _make_task(task_id: UUID | None = None, **fields) -> Task:
    timestamp = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    return Task(
        id=task_id or uuid4(),
        title="Draft motion",
        assignee_id="attorney-1",
        due_date=FRIDAY,
        estimated_minutes=120,
        created_at=timestamp,
        updated_at=timestamp,
        **fields,
    )


@pytest.mark.asyncio
async def test_create_task_schedules_and_returns_fresh_row() -> None:
    created = _make_task()
    placed = created.model_copy(update={"scheduled_date": FRIDAY, "scheduled_start_time": time(9, 0), "version": 2})
    repo = AsyncMock()
    repo.create.return_value = created
    repo.get.return_value = placed
    coordinator = AsyncMock()

    result = await create_task(
        task=TaskCreate(title="Draft motion", assignee_id="attorney-1", due_date=FRIDAY, estimated_minutes=120),
        repo=repo,
        coordinator=coordinator,
    )

    coordinator.on_task_created.assert_awaited_once_with(created)
    assert result.version == 2
    assert result.scheduled_start_time == time(9, 0)


@pytest.mark.asyncio
async def test_create_task_maps_exhausted_retries_to_409() -> None:
    created = _make_task()
    repo = AsyncMock()
    repo.create.return_value = created
    coordinator = AsyncMock()
    coordinator.on_task_created.side_effect = RetryExhaustedError(created.id, 1, 3)

    with pytest.raises(HTTPException) as exc_info:
        await create_task(
            task=TaskCreate(title="Draft motion", assignee_id="attorney-1"),
            repo=repo,
            coordinator=coordinator,
        )

    assert exc_info.value.status_code == 409
    assert exc_info.value.detail["retryable"] is True


@pytest.mark.asyncio
async def test_update_task_passes_before_and_after_to_coordinator() -> None:
    before = _make_task()
    after = before.model_copy(update={"estimated_minutes": 60, "version": 2})
    repo = AsyncMock()
    repo.get.side_effect = [before, after]
    repo.update.return_value = after
    coordinator = AsyncMock()

    result = await update_task(
        task_id=before.id,
        update=TaskUpdate(estimated_minutes=60),
        repo=repo,
        coordinator=coordinator,
    )

    coordinator.on_task_updated.assert_awaited_once_with(before, after)
    assert result.estimated_minutes == 60


@pytest.mark.asyncio
async def test_update_missing_task_returns_404() -> None:
    repo = AsyncMock()
    repo.get.return_value = None

    with pytest.raises(HTTPException) as exc_info:
        await update_task(task_id=uuid4(), update=TaskUpdate(title="x"), repo=repo, coordinator=AsyncMock())

    assert exc_info.value.status_code == 404
    repo.update.assert_not_awaited()


@pytest.mark.asyncio
async def test_schedule_task_reports_cascade_exhaustion_as_422() -> None:
    task_id = uuid4()
    engine = AsyncMock()
    engine.schedule_task.side_effect = SchedulingFailureError(task_id, 120, 15, date(2026, 2, 27))

    with pytest.raises(HTTPException) as exc_info:
        await schedule_task(task_id=task_id, engine=engine)

    assert exc_info.value.status_code == 422
    assert exc_info.value.detail["unplaced_minutes"] == 120


@pytest.mark.asyncio
async def test_rejected_placement_lists_conflicts() -> None:
    task_id = uuid4()
    hearing = OccupiedInterval(
        date=FRIDAY,
        start_time=time(10, 0),
        end_time=time(11, 0),
        duration_minutes=60,
        kind=IntervalKind.EVENT,
        source_id=uuid4(),
    )
    coordinator = AsyncMock()
    coordinator.commit_placement.side_effect = InvalidPlacementError(
        "overlaps", reason="overlap", conflicts=[hearing]
    )

    with pytest.raises(HTTPException) as exc_info:
        await commit_placement(
            task_id=task_id,
            placement=PlacementRequest(date=FRIDAY, start_time=time(10, 30)),
            coordinator=coordinator,
        )

    assert exc_info.value.status_code == 422
    assert exc_info.value.detail["reason"] == "overlap"
    assert exc_info.value.detail["conflicts"][0]["kind"] == "EVENT"
    assert exc_info.value.detail["conflicts"][0]["endTime"] == "11:00"
