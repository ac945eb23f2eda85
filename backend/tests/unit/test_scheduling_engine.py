from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from app.core.exceptions import (
    ConcurrencyConflictError,
    NotFoundError,
    SchedulingFailureError,
)
from app.models.enums import IntervalKind, TaskStatus, UnscheduledReason
from app.models.schedule import (
    BusinessCalendarConfig,
    OccupiedInterval,
    ScheduleSegment,
    ScheduleWrite,
)
from app.models.task import Task
from app.services.concurrency_guard import ConcurrencyGuard
from app.services.scheduling_engine import SchedulingEngine, cascade_window, plan_placement

FRIDAY = date(2026, 3, 13)
THURSDAY = FRIDAY - timedelta(days=1)
WEDNESDAY = FRIDAY - timedelta(days=2)


def _task(
    estimated: Optional[int],
    *,
    due: Optional[date] = FRIDAY,
    logged: int = 0,
    task_id: Optional[UUID] = None,
    **fields,
) -> Task:
    now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    return Task(
        id=task_id or uuid4(),
        title="Draft motion",
        assignee_id="attorney-1",
        due_date=due,
        estimated_minutes=estimated,
        logged_minutes=logged,
        created_at=now,
        updated_at=now,
        **fields,
    )


def _busy(day: date, start: time, end: time, kind: IntervalKind = IntervalKind.EVENT) -> OccupiedInterval:
    return OccupiedInterval(
        date=day,
        start_time=start,
        end_time=end,
        duration_minutes=(end.hour * 60 + end.minute) - (start.hour * 60 + start.minute),
        kind=kind,
        source_id=uuid4(),
    )


def _spans(segments: list[ScheduleSegment]) -> list[tuple[date, time, time]]:
    return [(s.date, s.start_time, s.end_time) for s in segments]


# ===========================================
# plan_placement
# ===========================================


def test_empty_day_places_at_business_start() -> None:
    plan = plan_placement(_task(180), {}, BusinessCalendarConfig())

    assert plan.scheduled_date == FRIDAY
    assert plan.scheduled_start_time == time(9, 0)
    assert _spans(plan.segments) == [(FRIDAY, time(9, 0), time(12, 0))]
    assert plan.cascade_depth == 0


def test_first_sufficient_gap_after_event_wins() -> None:
    occupancy = {FRIDAY: [_busy(FRIDAY, time(10, 0), time(11, 0))]}

    plan = plan_placement(_task(120), occupancy, BusinessCalendarConfig())

    assert plan.scheduled_start_time == time(11, 0)
    assert _spans(plan.segments) == [(FRIDAY, time(11, 0), time(13, 0))]


def test_short_task_fills_the_first_gap() -> None:
    occupancy = {FRIDAY: [_busy(FRIDAY, time(10, 0), time(11, 0))]}

    plan = plan_placement(_task(45), occupancy, BusinessCalendarConfig())

    assert _spans(plan.segments) == [(FRIDAY, time(9, 0), time(9, 45))]


def test_overflow_cascades_to_previous_day_latest_slot() -> None:
    plan = plan_placement(_task(600), {}, BusinessCalendarConfig())

    assert _spans(plan.segments) == [
        (THURSDAY, time(17, 0), time(18, 0)),
        (FRIDAY, time(9, 0), time(18, 0)),
    ]
    assert plan.scheduled_date == THURSDAY
    assert plan.scheduled_start_time == time(17, 0)
    assert plan.cascade_depth == 1
    assert plan.reserved_minutes == 600


def test_overflow_next_to_claimed_block_takes_rest_of_due_date() -> None:
    occupancy = {FRIDAY: [_busy(FRIDAY, time(9, 0), time(14, 0), IntervalKind.TASK)]}

    plan = plan_placement(_task(300), occupancy, BusinessCalendarConfig())

    assert _spans(plan.segments) == [
        (THURSDAY, time(17, 0), time(18, 0)),
        (FRIDAY, time(14, 0), time(18, 0)),
    ]


def test_remaining_duration_subtracts_logged_time() -> None:
    plan = plan_placement(_task(240, logged=60), {}, BusinessCalendarConfig())

    assert plan.reserved_minutes == 180
    assert _spans(plan.segments) == [(FRIDAY, time(9, 0), time(12, 0))]


def test_nearly_done_task_reserves_minimum_block() -> None:
    plan = plan_placement(_task(60, logged=55), {}, BusinessCalendarConfig())

    assert plan.reserved_minutes == 15
    assert _spans(plan.segments) == [(FRIDAY, time(9, 0), time(9, 15))]


def test_overlogged_task_reserves_minimum_block() -> None:
    plan = plan_placement(_task(60, logged=90), {}, BusinessCalendarConfig())

    assert plan.reserved_minutes == 15


def test_estimate_is_rounded_up_to_granularity() -> None:
    plan = plan_placement(_task(50), {}, BusinessCalendarConfig())

    assert plan.reserved_minutes == 60
    assert _spans(plan.segments) == [(FRIDAY, time(9, 0), time(10, 0))]


def test_task_longer_than_a_day_spans_several_days() -> None:
    plan = plan_placement(_task(1200), {}, BusinessCalendarConfig())

    assert _spans(plan.segments) == [
        (WEDNESDAY, time(16, 0), time(18, 0)),
        (THURSDAY, time(9, 0), time(18, 0)),
        (FRIDAY, time(9, 0), time(18, 0)),
    ]
    assert plan.scheduled_date == WEDNESDAY
    assert plan.cascade_depth == 2
    assert sum(s.minutes for s in plan.segments) == 1200


def test_fully_booked_due_date_moves_whole_task_back() -> None:
    occupancy = {FRIDAY: [_busy(FRIDAY, time(9, 0), time(18, 0))]}

    plan = plan_placement(_task(60), occupancy, BusinessCalendarConfig())

    assert _spans(plan.segments) == [(THURSDAY, time(17, 0), time(18, 0))]
    assert plan.cascade_depth == 1


def test_cascade_day_uses_latest_gap_that_fits() -> None:
    occupancy = {
        FRIDAY: [_busy(FRIDAY, time(9, 0), time(18, 0))],
        THURSDAY: [_busy(THURSDAY, time(16, 0), time(18, 0))],
    }

    plan = plan_placement(_task(60), occupancy, BusinessCalendarConfig())

    assert _spans(plan.segments) == [(THURSDAY, time(15, 0), time(16, 0))]


def test_daily_capacity_limits_each_day() -> None:
    config = BusinessCalendarConfig(daily_capacity_minutes=240)

    plan = plan_placement(_task(300), {}, config)

    assert _spans(plan.segments) == [
        (THURSDAY, time(17, 0), time(18, 0)),
        (FRIDAY, time(14, 0), time(18, 0)),
    ]
    assert all(s.minutes <= 240 for s in plan.segments)


def test_events_count_against_daily_capacity() -> None:
    config = BusinessCalendarConfig(daily_capacity_minutes=480)
    occupancy = {FRIDAY: [_busy(FRIDAY, time(9, 0), time(10, 0))]}

    plan = plan_placement(_task(480), occupancy, config)

    assert _spans(plan.segments) == [
        (THURSDAY, time(17, 0), time(18, 0)),
        (FRIDAY, time(11, 0), time(18, 0)),
    ]


def test_cascade_exhaustion_raises_scheduling_failure() -> None:
    config = BusinessCalendarConfig(max_cascade_days=1)
    task = _task(1200)

    with pytest.raises(SchedulingFailureError) as exc_info:
        plan_placement(task, {}, config)

    assert exc_info.value.task_id == task.id
    assert exc_info.value.unplaced_minutes == 120
    assert exc_info.value.days_tried == 2


def test_plan_is_deterministic() -> None:
    task = _task(700)
    occupancy = {FRIDAY: [_busy(FRIDAY, time(13, 0), time(14, 0))]}

    assert plan_placement(task, occupancy, BusinessCalendarConfig()) == plan_placement(
        task, occupancy, BusinessCalendarConfig()
    )


def test_placement_never_goes_past_due_date() -> None:
    for estimated in (15, 240, 540, 541, 2000):
        plan = plan_placement(_task(estimated), {}, BusinessCalendarConfig())
        assert all(s.date <= FRIDAY for s in plan.segments)


def test_cascade_window_is_ascending_and_ends_at_due_date() -> None:
    window = cascade_window(FRIDAY, BusinessCalendarConfig(max_cascade_days=2))

    assert window == [WEDNESDAY, THURSDAY, FRIDAY]


# ===========================================
# SchedulingEngine
# ===========================================


def _gateway(task: Optional[Task], occupied: Optional[list] = None) -> AsyncMock:
    gateway = AsyncMock()
    gateway.get_task.return_value = task
    gateway.get_events_and_pinned_tasks.return_value = occupied or []
    gateway.get_claimed_segments.return_value = []
    gateway.write_schedule.return_value = (task.version + 1) if task else 1
    return gateway


def _engine(gateway: AsyncMock) -> SchedulingEngine:
    return SchedulingEngine(gateway, ConcurrencyGuard(max_retries=3), BusinessCalendarConfig())


@pytest.mark.asyncio
async def test_schedule_task_writes_plan_with_read_version() -> None:
    task = _task(120, version=4)
    gateway = _gateway(task)

    result = await _engine(gateway).schedule_task(task.id)

    assert result.scheduled is True
    assert result.scheduled_date == FRIDAY
    assert result.scheduled_start_time == time(9, 0)
    assert result.scheduled_end_time == time(11, 0)
    assert result.version == 5
    task_id, expected_version, write = gateway.write_schedule.await_args.args
    assert task_id == task.id
    assert expected_version == 4
    assert write.pinned is False
    assert _spans(write.segments) == [(FRIDAY, time(9, 0), time(11, 0))]
    gateway.get_events_and_pinned_tasks.assert_awaited_once_with(
        "attorney-1", FRIDAY - timedelta(days=14), FRIDAY, exclude_task_id=task.id
    )


@pytest.mark.asyncio
async def test_pinned_task_is_returned_unchanged() -> None:
    segment = ScheduleSegment(date=THURSDAY, start_time=time(13, 0), end_time=time(15, 0), minutes=120)
    task = _task(
        120,
        pinned=True,
        scheduled_date=THURSDAY,
        scheduled_start_time=time(13, 0),
        segments=[segment],
        version=3,
    )
    gateway = _gateway(task)

    result = await _engine(gateway).schedule_task(task.id)

    assert result.pinned is True
    assert result.scheduled_date == THURSDAY
    assert result.scheduled_start_time == time(13, 0)
    assert result.version == 3
    gateway.write_schedule.assert_not_awaited()
    gateway.get_events_and_pinned_tasks.assert_not_awaited()


@pytest.mark.asyncio
async def test_unchanged_task_is_not_rewritten() -> None:
    task = _task(
        120,
        scheduled_date=FRIDAY,
        scheduled_start_time=time(9, 0),
        segments=[ScheduleSegment(date=FRIDAY, start_time=time(9, 0), end_time=time(11, 0), minutes=120)],
        version=2,
    )
    gateway = _gateway(task)
    engine = _engine(gateway)

    first = await engine.schedule_task(task.id)
    second = await engine.schedule_task(task.id)

    assert first == second
    assert first.version == 2
    gateway.write_schedule.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_due_date_clears_existing_placement() -> None:
    task = _task(
        120,
        due=None,
        scheduled_date=FRIDAY,
        scheduled_start_time=time(9, 0),
        segments=[ScheduleSegment(date=FRIDAY, start_time=time(9, 0), end_time=time(11, 0), minutes=120)],
    )
    gateway = _gateway(task)

    result = await _engine(gateway).schedule_task(task.id)

    assert result.scheduled is False
    assert result.reason == UnscheduledReason.MISSING_DUE_DATE
    assert result.scheduled_date is None
    gateway.write_schedule.assert_awaited_once_with(task.id, task.version, ScheduleWrite())


@pytest.mark.asyncio
async def test_missing_estimate_without_placement_writes_nothing() -> None:
    task = _task(None)
    gateway = _gateway(task)

    result = await _engine(gateway).schedule_task(task.id)

    assert result.scheduled is False
    assert result.reason == UnscheduledReason.MISSING_ESTIMATE
    gateway.write_schedule.assert_not_awaited()


@pytest.mark.asyncio
async def test_completed_task_is_not_placed() -> None:
    task = _task(120, status=TaskStatus.DONE)
    gateway = _gateway(task)

    result = await _engine(gateway).schedule_task(task.id)

    assert result.reason == UnscheduledReason.COMPLETED
    gateway.write_schedule.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_task_raises_not_found() -> None:
    gateway = _gateway(None)

    with pytest.raises(NotFoundError):
        await _engine(gateway).schedule_task(uuid4())


@pytest.mark.asyncio
async def test_version_conflict_rereads_and_retries() -> None:
    task = _task(120, version=1)
    gateway = _gateway(task)
    gateway.write_schedule.side_effect = [ConcurrencyConflictError(task.id, 1), 2]

    result = await _engine(gateway).schedule_task(task.id)

    assert result.version == 2
    assert gateway.get_task.await_count == 2
    assert gateway.write_schedule.await_count == 2


@pytest.mark.asyncio
async def test_scheduling_failure_propagates() -> None:
    task = _task(60)
    gateway = _gateway(task)
    gateway.get_events_and_pinned_tasks.return_value = [
        _busy(FRIDAY - timedelta(days=offset), time(9, 0), time(18, 0)) for offset in range(15)
    ]

    with pytest.raises(SchedulingFailureError):
        await _engine(gateway).schedule_task(task.id)

    gateway.write_schedule.assert_not_awaited()


@pytest.mark.asyncio
async def test_available_slots_filters_by_duration() -> None:
    gateway = _gateway(None, occupied=[_busy(FRIDAY, time(10, 0), time(11, 0))])
    gateway.get_claimed_segments.return_value = [
        _busy(FRIDAY, time(11, 0), time(17, 0), IntervalKind.TASK)
    ]

    slots = await _engine(gateway).available_slots(FRIDAY, 60, "attorney-1")

    assert [(s.start_time, s.end_time) for s in slots] == [
        (time(9, 0), time(10, 0)),
        (time(17, 0), time(18, 0)),
    ]
    assert await _engine(gateway).available_slots(FRIDAY, 90, "attorney-1") == []
