from datetime import date, time

from app.models.enums import IntervalKind
from app.models.schedule import BusinessCalendarConfig, OccupiedInterval, ScheduleSlot
from app.services.slot_calculator import (
    TimeInterval,
    free_slots,
    merge_intervals,
    occupied_minutes,
)

DAY = date(2026, 3, 13)


def _busy(start: time, end: time, day: date = DAY) -> OccupiedInterval:
    return OccupiedInterval(
        date=day,
        start_time=start,
        end_time=end,
        duration_minutes=(end.hour * 60 + end.minute) - (start.hour * 60 + start.minute),
        kind=IntervalKind.EVENT,
    )


def _spans(slots: list[ScheduleSlot]) -> list[tuple[time, time]]:
    return [(slot.start_time, slot.end_time) for slot in slots]


def test_empty_day_is_one_business_hours_slot() -> None:
    slots = free_slots(DAY, "attorney-1", [], BusinessCalendarConfig())

    assert _spans(slots) == [(time(9, 0), time(18, 0))]
    assert slots[0].duration_minutes == 540
    assert slots[0].date == DAY


def test_gaps_around_events_are_ascending() -> None:
    occupied = [_busy(time(14, 0), time(15, 0)), _busy(time(10, 0), time(11, 0))]

    slots = free_slots(DAY, "attorney-1", occupied, BusinessCalendarConfig())

    assert _spans(slots) == [
        (time(9, 0), time(10, 0)),
        (time(11, 0), time(14, 0)),
        (time(15, 0), time(18, 0)),
    ]


def test_overlapping_and_adjacent_intervals_are_coalesced() -> None:
    merged = merge_intervals(
        [TimeInterval(600, 660), TimeInterval(630, 700), TimeInterval(700, 720), TimeInterval(800, 810)]
    )

    assert [(i.start_minutes, i.end_minutes) for i in merged] == [(600, 720), (800, 810)]


def test_gaps_are_quantized_and_narrow_gaps_dropped() -> None:
    occupied = [
        _busy(time(9, 0), time(9, 50)),
        _busy(time(10, 0), time(10, 40)),
        _busy(time(16, 5), time(18, 0)),
    ]

    slots = free_slots(DAY, "attorney-1", occupied, BusinessCalendarConfig())

    # 09:50-10:00 is narrower than 15 min; 10:40-16:05 shrinks to 10:45-16:00
    assert _spans(slots) == [(time(10, 45), time(16, 0))]
    assert slots[0].duration_minutes == 315


def test_intervals_outside_business_hours_are_ignored() -> None:
    occupied = [_busy(time(7, 0), time(9, 30)), _busy(time(17, 30), time(20, 0))]
    config = BusinessCalendarConfig()

    assert _spans(free_slots(DAY, "attorney-1", occupied, config)) == [(time(9, 30), time(17, 30))]
    assert occupied_minutes(occupied, config) == 60


def test_fully_booked_day_has_no_slots() -> None:
    occupied = [_busy(time(8, 0), time(19, 0))]

    assert free_slots(DAY, "attorney-1", occupied, BusinessCalendarConfig()) == []


def test_custom_business_window() -> None:
    config = BusinessCalendarConfig(
        business_start=time(8, 30),
        business_end=time(12, 0),
        min_granularity_minutes=30,
    )

    slots = free_slots(DAY, "attorney-1", [_busy(time(9, 10), time(10, 0))], config)

    assert _spans(slots) == [(time(8, 30), time(9, 0)), (time(10, 0), time(12, 0))]
