from datetime import date, datetime, timedelta

import pytest

from studiodesk.domain.appointments.availability import (
    AvailabilityRules,
    Interval,
    InvalidRangeError,
    available_slots,
    conflicts,
    day_slots,
    booking_window,
    find_next_available_slot,
    validate_proposed_time,
)

MONDAY = date(2026, 11, 16)
SUNDAY = date(2026, 11, 15)
NOW = datetime(2026, 11, 10, 9, 0)
RULES = AvailabilityRules(workday_start=11, workday_end=16, slot_minutes=60, buffer_minutes=15)


def at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


EXISTING = [Interval(at(13), at(14))]


def test_slot_touching_buffer_before_existing_is_rejected():
    reason = validate_proposed_time(at(12, 45), RULES, EXISTING, NOW)
    assert reason == "This time slot is no longer available"


def test_slot_after_buffer_is_accepted():
    assert validate_proposed_time(at(14, 15), RULES, EXISTING, NOW) is None


def test_buffer_boundaries_are_half_open():
    # busy window widened to 12:45-14:15
    assert not conflicts(Interval(at(11, 45), at(12, 45)), EXISTING, 15)
    assert conflicts(Interval(at(11, 46), at(12, 46)), EXISTING, 15)
    assert not conflicts(Interval(at(14, 15), at(15, 15)), EXISTING, 15)
    assert conflicts(Interval(at(14, 14), at(15, 14)), EXISTING, 15)


def test_day_slots_fit_inside_working_hours():
    assert day_slots(MONDAY, RULES) == [at(11), at(12), at(13), at(14), at(15)]
    assert day_slots(MONDAY, RULES, duration=120) == [at(11), at(12), at(13), at(14)]


def test_sunday_has_no_slots():
    assert day_slots(SUNDAY, RULES) == []
    reason = validate_proposed_time(at(12, day=SUNDAY), RULES, [], NOW)
    assert reason == "Appointments are only available Monday to Saturday"


def test_available_slots_skip_existing_appointment():
    slots = available_slots(MONDAY, MONDAY, RULES, EXISTING, NOW)
    # 12:00-13:00 touches the 12:45 buffer, 14:00 overlaps the appointment
    assert slots[MONDAY] == [at(11), at(15)]


def test_blocked_range_removes_every_overlapping_slot():
    blocked = [Interval(at(11), at(16))]
    assert available_slots(MONDAY, MONDAY, RULES, blocked, NOW) == {}


def test_available_slots_reject_inverted_range():
    with pytest.raises(InvalidRangeError):
        available_slots(MONDAY, MONDAY - timedelta(days=1), RULES, [], NOW)


def test_outside_working_hours_rejected():
    reason = validate_proposed_time(at(15, 30), RULES, [], NOW)
    assert reason == "Appointment must be between 11:00 and 16:00"
    assert validate_proposed_time(at(10), RULES, [], NOW) is not None


def test_past_and_far_future_rejected():
    assert validate_proposed_time(at(12), RULES, [], at(13)) == "Cannot book times in the past"
    far = NOW + timedelta(days=30)
    reason = validate_proposed_time(far.replace(hour=12), RULES, [], NOW)
    assert reason == "Appointment is outside the 14-day booking window"


def test_next_available_slot_skips_busy_day():
    now = at(8)
    busy = [Interval(at(11), at(16))]
    assert find_next_available_slot(RULES, busy, now) == at(11, day=MONDAY + timedelta(days=1))


def test_interval_rejects_inverted_bounds():
    with pytest.raises(InvalidRangeError):
        Interval(at(12), at(11))


def test_every_offered_slot_in_the_window_can_be_booked():
    now = datetime(2026, 10, 19, 10, 0)
    first, last = booking_window(RULES, now)
    assert (first, last) == (date(2026, 10, 19), date(2026, 11, 1))

    offered = available_slots(first, last, RULES, [], now)
    starts = [start for day in offered.values() for start in day]
    assert starts
    assert max(starts) <= now + timedelta(days=14)
    assert [validate_proposed_time(start, RULES, [], now) for start in starts] == [None] * len(starts)


def test_slots_past_the_window_are_not_offered():
    now = datetime(2026, 10, 19, 10, 0)
    last_day = date(2026, 11, 2)
    assert available_slots(last_day, last_day, RULES, [], now) == {}
