"""
Appointment availability

Every conflict is decided by one rule: a candidate slot [start, start + duration)
conflicts with an occupied interval (a live appointment or a blocked time) when it
overlaps that interval widened by the buffer on both sides. Intervals are
half-open, so a slot ending exactly where a buffered interval begins is free.

All datetimes are naive UTC. Working hours are whole UTC hours.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

SUNDAY = 6


class InvalidRangeError(ValueError):
    """Raised when a range ends before it starts"""


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end < self.start:
            raise InvalidRangeError("Interval end must not be before its start")

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def expanded(self, minutes: int) -> "Interval":
        pad = timedelta(minutes=minutes)
        return Interval(self.start - pad, self.end + pad)


@dataclass(frozen=True)
class AvailabilityRules:
    workday_start: int = 11
    workday_end: int = 16
    slot_minutes: int = 60
    buffer_minutes: int = 15
    booking_window_days: int = 14

    @classmethod
    def from_settings(cls, settings) -> "AvailabilityRules":
        return cls(
            workday_start=settings.workday_start,
            workday_end=settings.workday_end,
            slot_minutes=settings.slot_minutes,
            buffer_minutes=settings.buffer_minutes,
            booking_window_days=settings.booking_window_days,
        )

    def opening(self, day: date) -> datetime:
        return datetime.combine(day, time(0)) + timedelta(hours=self.workday_start)

    def closing(self, day: date) -> datetime:
        # workday_end may be 24
        return datetime.combine(day, time(0)) + timedelta(hours=self.workday_end)


def conflicts(slot: Interval, occupied: Iterable[Interval], buffer_minutes: int) -> bool:
    """True when the slot overlaps any occupied interval after buffer expansion"""
    return any(slot.overlaps(busy.expanded(buffer_minutes)) for busy in occupied)


def is_working_day(day: date) -> bool:
    return day.weekday() != SUNDAY


def day_slots(day: date, rules: AvailabilityRules, duration: Optional[int] = None) -> list[datetime]:
    """Candidate starts for a day, every slot_minutes, ending by close of business"""
    if not is_working_day(day):
        return []

    length = timedelta(minutes=duration or rules.slot_minutes)
    step = timedelta(minutes=rules.slot_minutes)
    close = rules.closing(day)

    slots = []
    start = rules.opening(day)
    while start + length <= close:
        slots.append(start)
        start += step
    return slots


def free_slots_for_day(
    day: date,
    rules: AvailabilityRules,
    occupied: Iterable[Interval],
    now: datetime,
    duration: Optional[int] = None,
) -> list[datetime]:
    length = timedelta(minutes=duration or rules.slot_minutes)
    occupied = list(occupied)
    return [
        start
        for start in day_slots(day, rules, duration)
        if now < start <= latest_start(rules, now)
        and not conflicts(Interval(start, start + length), occupied, rules.buffer_minutes)
    ]


def available_slots(
    start_date: date,
    end_date: date,
    rules: AvailabilityRules,
    occupied: Iterable[Interval],
    now: datetime,
    duration: Optional[int] = None,
) -> dict[date, list[datetime]]:
    """Free start times per day for an inclusive date range; days without slots are omitted"""
    if end_date < start_date:
        raise InvalidRangeError("End date must not be before start date")

    occupied = list(occupied)
    result: dict[date, list[datetime]] = {}
    day = start_date
    while day <= end_date:
        slots = free_slots_for_day(day, rules, occupied, now, duration)
        if slots:
            result[day] = slots
        day += timedelta(days=1)
    return result


def booking_window(rules: AvailabilityRules, now: datetime) -> tuple[date, date]:
    """Today plus the following days, booking_window_days in total"""
    start = now.date()
    return start, start + timedelta(days=rules.booking_window_days - 1)


def latest_start(rules: AvailabilityRules, now: datetime) -> datetime:
    return now + timedelta(days=rules.booking_window_days)


def validate_proposed_time(
    start: datetime,
    rules: AvailabilityRules,
    occupied: Iterable[Interval],
    now: datetime,
    duration: Optional[int] = None,
) -> Optional[str]:
    """
    Check a requested start time. Returns None when bookable, otherwise the
    reason shown to the client. Checks run in a fixed order so the message
    names the first rule broken.
    """
    length = timedelta(minutes=duration or rules.slot_minutes)
    end = start + length

    if start > latest_start(rules, now):
        return f"Appointment is outside the {rules.booking_window_days}-day booking window"

    if not is_working_day(start.date()):
        return "Appointments are only available Monday to Saturday"

    if start < rules.opening(start.date()) or end > rules.closing(start.date()):
        return (
            f"Appointment must be between {rules.workday_start:02d}:00 "
            f"and {rules.workday_end:02d}:00"
        )

    if start < now:
        return "Cannot book times in the past"

    if conflicts(Interval(start, end), occupied, rules.buffer_minutes):
        return "This time slot is no longer available"

    return None


def find_next_available_slot(
    rules: AvailabilityRules,
    occupied: Iterable[Interval],
    now: datetime,
    duration: Optional[int] = None,
) -> Optional[datetime]:
    occupied = list(occupied)
    first_day, last_day = booking_window(rules, now)
    day = first_day
    while day <= last_day:
        slots = free_slots_for_day(day, rules, occupied, now, duration)
        if slots:
            return slots[0]
        day += timedelta(days=1)
    return None
