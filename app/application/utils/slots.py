from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from app.domain.entities.order import OrderItem
from app.domain.entities.service_config import (
    DEFAULT_CLOSE_TIME,
    DEFAULT_OPEN_TIME,
    WEEKDAY_NAMES,
    ServiceConfig,
    parse_time_of_day,
)


@dataclass(frozen=True)
class DayWindow:
    """Open hours of one calendar day for a service."""

    day: date
    weekday: str
    is_open: bool
    open_at: datetime
    close_at: datetime
    duration: timedelta
    max_slots: int
    effective_capacity: int

    def slot_index(self, slot: datetime) -> int | None:
        """Index of ``slot`` in the day's slot grid, None if it falls between boundaries."""
        offset = slot - self.open_at
        if offset % self.duration:
            return None
        return offset // self.duration

    def slot_starts(self) -> list[datetime]:
        return [self.open_at + i * self.duration for i in range(self.max_slots)]


@dataclass(frozen=True)
class DayBookings:
    total: int
    per_slot: dict[datetime, int]

    def count_at(self, slot: datetime) -> int:
        return self.per_slot.get(slot, 0)


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def combine(day: date, hhmm: str, fallback: str, tz: tzinfo) -> datetime:
    hour, minute = parse_time_of_day(hhmm) or parse_time_of_day(fallback)
    return datetime.combine(day, time(hour, minute), tzinfo=tz)


def day_window(config: ServiceConfig, day: date, tz: tzinfo) -> DayWindow:
    duration = timedelta(minutes=config.duration_minutes)
    open_at = combine(day, config.open_time, DEFAULT_OPEN_TIME, tz)
    close_at = combine(day, config.close_time, DEFAULT_CLOSE_TIME, tz)
    if close_at <= open_at:
        close_at = open_at + duration
    max_slots = max(1, (close_at - open_at) // duration)
    capacity = min(max_slots, config.daily_capacity or max_slots)
    weekday = weekday_name(day)
    return DayWindow(
        day=day,
        weekday=weekday,
        is_open=config.is_open_on(weekday),
        open_at=open_at,
        close_at=close_at,
        duration=duration,
        max_slots=max_slots,
        effective_capacity=max(1, capacity),
    )


def start_of_day(value: datetime | date, tz: tzinfo) -> datetime:
    if isinstance(value, datetime):
        local = value.astimezone(tz) if value.tzinfo else value.replace(tzinfo=tz)
        day = local.date()
    else:
        day = value
    return datetime.combine(day, time.min, tzinfo=tz)


def truncate_to_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


def to_local(value: datetime, tz: tzinfo) -> datetime:
    """Express an instant in the marketplace zone; naive values are taken as local."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def parse_instant(value: str | None, tz: tzinfo) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into a local, minute-truncated instant."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return truncate_to_minute(to_local(parsed, tz))


def aggregate_day_bookings(bookings: list[OrderItem], day: date, tz: tzinfo) -> DayBookings:
    """Count slot-holding bookings of one calendar day, in total and per start minute."""
    total = 0
    per_slot: dict[datetime, int] = {}
    for booking in bookings:
        if not booking.holds_slot:
            continue
        start = truncate_to_minute(to_local(booking.appointment_at, tz))
        if start.date() != day:
            continue
        total += 1
        per_slot[start] = per_slot.get(start, 0) + 1
    return DayBookings(total=total, per_slot=per_slot)
