from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class SlotView:
    start: datetime
    end: datetime
    available: bool
    booked_count: int


@dataclass(frozen=True)
class DaySlot:
    date: date
    weekday: str
    is_open: bool
    capacity: int
    remaining: int
    slots: tuple[SlotView, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ProductAvailability:
    product_id: str
    start: datetime
    end: datetime
    duration_minutes: int
    open_time: str
    close_time: str
    open_days: tuple[str, ...]
    days: tuple[DaySlot, ...]
