from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable

from app.application.exceptions import NotFoundError, ValidationError
from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.ports.product_repository import ProductRepositoryPort
from app.application.utils.slots import aggregate_day_bookings, day_window, start_of_day
from app.domain.entities.availability import DaySlot, ProductAvailability, SlotView
from app.domain.entities.order import OrderItem
from app.domain.entities.service_config import ServiceConfig

DEFAULT_WINDOW_DAYS = 14
MAX_WINDOW_DAYS = 90


def clamp_window(days: int | None, default: int = DEFAULT_WINDOW_DAYS, maximum: int = MAX_WINDOW_DAYS) -> int:
    if days is None:
        days = default
    return min(max(1, int(days)), maximum)


def compute_availability(
    config: ServiceConfig,
    bookings: list[OrderItem],
    start: datetime | date,
    window_days: int,
    tz: tzinfo,
) -> list[DaySlot]:
    """
    Day-by-day, slot-by-slot view of a service's open hours.

    Pure: the result depends only on the arguments. A slot is available when
    nobody holds it and the day has not reached its effective capacity, so a
    free slot can still be unavailable once the daily cap is used up.
    """
    first_day = start_of_day(start, tz).date()
    days: list[DaySlot] = []
    for offset in range(clamp_window(window_days)):
        window = day_window(config, first_day + timedelta(days=offset), tz)
        if not window.is_open:
            days.append(DaySlot(date=window.day, weekday=window.weekday, is_open=False, capacity=0, remaining=0))
            continue

        booked = aggregate_day_bookings(bookings, window.day, tz)
        day_full = booked.total >= window.effective_capacity
        slots = tuple(
            SlotView(
                start=slot_start,
                end=slot_start + window.duration,
                available=booked.count_at(slot_start) == 0 and not day_full,
                booked_count=booked.count_at(slot_start),
            )
            for slot_start in window.slot_starts()
        )
        days.append(
            DaySlot(
                date=window.day,
                weekday=window.weekday,
                is_open=True,
                capacity=window.effective_capacity,
                remaining=max(0, window.effective_capacity - booked.total),
                slots=slots,
            )
        )
    return days


class GetProductAvailabilityUseCase:
    def __init__(
        self,
        products: ProductRepositoryPort,
        bookings: BookingRepositoryPort,
        timezone: tzinfo,
        default_days: int = DEFAULT_WINDOW_DAYS,
        max_days: int = MAX_WINDOW_DAYS,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._products = products
        self._bookings = bookings
        self._timezone = timezone
        self._default_days = default_days
        self._max_days = min(max_days, MAX_WINDOW_DAYS)
        self._now = now or (lambda: datetime.now(self._timezone))
        self._logger = logging.getLogger(__name__)

    def execute(self, product_id: str, start: datetime | date | None = None, days: int | None = None) -> ProductAvailability:
        if not product_id:
            raise ValidationError("Missing product id")
        product = self._products.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found", product_id=product_id)
        if not product.is_service:
            raise ValidationError(
                f'"{product.title}" is not a bookable service',
                product_id=product.id,
                product_title=product.title,
            )

        config = product.service_config or ServiceConfig()
        span = clamp_window(days, self._default_days, self._max_days)
        window_start = start_of_day(start if start is not None else self._now(), self._timezone)
        window_end = window_start + timedelta(days=span)

        existing = self._bookings.find_bookings(product.id, window_start, window_end)
        days_view = compute_availability(config, existing, window_start, span, self._timezone)

        self._logger.debug(
            "Availability computed",
            extra={"product_id": product.id, "reason": f"days={span} bookings={len(existing)}"},
        )
        return ProductAvailability(
            product_id=product.id,
            start=window_start,
            end=window_end,
            duration_minutes=config.duration_minutes,
            open_time=config.open_time,
            close_time=config.close_time,
            open_days=config.open_days,
            days=tuple(days_view),
        )
