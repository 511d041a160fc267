from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo

from app.application.exceptions import (
    BookingError,
    DailyCapacityError,
    DayClosedError,
    DuplicateSlotError,
    MisalignedSlotError,
    NotFoundError,
    OutOfWindowError,
    SlotTakenError,
    ValidationError,
)
from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.utils.slots import aggregate_day_bookings, day_window, parse_instant, start_of_day
from app.domain.entities.product import Product
from app.domain.entities.service_config import ServiceConfig


@dataclass(frozen=True)
class RequestedBooking:
    product_id: str
    quantity: int = 1
    meta: str | None = None  # ISO slot chosen by the buyer


@dataclass(frozen=True)
class NormalizedBooking:
    index: int  # position of the line in the request
    product_id: str
    slot: datetime


@dataclass(frozen=True)
class ValidationOutcome:
    bookings: list[NormalizedBooking] = field(default_factory=list)
    errors: list[BookingError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class BookingValidator:
    """
    Re-checks requested slots against the latest persisted bookings.

    Runs at checkout time because availability shown to the buyer may be stale.
    Every line is checked so the caller can report all problems at once.
    """

    def __init__(self, bookings: BookingRepositoryPort, timezone: tzinfo) -> None:
        self._bookings = bookings
        self._timezone = timezone
        self._logger = logging.getLogger(__name__)

    def validate(self, items: list[RequestedBooking], products: dict[str, Product]) -> ValidationOutcome:
        accepted: list[NormalizedBooking] = []
        errors: list[BookingError] = []
        claimed: set[tuple[str, datetime]] = set()
        batch_per_day: dict[tuple[str, date], int] = {}

        for index, item in enumerate(items):
            product = products.get(item.product_id)
            if product is None:
                errors.append(NotFoundError(f"Product {item.product_id} not found", product_id=item.product_id))
                continue
            if not product.is_service:
                continue
            try:
                slot = self._parse_line(item, product)
                day = self._check_schedule(product, slot)
                key = (product.id, slot)
                if key in claimed:
                    raise DuplicateSlotError(
                        f'"{product.title}" is booked twice for {slot.isoformat()} in this checkout',
                        product_id=product.id,
                        product_title=product.title,
                    )
                claimed.add(key)
                self._check_capacity(product, slot, day, batch_per_day.get((product.id, day), 0))
            except BookingError as e:
                errors.append(e)
                continue

            batch_per_day[(product.id, day)] = batch_per_day.get((product.id, day), 0) + 1
            accepted.append(NormalizedBooking(index=index, product_id=product.id, slot=slot))

        if errors:
            self._logger.info(
                "Booking validation failed",
                extra={"reason": ", ".join(e.code for e in errors)},
            )
        return ValidationOutcome(bookings=accepted, errors=errors)

    def check_slot(self, product: Product, slot: datetime, moving: frozenset[str] = frozenset()) -> None:
        """
        Raise the first rule ``slot`` breaks for ``product``.
        Bookings whose ids are in ``moving`` are about to leave their slot and are not counted.
        """
        day = self._check_schedule(product, slot)
        self._check_capacity(product, slot, day, 0, moving)

    def _parse_line(self, item: RequestedBooking, product: Product) -> datetime:
        title = product.title
        if item.quantity != 1:
            raise ValidationError(
                f'"{title}" is a service and must be booked with quantity 1',
                product_id=product.id,
                product_title=title,
            )
        if not item.meta:
            raise ValidationError(
                f'Choose an appointment time for "{title}"',
                product_id=product.id,
                product_title=title,
            )
        slot = parse_instant(item.meta, self._timezone)
        if slot is None:
            raise ValidationError(
                f'Invalid appointment time for "{title}": {item.meta!r}',
                product_id=product.id,
                product_title=title,
            )
        return slot

    def _check_schedule(self, product: Product, slot: datetime) -> date:
        title = product.title
        config = product.service_config or ServiceConfig()
        window = day_window(config, slot.date(), self._timezone)
        if not window.is_open:
            raise DayClosedError(
                f'"{title}" is closed on {window.weekday.capitalize()}',
                product_id=product.id,
                product_title=title,
            )
        if slot < window.open_at or slot >= window.close_at:
            raise OutOfWindowError(
                f'"{title}" only takes bookings between {config.open_time} and {config.close_time}',
                product_id=product.id,
                product_title=title,
            )
        slot_index = window.slot_index(slot)
        if slot_index is None:
            raise MisalignedSlotError(
                f'"{title}" slots start every {config.duration_minutes} minutes from {config.open_time}',
                product_id=product.id,
                product_title=title,
            )
        if slot_index >= window.max_slots:
            raise OutOfWindowError(
                f'"{title}" appointment at {slot.strftime("%H:%M")} would run past closing time {config.close_time}',
                product_id=product.id,
                product_title=title,
            )
        return window.day

    def _check_capacity(
        self,
        product: Product,
        slot: datetime,
        day: date,
        pending_in_batch: int,
        moving: frozenset[str] = frozenset(),
    ) -> None:
        config = product.service_config or ServiceConfig()
        window = day_window(config, day, self._timezone)
        day_start = start_of_day(day, self._timezone)
        existing = [
            b
            for b in self._bookings.find_bookings(product.id, day_start, day_start + timedelta(days=1))
            if b.id not in moving
        ]
        booked = aggregate_day_bookings(existing, day, self._timezone)

        if booked.count_at(slot) > 0:
            raise SlotTakenError(
                f'{slot.strftime("%Y-%m-%d %H:%M")} is no longer available for "{product.title}"',
                product_id=product.id,
                product_title=product.title,
            )
        if booked.total + pending_in_batch >= window.effective_capacity:
            raise DailyCapacityError(
                f'"{product.title}" is fully booked on {day.isoformat()}',
                product_id=product.id,
                product_title=product.title,
            )
