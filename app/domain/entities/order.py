from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AppointmentStatus(str, Enum):
    requested = "requested"
    proposed = "proposed"
    rejected = "rejected"
    confirmed = "confirmed"
    scheduled = "scheduled"
    completed = "completed"
    cancelled = "cancelled"


class OrderStatus(str, Enum):
    pending = "pending"
    scheduled = "scheduled"
    paid = "paid"
    shipped = "shipped"
    completed = "completed"
    cancelled = "cancelled"


# Bookings in these states no longer hold their slot.
RELEASED_STATUSES = frozenset({AppointmentStatus.cancelled, AppointmentStatus.rejected})

TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.completed, AppointmentStatus.rejected, AppointmentStatus.cancelled}
)

APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.requested: frozenset(
        {
            AppointmentStatus.confirmed,
            AppointmentStatus.proposed,
            AppointmentStatus.rejected,
            AppointmentStatus.cancelled,
        }
    ),
    AppointmentStatus.proposed: frozenset(
        {AppointmentStatus.scheduled, AppointmentStatus.rejected, AppointmentStatus.cancelled}
    ),
    AppointmentStatus.confirmed: frozenset({AppointmentStatus.completed, AppointmentStatus.cancelled}),
    AppointmentStatus.scheduled: frozenset({AppointmentStatus.completed, AppointmentStatus.cancelled}),
}


def can_transition(current: AppointmentStatus | None, target: AppointmentStatus) -> bool:
    if current is None:
        return False
    return target in APPOINTMENT_TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class OrderItem:
    """A line of an order. It is a booking when ``appointment_status`` is set."""

    id: str
    order_id: str
    product_id: str
    title: str
    price: float
    quantity: int = 1
    appointment_at: datetime | None = None
    appointment_status: AppointmentStatus | None = None
    appointment_alternates: tuple[datetime, ...] = ()

    @property
    def is_booking(self) -> bool:
        return self.appointment_status is not None

    @property
    def holds_slot(self) -> bool:
        return (
            self.is_booking
            and self.appointment_at is not None
            and self.appointment_status not in RELEASED_STATUSES
        )


@dataclass(frozen=True)
class Order:
    id: str
    status: OrderStatus
    total: float
    buyer_id: int | None = None
    seller_id: int | None = None
    seller_email: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    address: str | None = None
    access_code: str | None = None
    created_at: datetime | None = None
    items: tuple[OrderItem, ...] = field(default_factory=tuple)

    @property
    def bookings(self) -> tuple[OrderItem, ...]:
        return tuple(item for item in self.items if item.is_booking)


def derive_order_status(items: tuple[OrderItem, ...] | list[OrderItem], current: OrderStatus) -> OrderStatus:
    """
    Project the per-booking negotiation states onto the coarse order status.
    Orders without bookings keep whatever the goods flow set; ``paid`` is sticky.
    """
    bookings = [item for item in items if item.is_booking]
    if not bookings or current == OrderStatus.paid:
        return current

    live = [b for b in bookings if b.appointment_status not in RELEASED_STATUSES]
    if not live:
        if all(b.appointment_status == AppointmentStatus.cancelled for b in bookings):
            return OrderStatus.cancelled
        return OrderStatus.pending

    statuses = {b.appointment_status for b in live}
    if statuses == {AppointmentStatus.completed}:
        return OrderStatus.completed
    if statuses & {AppointmentStatus.confirmed, AppointmentStatus.scheduled, AppointmentStatus.completed}:
        return OrderStatus.scheduled
    return OrderStatus.pending
