from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime

from app.domain.entities.order import AppointmentStatus, OrderItem


class BookingRepositoryPort(ABC):
    @abstractmethod
    def find_bookings(self, product_id: str, start: datetime, end: datetime) -> list[OrderItem]:
        """
        Bookings of a product whose appointment falls in [start, end).
        Always reads the latest persisted state; released bookings are included,
        callers filter on status.
        """
        raise NotImplementedError

    @abstractmethod
    def create_booking(self, order_id: str, item: OrderItem) -> OrderItem:
        """Persist a booking line. Raises SlotConflict if a live booking holds the slot."""
        raise NotImplementedError

    @abstractmethod
    def update_booking_status(
        self,
        booking_id: str,
        status: AppointmentStatus,
        alternates: tuple[datetime, ...] | None = None,
        appointment_at: datetime | None = None,
    ) -> OrderItem:
        """
        Change a booking's status. ``alternates=None`` clears them; moving the
        appointment re-checks slot uniqueness and raises SlotConflict.
        """
        raise NotImplementedError

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Serialize a validate-then-write sequence against other writers."""
        raise NotImplementedError
