from __future__ import annotations

from typing import Any


class BookingError(Exception):
    """Base class for rule violations reported back to the caller."""

    code = "booking_error"
    status_code = 400

    def __init__(self, message: str, product_id: str | None = None, product_title: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.product_id = product_id
        self.product_title = product_title

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "productId": self.product_id,
            "productTitle": self.product_title,
        }


class ValidationError(BookingError):
    code = "validation_error"


class NotFoundError(BookingError):
    code = "not_found"
    status_code = 404


class AccessDeniedError(BookingError):
    code = "access_denied"
    status_code = 403


class DayClosedError(BookingError):
    code = "day_closed"


class OutOfWindowError(BookingError):
    code = "out_of_window"


class MisalignedSlotError(BookingError):
    code = "misaligned_slot"


class DuplicateSlotError(BookingError):
    code = "duplicate_slot"


class SlotTakenError(BookingError):
    code = "slot_taken"
    status_code = 409


class DailyCapacityError(BookingError):
    code = "daily_capacity"
    status_code = 409


class StateTransitionError(BookingError):
    code = "invalid_transition"


class SlotConflict(RuntimeError):
    """Raised by storage when a live booking already holds (product, slot minute)."""

    def __init__(self, product_id: str, slot: Any) -> None:
        super().__init__(f"Slot {slot} of product {product_id} is already booked")
        self.product_id = product_id
        self.slot = slot
