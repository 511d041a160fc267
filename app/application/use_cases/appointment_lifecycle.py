from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo

from app.application.exceptions import (
    BookingError,
    DuplicateSlotError,
    NotFoundError,
    SlotConflict,
    SlotTakenError,
    StateTransitionError,
    ValidationError,
)
from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.ports.order_repository import OrderRepositoryPort
from app.application.ports.product_repository import ProductRepositoryPort
from app.application.use_cases.notify_participants import NotifyParticipantsUseCase
from app.application.use_cases.validate_bookings import BookingValidator
from app.application.utils.slots import parse_instant
from app.domain.entities.order import (
    AppointmentStatus,
    Order,
    OrderItem,
    OrderStatus,
    can_transition,
    derive_order_status,
)


@dataclass(frozen=True)
class TransitionResult:
    order: Order | None = None
    error: BookingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AppointmentLifecycleUseCase:
    """
    Seller and buyer driven transitions of the bookings on one order.

    Item statuses are authoritative; the order status is recomputed from them
    with ``derive_order_status`` after every change.
    """

    def __init__(
        self,
        orders: OrderRepositoryPort,
        bookings: BookingRepositoryPort,
        products: ProductRepositoryPort,
        validator: BookingValidator,
        timezone: tzinfo,
        notifier: NotifyParticipantsUseCase | None = None,
    ) -> None:
        self._orders = orders
        self._bookings = bookings
        self._products = products
        self._validator = validator
        self._timezone = timezone
        self._notifier = notifier
        self._logger = logging.getLogger(__name__)

    def confirm(self, order_id: str, seller_id: int) -> TransitionResult:
        order, error = self._load(order_id, seller_id=seller_id)
        if error:
            return TransitionResult(error=error)
        if not order.bookings:
            return TransitionResult(error=ValidationError("No service items to confirm"))

        eligible = self._eligible(order, AppointmentStatus.confirmed)
        if not eligible:
            return TransitionResult(
                error=self._transition_error(order, "confirmed")
            )
        with self._bookings.transaction():
            for booking in eligible:
                self._bookings.update_booking_status(booking.id, AppointmentStatus.confirmed)
            return self._finish(order_id, "confirmed")

    def reject_or_propose(self, order_id: str, seller_id: int, proposals: list[str] | None) -> TransitionResult:
        """
        Empty ``proposals`` rejects the request, otherwise the buyer gets alternates to pick from.
        Every proposed time must be bookable for each booking it would apply to.
        """
        order, error = self._load(order_id, seller_id=seller_id)
        if error:
            return TransitionResult(error=error)
        if not order.bookings:
            return TransitionResult(error=ValidationError("No service items to update"))

        alternates: list[datetime] = []
        for raw in proposals or []:
            parsed = parse_instant(raw, self._timezone)
            if parsed is None:
                return TransitionResult(error=ValidationError(f"Invalid proposed time: {raw!r}"))
            if parsed not in alternates:
                alternates.append(parsed)

        target = AppointmentStatus.proposed if alternates else AppointmentStatus.rejected
        eligible = self._eligible(order, target)
        if not eligible:
            return TransitionResult(error=self._transition_error(order, target.value))
        with self._bookings.transaction():
            for alternate in alternates:
                error = self._check_move(eligible, alternate)
                if error:
                    return TransitionResult(error=error)
            for booking in eligible:
                self._bookings.update_booking_status(booking.id, target, alternates=tuple(alternates) or None)
            return self._finish(order_id, target.value)

    def accept_alternate(self, order_id: str, buyer_id: int, date: str | None) -> TransitionResult:
        if not date:
            return TransitionResult(error=ValidationError("Missing date"))
        chosen = parse_instant(date, self._timezone)
        if chosen is None:
            return TransitionResult(error=ValidationError(f"Invalid date: {date!r}"))

        order, error = self._load(order_id, buyer_id=buyer_id)
        if error:
            return TransitionResult(error=error)

        eligible = self._eligible(order, AppointmentStatus.scheduled)
        if not eligible:
            return TransitionResult(
                error=StateTransitionError("No proposed appointment times to accept")
            )
        for booking in eligible:
            if chosen not in booking.appointment_alternates:
                return TransitionResult(
                    error=ValidationError(
                        f'{chosen.isoformat()} is not one of the proposed times for "{booking.title}"',
                        product_id=booking.product_id,
                        product_title=booking.title,
                    )
                )

        with self._bookings.transaction():
            error = self._check_move(eligible, chosen)
            if error:
                return TransitionResult(error=error)

            moved: list[OrderItem] = []
            try:
                for booking in eligible:
                    self._bookings.update_booking_status(
                        booking.id, AppointmentStatus.scheduled, alternates=None, appointment_at=chosen
                    )
                    moved.append(booking)
            except SlotConflict as e:
                self._undo(moved)
                self._logger.warning(
                    "Accepted alternate already taken",
                    extra={"order_id": order_id, "product_id": e.product_id, "slot": str(e.slot)},
                )
                return TransitionResult(
                    error=SlotTakenError(f"{chosen.isoformat()} is no longer available", product_id=e.product_id)
                )
            return self._finish(order_id, "scheduled")

    def complete_service(self, order_id: str, seller_id: int) -> TransitionResult:
        order, error = self._load(order_id, seller_id=seller_id)
        if error:
            return TransitionResult(error=error)
        if not order.bookings:
            return TransitionResult(error=ValidationError("No service items to complete"))

        eligible = self._eligible(order, AppointmentStatus.completed)
        if not eligible:
            return TransitionResult(
                error=StateTransitionError("Service must be confirmed or scheduled before it can be completed")
            )
        with self._bookings.transaction():
            for booking in eligible:
                self._bookings.update_booking_status(booking.id, AppointmentStatus.completed)
            return self._finish(order_id, "completed")

    def pay(self, order_id: str, buyer_id: int) -> TransitionResult:
        order, error = self._load(order_id, buyer_id=buyer_id)
        if error:
            return TransitionResult(error=error)
        if order.bookings and order.status != OrderStatus.completed:
            return TransitionResult(error=StateTransitionError("Order not completed"))
        if order.status == OrderStatus.paid:
            return TransitionResult(error=StateTransitionError("Order already paid"))
        updated = self._orders.update_order_status(order_id, OrderStatus.paid)
        self._log_transition(updated, "paid")
        if self._notifier:
            self._notifier.execute("paid", updated, notify_buyer=False)
        return TransitionResult(order=updated)

    def _load(
        self,
        order_id: str,
        seller_id: int | None = None,
        buyer_id: int | None = None,
    ) -> tuple[Order | None, BookingError | None]:
        order = self._orders.get_order(order_id)
        if order is None:
            return None, NotFoundError("Order not found")
        if seller_id is not None and order.seller_id != seller_id:
            return None, NotFoundError("Order not found")
        if buyer_id is not None and order.buyer_id != buyer_id:
            return None, NotFoundError("Order not found")
        return order, None

    def _eligible(self, order: Order, target: AppointmentStatus) -> list[OrderItem]:
        return [b for b in order.bookings if can_transition(b.appointment_status, target)]

    def _check_move(self, bookings: list[OrderItem], slot: datetime) -> BookingError | None:
        """First reason ``bookings`` cannot all move to ``slot``, None if they can."""
        products = self._products.get_products(list(dict.fromkeys(b.product_id for b in bookings)))
        moving = frozenset(b.id for b in bookings)
        seen: set[str] = set()
        for booking in bookings:
            product = products.get(booking.product_id)
            if product is None or not product.is_service:
                return NotFoundError(f"Product {booking.product_id} not found", product_id=booking.product_id)
            if product.id in seen:
                return DuplicateSlotError(
                    f'"{product.title}" is booked more than once on this order and cannot share {slot.isoformat()}',
                    product_id=product.id,
                    product_title=product.title,
                )
            seen.add(product.id)
            try:
                self._validator.check_slot(product, slot, moving)
            except BookingError as e:
                return e
        return None

    def _undo(self, moved: list[OrderItem]) -> None:
        for booking in reversed(moved):
            self._bookings.update_booking_status(
                booking.id,
                booking.appointment_status,
                alternates=booking.appointment_alternates,
                appointment_at=booking.appointment_at,
            )

    def _transition_error(self, order: Order, action: str) -> StateTransitionError:
        current = ", ".join(sorted({b.appointment_status.value for b in order.bookings}))
        return StateTransitionError(f"Cannot mark appointment {action}: current status is {current}")

    def _finish(self, order_id: str, event: str) -> TransitionResult:
        order = self._orders.get_order(order_id)
        status = derive_order_status(order.items, order.status)
        if status != order.status:
            order = self._orders.update_order_status(order_id, status)
        self._log_transition(order, event)
        if self._notifier:
            self._notifier.execute(event, order)
        return TransitionResult(order=order)

    def _log_transition(self, order: Order, event: str) -> None:
        self._logger.info(
            "Appointment transition",
            extra={"order_id": order.id, "status": order.status.value, "reason": event},
        )
