from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from typing import Callable

from app.application.exceptions import BookingError, SlotConflict, SlotTakenError, ValidationError
from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.ports.order_repository import OrderRepositoryPort
from app.application.ports.product_repository import ProductRepositoryPort
from app.application.use_cases.notify_participants import NotifyParticipantsUseCase
from app.application.use_cases.validate_bookings import BookingValidator, RequestedBooking
from app.domain.entities.order import AppointmentStatus, Order, OrderItem, OrderStatus
from app.domain.entities.product import Product


@dataclass(frozen=True)
class CheckoutRequest:
    items: list[RequestedBooking]
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class CheckoutResult:
    orders: list[Order] = field(default_factory=list)
    errors: list[BookingError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class CheckoutUseCase:
    def __init__(
        self,
        products: ProductRepositoryPort,
        bookings: BookingRepositoryPort,
        orders: OrderRepositoryPort,
        validator: BookingValidator,
        notifier: NotifyParticipantsUseCase | None = None,
        timezone: tzinfo | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._products = products
        self._bookings = bookings
        self._orders = orders
        self._validator = validator
        self._notifier = notifier
        self._now = now or (lambda: datetime.now(timezone or UTC))
        self._logger = logging.getLogger(__name__)

    def execute(self, request: CheckoutRequest, buyer_id: int | None = None) -> CheckoutResult:
        if not request.items:
            return CheckoutResult(errors=[ValidationError("Cart is empty")])

        products = self._products.get_products(list(dict.fromkeys(i.product_id for i in request.items)))

        with self._bookings.transaction():
            outcome = self._validator.validate(request.items, products)
            if not outcome.ok:
                self._logger.info(
                    "Checkout rejected",
                    extra={"reason": "; ".join(e.message for e in outcome.errors)},
                )
                return CheckoutResult(errors=outcome.errors)

            slots = {b.index: b.slot for b in outcome.bookings}
            drafts = self._build_orders(request, products, slots, buyer_id)
            try:
                created = self._orders.create_orders(drafts)
            except SlotConflict as e:
                product = products.get(e.product_id)
                title = product.title if product else None
                self._logger.warning(
                    "Slot taken by a concurrent checkout",
                    extra={"product_id": e.product_id, "slot": str(e.slot)},
                )
                return CheckoutResult(
                    errors=[
                        SlotTakenError(
                            f'{e.slot} is no longer available for "{title or e.product_id}"',
                            product_id=e.product_id,
                            product_title=title,
                        )
                    ]
                )

        for order in created:
            self._logger.info(
                "Order created",
                extra={"order_id": order.id, "status": order.status.value},
            )
            if self._notifier and order.bookings:
                self._notifier.execute("requested", order)
        return CheckoutResult(orders=created)

    def _build_orders(
        self,
        request: CheckoutRequest,
        products: dict[str, Product],
        slots: dict[int, datetime],
        buyer_id: int | None,
    ) -> list[Order]:
        groups: dict[int | None, list[int]] = {}
        for index, item in enumerate(request.items):
            groups.setdefault(products[item.product_id].owner_id, []).append(index)

        created_at = self._now()
        orders: list[Order] = []
        for seller_id, indexes in groups.items():
            order_id = uuid.uuid4().hex
            items: list[OrderItem] = []
            for index in indexes:
                line = request.items[index]
                product = products[line.product_id]
                items.append(
                    OrderItem(
                        id=uuid.uuid4().hex,
                        order_id=order_id,
                        product_id=product.id,
                        title=product.title,
                        price=product.price,
                        quantity=line.quantity,
                        appointment_at=slots.get(index) if product.is_service else None,
                        appointment_status=AppointmentStatus.requested if product.is_service else None,
                    )
                )
            has_service = any(item.is_booking for item in items)
            owner_emails = (products[request.items[i].product_id].owner_email for i in indexes)
            seller_email = next((email for email in owner_emails if email), None)
            orders.append(
                Order(
                    id=order_id,
                    status=OrderStatus.pending if has_service else OrderStatus.paid,
                    total=sum(item.price * item.quantity for item in items),
                    buyer_id=buyer_id,
                    seller_id=seller_id,
                    seller_email=seller_email,
                    customer_name=request.customer_name,
                    customer_email=request.customer_email,
                    customer_phone=request.customer_phone,
                    address=request.address,
                    access_code=secrets.token_urlsafe(16) if buyer_id is None else None,
                    created_at=created_at,
                    items=tuple(items),
                )
            )
        return orders
