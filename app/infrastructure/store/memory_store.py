from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime

from app.application.exceptions import SlotConflict
from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.ports.order_repository import OrderRepositoryPort
from app.application.ports.product_repository import ProductRepositoryPort
from app.domain.entities.order import AppointmentStatus, Order, OrderItem, OrderStatus
from app.domain.entities.product import Product
from app.domain.entities.service_config import ServiceConfig


def slot_key(product_id: str, slot: datetime) -> tuple[str, datetime]:
    return product_id, slot.replace(second=0, microsecond=0)


class MemoryMarketplaceStore(ProductRepositoryPort, BookingRepositoryPort, OrderRepositoryPort):
    """
    Process-local store for products, orders and bookings.

    Keeps a unique index of (product, slot minute) over live bookings so a
    second booking of a held slot fails even if validation was skipped.
    """

    def __init__(self, products: list[Product] | None = None) -> None:
        self._lock = threading.RLock()
        self._products: dict[str, Product] = {p.id: p for p in products or []}
        self._orders: dict[str, Order] = {}
        self._items: dict[str, OrderItem] = {}
        self._order_items: dict[str, list[str]] = {}
        self._live_slots: dict[tuple[str, datetime], str] = {}

    # Products

    def get_product(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def get_products(self, product_ids: list[str]) -> dict[str, Product]:
        return {pid: self._products[pid] for pid in product_ids if pid in self._products}

    def get_service_config(self, product_id: str) -> ServiceConfig | None:
        product = self._products.get(product_id)
        if product is None or not product.is_service:
            return None
        return product.service_config or ServiceConfig()

    def save_product(self, product: Product) -> Product:
        with self._lock:
            self._products[product.id] = product
        return product

    # Bookings

    def find_bookings(self, product_id: str, start: datetime, end: datetime) -> list[OrderItem]:
        with self._lock:
            return [
                item
                for item in self._items.values()
                if item.product_id == product_id
                and item.is_booking
                and item.appointment_at is not None
                and start <= item.appointment_at < end
            ]

    def create_booking(self, order_id: str, item: OrderItem) -> OrderItem:
        with self._lock:
            if order_id not in self._orders:
                raise KeyError(f"Unknown order {order_id}")
            stored = replace(item, order_id=order_id)
            self._reserve(stored)
            self._items[stored.id] = stored
            self._order_items.setdefault(order_id, []).append(stored.id)
            return stored

    def update_booking_status(
        self,
        booking_id: str,
        status: AppointmentStatus,
        alternates: tuple[datetime, ...] | None = None,
        appointment_at: datetime | None = None,
    ) -> OrderItem:
        with self._lock:
            current = self._items[booking_id]
            updated = replace(
                current,
                appointment_status=status,
                appointment_alternates=tuple(alternates or ()),
                appointment_at=appointment_at or current.appointment_at,
            )
            self._release(current)
            try:
                self._reserve(updated)
            except SlotConflict:
                self._reserve(current)
                raise
            self._items[booking_id] = updated
            return updated

    def transaction(self) -> threading.RLock:
        return self._lock

    # Orders

    def create_orders(self, orders: list[Order]) -> list[Order]:
        with self._lock:
            pending: set[tuple[str, datetime]] = set()
            for order in orders:
                for item in order.items:
                    if not item.holds_slot:
                        continue
                    key = slot_key(item.product_id, item.appointment_at)
                    if key in self._live_slots or key in pending:
                        raise SlotConflict(item.product_id, item.appointment_at)
                    pending.add(key)

            for order in orders:
                self._orders[order.id] = replace(order, items=())
                self._order_items[order.id] = []
                for item in order.items:
                    self.create_booking(order.id, item)
            return [self.get_order(order.id) for order in orders]

    def get_order(self, order_id: str) -> Order | None:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return None
            items = tuple(self._items[item_id] for item_id in self._order_items.get(order_id, []))
            return replace(order, items=items)

    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        with self._lock:
            self._orders[order_id] = replace(self._orders[order_id], status=status)
            return self.get_order(order_id)

    def _reserve(self, item: OrderItem) -> None:
        if not item.holds_slot:
            return
        key = slot_key(item.product_id, item.appointment_at)
        holder = self._live_slots.get(key)
        if holder is not None and holder != item.id:
            raise SlotConflict(item.product_id, item.appointment_at)
        self._live_slots[key] = item.id

    def _release(self, item: OrderItem) -> None:
        if item.appointment_at is None:
            return
        key = slot_key(item.product_id, item.appointment_at)
        if self._live_slots.get(key) == item.id:
            del self._live_slots[key]
