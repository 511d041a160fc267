from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, TypeVar

from app.domain.entities.order import AppointmentStatus, Order, OrderItem, OrderStatus
from app.domain.entities.product import Product
from app.domain.entities.service_config import ServiceConfig
from app.infrastructure.store.memory_store import MemoryMarketplaceStore

T = TypeVar("T")


class JsonMarketplaceStore(MemoryMarketplaceStore):
    """
    MemoryMarketplaceStore persisted to a single JSON document.

    The whole document is rewritten atomically (temp file + rename) after
    every mutation, under the same lock that guards validation. When the
    write fails the in-memory change is undone, so memory never runs ahead
    of the file.
    """

    def __init__(self, path: str = "./data/marketplace.json") -> None:
        super().__init__()
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger(__name__)
        self._load()

    def save_product(self, product: Product) -> Product:
        return self._persist(super().save_product, product)

    def update_booking_status(
        self,
        booking_id: str,
        status: AppointmentStatus,
        alternates: tuple[datetime, ...] | None = None,
        appointment_at: datetime | None = None,
    ) -> OrderItem:
        return self._persist(super().update_booking_status, booking_id, status, alternates, appointment_at)

    def create_orders(self, orders: list[Order]) -> list[Order]:
        return self._persist(super().create_orders, orders)

    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        return self._persist(super().update_order_status, order_id, status)

    def _persist(self, mutate: Callable[..., T], *args: Any) -> T:
        with self._lock:
            snapshot = self._snapshot()
            result = mutate(*args)
            try:
                self._save()
            except OSError as e:
                self._restore(snapshot)
                self._logger.error("Store write failed, change discarded", extra={"error": str(e)})
                raise
            return result

    def _snapshot(self) -> tuple:
        return (
            dict(self._products),
            dict(self._orders),
            dict(self._items),
            {order_id: list(ids) for order_id, ids in self._order_items.items()},
            dict(self._live_slots),
        )

    def _restore(self, snapshot: tuple) -> None:
        self._products, self._orders, self._items, self._order_items, self._live_slots = snapshot

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self._logger.error("Store file is corrupted, starting empty", extra={"error": str(e)})
            return

        for raw in data.get("products", []):
            product = _deserialize_product(raw)
            self._products[product.id] = product
        for raw in data.get("orders", []):
            order = _deserialize_order(raw)
            self._orders[order.id] = order
            self._order_items[order.id] = []
        for raw in data.get("items", []):
            item = _deserialize_item(raw)
            self._items[item.id] = item
            self._order_items.setdefault(item.order_id, []).append(item.id)
            self._reserve(item)

    def _save(self) -> None:
        data = {
            "version": 1,
            "products": [_serialize_product(p) for p in self._products.values()],
            "orders": [_serialize_order(o) for o in self._orders.values()],
            "items": [_serialize_item(i) for i in self._items.values()],
        }
        temp_path = self._path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _serialize_product(product: Product) -> dict[str, Any]:
    config = product.service_config
    return {
        "id": product.id,
        "title": product.title,
        "price": product.price,
        "type": product.type,
        "owner_id": product.owner_id,
        "owner_email": product.owner_email,
        "service_config": None
        if config is None
        else {
            "open_days": list(config.open_days),
            "open_time": config.open_time,
            "close_time": config.close_time,
            "duration_minutes": config.duration_minutes,
            "daily_capacity": config.daily_capacity,
        },
    }


def _deserialize_product(data: dict[str, Any]) -> Product:
    raw_config = data.get("service_config")
    return Product(
        id=data["id"],
        title=data.get("title", ""),
        price=data.get("price", 0.0),
        type=data.get("type", "goods"),
        owner_id=data.get("owner_id"),
        owner_email=data.get("owner_email"),
        service_config=ServiceConfig.normalize(**raw_config) if raw_config else None,
    )


def _serialize_order(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "status": order.status.value,
        "total": order.total,
        "buyer_id": order.buyer_id,
        "seller_id": order.seller_id,
        "seller_email": order.seller_email,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "address": order.address,
        "access_code": order.access_code,
        "created_at": _iso(order.created_at),
    }


def _deserialize_order(data: dict[str, Any]) -> Order:
    return Order(
        id=data["id"],
        status=OrderStatus(data.get("status", "pending")),
        total=data.get("total", 0.0),
        buyer_id=data.get("buyer_id"),
        seller_id=data.get("seller_id"),
        seller_email=data.get("seller_email"),
        customer_name=data.get("customer_name"),
        customer_email=data.get("customer_email"),
        customer_phone=data.get("customer_phone"),
        address=data.get("address"),
        access_code=data.get("access_code"),
        created_at=_parse(data.get("created_at")),
    )


def _serialize_item(item: OrderItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "order_id": item.order_id,
        "product_id": item.product_id,
        "title": item.title,
        "price": item.price,
        "quantity": item.quantity,
        "appointment_at": _iso(item.appointment_at),
        "appointment_status": item.appointment_status.value if item.appointment_status else None,
        "appointment_alternates": [a.isoformat() for a in item.appointment_alternates],
    }


def _deserialize_item(data: dict[str, Any]) -> OrderItem:
    status = data.get("appointment_status")
    return OrderItem(
        id=data["id"],
        order_id=data["order_id"],
        product_id=data["product_id"],
        title=data.get("title", ""),
        price=data.get("price", 0.0),
        quantity=data.get("quantity", 1),
        appointment_at=_parse(data.get("appointment_at")),
        appointment_status=AppointmentStatus(status) if status else None,
        appointment_alternates=tuple(_parse(a) for a in data.get("appointment_alternates") or []),
    )
