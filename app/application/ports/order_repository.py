from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.order import Order, OrderStatus


class OrderRepositoryPort(ABC):
    @abstractmethod
    def create_orders(self, orders: list[Order]) -> list[Order]:
        """Persist orders with their items, all or nothing. Raises SlotConflict."""
        raise NotImplementedError

    def create_order(self, order: Order) -> Order:
        return self.create_orders([order])[0]

    @abstractmethod
    def get_order(self, order_id: str) -> Order | None:
        raise NotImplementedError

    @abstractmethod
    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        raise NotImplementedError
