from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.product import Product
from app.domain.entities.service_config import ServiceConfig


class ProductRepositoryPort(ABC):
    @abstractmethod
    def get_product(self, product_id: str) -> Product | None:
        raise NotImplementedError

    @abstractmethod
    def get_products(self, product_ids: list[str]) -> dict[str, Product]:
        """Fetch several products at once. Unknown ids are simply absent."""
        raise NotImplementedError

    @abstractmethod
    def get_service_config(self, product_id: str) -> ServiceConfig | None:
        """Service configuration of a service product, None if absent or not a service."""
        raise NotImplementedError

    @abstractmethod
    def save_product(self, product: Product) -> Product:
        raise NotImplementedError
