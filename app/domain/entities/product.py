from __future__ import annotations

from dataclasses import dataclass

from app.domain.entities.service_config import ServiceConfig


@dataclass(frozen=True)
class Product:
    id: str
    title: str
    price: float = 0.0
    type: str = "goods"  # "goods" | "service"
    owner_id: int | None = None
    owner_email: str | None = None
    service_config: ServiceConfig | None = None

    @property
    def is_service(self) -> bool:
        return self.type == "service"
