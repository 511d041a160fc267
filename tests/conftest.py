from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from app.application.use_cases.appointment_lifecycle import AppointmentLifecycleUseCase
from app.application.use_cases.checkout import CheckoutUseCase
from app.application.use_cases.notify_participants import NotifyParticipantsUseCase
from app.application.use_cases.validate_bookings import BookingValidator
from app.domain.entities.product import Product
from app.domain.entities.service_config import ServiceConfig
from app.infrastructure.notifications.mock_sender import LoggingNotificationSender
from app.infrastructure.store.memory_store import MemoryMarketplaceStore

SELLER_ID = 7
OTHER_SELLER_ID = 8
BUYER_ID = 42


@pytest.fixture
def tz() -> ZoneInfo:
    return ZoneInfo("UTC")


@pytest.fixture
def make_service():
    def _make(product_id: str = "svc-1", owner_id: int = SELLER_ID, title: str = "Haircut", **config) -> Product:
        defaults = {
            "open_days": ["monday", "tuesday", "wednesday", "thursday", "friday"],
            "open_time": "09:00",
            "close_time": "17:00",
            "duration_minutes": 60,
            "daily_capacity": 4,
        }
        defaults.update(config)
        return Product(
            id=product_id,
            title=title,
            price=30.0,
            type="service",
            owner_id=owner_id,
            owner_email=f"seller{owner_id}@example.com",
            service_config=ServiceConfig.normalize(**defaults),
        )

    return _make


@pytest.fixture
def store(make_service) -> MemoryMarketplaceStore:
    return MemoryMarketplaceStore(
        [
            make_service(),
            make_service("svc-2", owner_id=OTHER_SELLER_ID, title="Massage"),
            Product(id="goods-1", title="Shampoo", price=12.5, owner_id=SELLER_ID),
        ]
    )


@pytest.fixture
def sender() -> LoggingNotificationSender:
    return LoggingNotificationSender()


@pytest.fixture
def checkout(store, sender, tz) -> CheckoutUseCase:
    return CheckoutUseCase(
        products=store,
        bookings=store,
        orders=store,
        validator=BookingValidator(bookings=store, timezone=tz),
        notifier=NotifyParticipantsUseCase(sender),
        timezone=tz,
        now=lambda: datetime(2025, 1, 1, 12, 0, tzinfo=tz),
    )


@pytest.fixture
def lifecycle(store, sender, tz) -> AppointmentLifecycleUseCase:
    return AppointmentLifecycleUseCase(
        orders=store,
        bookings=store,
        products=store,
        validator=BookingValidator(bookings=store, timezone=tz),
        timezone=tz,
        notifier=NotifyParticipantsUseCase(sender),
    )
