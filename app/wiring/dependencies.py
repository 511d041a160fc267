from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.application.ports.notification_sender import NotificationSenderPort
from app.application.use_cases.appointment_lifecycle import AppointmentLifecycleUseCase
from app.application.use_cases.availability import GetProductAvailabilityUseCase
from app.application.use_cases.checkout import CheckoutUseCase
from app.application.use_cases.notify_participants import NotifyParticipantsUseCase
from app.application.use_cases.validate_bookings import BookingValidator
from app.infrastructure.notifications.mock_sender import LoggingNotificationSender
from app.infrastructure.notifications.resend_client import ResendEmailSender
from app.infrastructure.store.json_store import JsonMarketplaceStore
from app.infrastructure.store.memory_store import MemoryMarketplaceStore


_store: MemoryMarketplaceStore | JsonMarketplaceStore | None = None


def get_store() -> MemoryMarketplaceStore | JsonMarketplaceStore:
    global _store
    if _store is None:
        if settings.ENV.lower() in {"dev", "local"}:
            _store = JsonMarketplaceStore(settings.STORE_DATA_PATH)
        else:
            _store = MemoryMarketplaceStore()
    return _store


def set_store(store: MemoryMarketplaceStore | JsonMarketplaceStore | None) -> None:
    global _store
    _store = store


@lru_cache
def get_timezone() -> ZoneInfo:
    try:
        return ZoneInfo(settings.MARKETPLACE_TIMEZONE)
    except Exception as e:
        logging.getLogger(__name__).warning(
            "Unknown MARKETPLACE_TIMEZONE, using UTC", extra={"error": str(e)}
        )
        return ZoneInfo("UTC")


@lru_cache
def get_notification_sender() -> NotificationSenderPort:
    if not settings.NOTIFICATIONS_ENABLED:
        return LoggingNotificationSender()
    return ResendEmailSender(
        api_key=settings.RESEND_API_KEY,
        from_email=settings.RESEND_FROM_EMAIL,
        endpoint=settings.RESEND_API_URL,
    )


def get_notifier() -> NotifyParticipantsUseCase:
    return NotifyParticipantsUseCase(sender=get_notification_sender(), business_name=settings.APP_NAME)


def get_availability_use_case() -> GetProductAvailabilityUseCase:
    store = get_store()
    return GetProductAvailabilityUseCase(
        products=store,
        bookings=store,
        timezone=get_timezone(),
        default_days=settings.AVAILABILITY_DEFAULT_DAYS,
        max_days=settings.AVAILABILITY_MAX_DAYS,
    )


def get_checkout_use_case() -> CheckoutUseCase:
    store = get_store()
    return CheckoutUseCase(
        products=store,
        bookings=store,
        orders=store,
        validator=BookingValidator(bookings=store, timezone=get_timezone()),
        notifier=get_notifier(),
        timezone=get_timezone(),
    )


def get_lifecycle_use_case() -> AppointmentLifecycleUseCase:
    store = get_store()
    return AppointmentLifecycleUseCase(
        orders=store,
        bookings=store,
        products=store,
        validator=BookingValidator(bookings=store, timezone=get_timezone()),
        timezone=get_timezone(),
        notifier=get_notifier(),
    )
