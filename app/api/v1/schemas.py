from __future__ import annotations

from datetime import date as date_type, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domain.entities.availability import ProductAvailability
from app.domain.entities.order import Order, OrderItem, derive_order_status
from app.domain.entities.service_config import ServiceConfig


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SlotSchema(CamelModel):
    start: datetime
    end: datetime
    available: bool
    booked_count: int


class DaySlotSchema(CamelModel):
    date: date_type
    weekday: str
    is_open: bool
    capacity: int
    remaining: int
    slots: list[SlotSchema] = Field(default_factory=list)


class AvailabilitySchema(CamelModel):
    product_id: str
    start: datetime
    end: datetime
    duration_minutes: int
    open_time: str
    close_time: str
    open_days: list[str]
    days: list[DaySlotSchema]

    @classmethod
    def from_entity(cls, availability: ProductAvailability) -> "AvailabilitySchema":
        return cls(
            product_id=availability.product_id,
            start=availability.start,
            end=availability.end,
            duration_minutes=availability.duration_minutes,
            open_time=availability.open_time,
            close_time=availability.close_time,
            open_days=list(availability.open_days),
            days=[
                DaySlotSchema(
                    date=day.date,
                    weekday=day.weekday,
                    is_open=day.is_open,
                    capacity=day.capacity,
                    remaining=day.remaining,
                    slots=[
                        SlotSchema(
                            start=slot.start,
                            end=slot.end,
                            available=slot.available,
                            booked_count=slot.booked_count,
                        )
                        for slot in day.slots
                    ],
                )
                for day in availability.days
            ],
        )


class ServiceConfigSchema(CamelModel):
    open_days: list[str] = Field(default_factory=list)
    open_time: str | None = None
    close_time: str | None = None
    duration_minutes: int | None = None
    daily_capacity: int | None = None

    @classmethod
    def from_entity(cls, config: ServiceConfig) -> "ServiceConfigSchema":
        return cls(
            open_days=list(config.open_days),
            open_time=config.open_time,
            close_time=config.close_time,
            duration_minutes=config.duration_minutes,
            daily_capacity=config.daily_capacity,
        )


class CheckoutItemSchema(CamelModel):
    product_id: str
    quantity: int = 1
    meta: str | None = None


class CheckoutRequestSchema(CamelModel):
    items: list[CheckoutItemSchema] = Field(default_factory=list)
    customer_name: str | None = None
    customer_email: str | None = None
    address: str | None = None
    customer_phone: str | None = None


class ProposalsRequestSchema(CamelModel):
    proposals: list[str] = Field(default_factory=list)


class AcceptRequestSchema(CamelModel):
    date: str | None = None


class OrderItemSchema(CamelModel):
    id: str
    product_id: str
    title: str
    price: float
    quantity: int
    appointment_at: datetime | None = None
    appointment_status: str | None = None
    appointment_alternates: list[datetime] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, item: OrderItem) -> "OrderItemSchema":
        return cls(
            id=item.id,
            product_id=item.product_id,
            title=item.title,
            price=item.price,
            quantity=item.quantity,
            appointment_at=item.appointment_at,
            appointment_status=item.appointment_status.value if item.appointment_status else None,
            appointment_alternates=list(item.appointment_alternates),
        )


class OrderSchema(CamelModel):
    id: str
    status: str
    total: float
    buyer_id: int | None = None
    seller_id: int | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    address: str | None = None
    access_code: str | None = None
    created_at: datetime | None = None
    items: list[OrderItemSchema] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, order: Order) -> "OrderSchema":
        return cls(
            id=order.id,
            status=derive_order_status(order.items, order.status).value,
            total=order.total,
            buyer_id=order.buyer_id,
            seller_id=order.seller_id,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            address=order.address,
            access_code=order.access_code,
            created_at=order.created_at,
            items=[OrderItemSchema.from_entity(item) for item in order.items],
        )
