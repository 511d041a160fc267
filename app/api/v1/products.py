from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from app.api.deps import error_response, get_current_user_id
from app.api.v1.schemas import AvailabilitySchema, ServiceConfigSchema
from app.application.exceptions import AccessDeniedError, BookingError, NotFoundError, ValidationError
from app.application.use_cases.availability import GetProductAvailabilityUseCase
from app.domain.entities.service_config import ServiceConfig
from app.wiring.dependencies import get_availability_use_case, get_store


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/products/{product_id}/availability", response_model=AvailabilitySchema)
def get_availability(
    product_id: str,
    start: str | None = Query(None),
    days: str | None = Query(None),
    uc: GetProductAvailabilityUseCase = Depends(get_availability_use_case),
):
    try:
        start_at = datetime.fromisoformat(start.strip().replace("Z", "+00:00")) if start else None
    except ValueError:
        return error_response([ValidationError(f"Invalid start date: {start!r}")])
    try:
        span = int(days) if days else None
    except ValueError:
        return error_response([ValidationError(f"Invalid days: {days!r}")])

    try:
        availability = uc.execute(product_id.strip(), start=start_at, days=span)
    except BookingError as e:
        return error_response([e])
    return AvailabilitySchema.from_entity(availability)


@router.put("/products/{product_id}/service-config", response_model=ServiceConfigSchema)
def update_service_config(
    product_id: str,
    req: ServiceConfigSchema,
    user_id: int = Depends(get_current_user_id),
):
    store = get_store()
    product = store.get_product(product_id)
    if product is None:
        return error_response([NotFoundError("Product not found", product_id=product_id)])
    if product.owner_id != user_id:
        return error_response([AccessDeniedError("Only the seller can change this service", product_id=product_id)])
    if not product.is_service:
        return error_response(
            [ValidationError(f'"{product.title}" is not a service', product_id=product.id, product_title=product.title)]
        )

    try:
        config = ServiceConfig.normalize(
            open_days=req.open_days,
            open_time=req.open_time,
            close_time=req.close_time,
            duration_minutes=req.duration_minutes,
            daily_capacity=req.daily_capacity,
        )
    except ValueError as e:
        return error_response([ValidationError(str(e), product_id=product.id, product_title=product.title)])

    store.save_product(replace(product, service_config=config))
    logger.info("Service configuration updated", extra={"product_id": product.id})
    return ServiceConfigSchema.from_entity(config)
