from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import error_response, get_optional_user_id
from app.api.v1.schemas import CheckoutRequestSchema, OrderSchema
from app.application.use_cases.checkout import CheckoutRequest, CheckoutUseCase
from app.application.use_cases.validate_bookings import RequestedBooking
from app.wiring.dependencies import get_checkout_use_case


router = APIRouter()


@router.post("/checkout", response_model=OrderSchema | None, status_code=201)
def checkout(
    req: CheckoutRequestSchema,
    user_id: int | None = Depends(get_optional_user_id),
    uc: CheckoutUseCase = Depends(get_checkout_use_case),
):
    result = uc.execute(
        CheckoutRequest(
            items=[
                RequestedBooking(product_id=item.product_id, quantity=item.quantity, meta=item.meta)
                for item in req.items
            ],
            customer_name=req.customer_name,
            customer_email=req.customer_email,
            customer_phone=req.customer_phone,
            address=req.address,
        ),
        buyer_id=user_id,
    )
    if not result.ok:
        return error_response(result.errors)
    return OrderSchema.from_entity(result.orders[0]) if result.orders else None
