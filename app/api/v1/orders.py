from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.deps import error_response, get_current_user_id, get_optional_user_id
from app.api.v1.schemas import AcceptRequestSchema, OrderSchema, ProposalsRequestSchema
from app.application.exceptions import NotFoundError
from app.application.use_cases.appointment_lifecycle import AppointmentLifecycleUseCase, TransitionResult
from app.wiring.dependencies import get_lifecycle_use_case, get_store


router = APIRouter()


def _respond(result: TransitionResult):
    if not result.ok:
        return error_response([result.error])
    return OrderSchema.from_entity(result.order)


@router.get("/orders/{order_id}", response_model=OrderSchema)
def get_order(
    order_id: str,
    code: str | None = Query(None),
    user_id: int | None = Depends(get_optional_user_id),
):
    order = get_store().get_order(order_id)
    visible = order is not None and (
        (user_id is not None and user_id in (order.buyer_id, order.seller_id))
        or (code is not None and order.access_code is not None and code == order.access_code)
    )
    if not visible:
        return error_response([NotFoundError("Order not found")])
    return OrderSchema.from_entity(order)


@router.post("/orders/{order_id}/confirm-appointment", response_model=OrderSchema)
def confirm_appointment(
    order_id: str,
    user_id: int = Depends(get_current_user_id),
    uc: AppointmentLifecycleUseCase = Depends(get_lifecycle_use_case),
):
    return _respond(uc.confirm(order_id, seller_id=user_id))


@router.post("/orders/{order_id}/appointment/reject-propose", response_model=OrderSchema)
def reject_or_propose(
    order_id: str,
    req: ProposalsRequestSchema,
    user_id: int = Depends(get_current_user_id),
    uc: AppointmentLifecycleUseCase = Depends(get_lifecycle_use_case),
):
    return _respond(uc.reject_or_propose(order_id, seller_id=user_id, proposals=req.proposals))


@router.post("/orders/{order_id}/appointment/accept", response_model=OrderSchema)
def accept_alternate(
    order_id: str,
    req: AcceptRequestSchema,
    user_id: int = Depends(get_current_user_id),
    uc: AppointmentLifecycleUseCase = Depends(get_lifecycle_use_case),
):
    return _respond(uc.accept_alternate(order_id, buyer_id=user_id, date=req.date))


@router.post("/orders/{order_id}/complete-service", response_model=OrderSchema)
def complete_service(
    order_id: str,
    user_id: int = Depends(get_current_user_id),
    uc: AppointmentLifecycleUseCase = Depends(get_lifecycle_use_case),
):
    return _respond(uc.complete_service(order_id, seller_id=user_id))


@router.post("/orders/{order_id}/pay", response_model=OrderSchema)
def pay(
    order_id: str,
    user_id: int = Depends(get_current_user_id),
    uc: AppointmentLifecycleUseCase = Depends(get_lifecycle_use_case),
):
    return _respond(uc.pay(order_id, buyer_id=user_id))
