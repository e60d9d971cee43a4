"""Order endpoints for buyers, sellers and the cron hooks."""

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from libs.auth.dependencies import get_current_user, require_service_role
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.delivery_service.services.shipment_ops import get_shipment_for_order
from services.orders_service.schemas import (
    CommitOrderResponse,
    DeclineOrderRequest,
    DisputeResponse,
    OpenDisputeRequest,
    OrderResponse,
    SweepResult,
)
from services.orders_service.services import dispute_ops, order_ops
from services.payments_service.paystack_client import (
    PaystackClient,
    get_optional_paystack_client,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/me", response_model=list[OrderResponse])
async def list_my_orders(
    role: Literal["buyer", "seller"] = Query("buyer"),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.list_orders_for_user(db, current_user.user_id, role)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id)
    order_ops.ensure_party(order, current_user)
    return order


@router.post("/{order_id}/commit", response_model=CommitOrderResponse)
async def commit_to_sale(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Seller commits within 48 hours of payment; the courier is booked."""
    order = await order_ops.commit_order(db, order_id, current_user)
    shipment = await get_shipment_for_order(db, order.id)
    return CommitOrderResponse(
        order=OrderResponse.model_validate(order),
        tracking_number=shipment.tracking_number,
    )


@router.post("/{order_id}/decline", response_model=OrderResponse)
async def decline_sale(
    order_id: uuid.UUID,
    payload: Optional[DeclineOrderRequest] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    paystack: Optional[PaystackClient] = Depends(get_optional_paystack_client),
):
    """Seller declines; the buyer is refunded and the book relisted."""
    reason = payload.reason if payload else None
    return await order_ops.decline_order(db, order_id, current_user, reason, paystack)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    paystack: Optional[PaystackClient] = Depends(get_optional_paystack_client),
):
    """Buyer cancels before the seller commits."""
    return await order_ops.cancel_order_by_buyer(db, order_id, current_user, paystack)


@router.post("/{order_id}/confirm-delivery", response_model=OrderResponse)
async def confirm_delivery(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    paystack: Optional[PaystackClient] = Depends(get_optional_paystack_client),
):
    return await order_ops.confirm_delivery(db, order_id, current_user, paystack)


@router.get("/{order_id}/receipt")
async def download_receipt(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id)
    order_ops.ensure_party(order, current_user)
    pdf = order_ops.render_receipt(order, current_user)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="receipt-{order.order_number}.pdf"'
        },
    )


@router.post(
    "/{order_id}/disputes",
    response_model=DisputeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def open_dispute(
    order_id: uuid.UUID,
    payload: OpenDisputeRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Buyer or seller raises a problem; the seller payout is held."""
    return await dispute_ops.open_dispute(db, order_id, current_user, payload)


@router.get("/{order_id}/disputes", response_model=list[DisputeResponse])
async def list_order_disputes(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id)
    order_ops.ensure_party(order, current_user)
    return await dispute_ops.list_disputes_for_order(db, order.id)


# ---------------------------------------------------------------------------
# Cron hooks (service role)
# ---------------------------------------------------------------------------


@router.post("/internal/expire-overdue", response_model=SweepResult)
async def expire_overdue(
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
    paystack: Optional[PaystackClient] = Depends(get_optional_paystack_client),
):
    processed = await order_ops.expire_overdue_commits(db, paystack)
    return SweepResult(processed=processed)


@router.post("/internal/send-reminders", response_model=SweepResult)
async def send_reminders(
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    processed = await order_ops.send_commit_reminders(db)
    return SweepResult(processed=processed)
