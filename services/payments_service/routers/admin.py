"""Admin endpoints: payouts ledger and manual refunds."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.orders_service.schemas import OrderResponse
from services.orders_service.services import order_ops
from services.payments_service.models import PayoutStatus, SellerPayout
from services.payments_service.paystack_client import (
    PaystackClient,
    get_paystack_client,
)
from services.payments_service.schemas import AdminRefundRequest, PayoutResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments/admin", tags=["payments-admin"])


@router.get("/payouts", response_model=list[PayoutResponse])
async def list_payouts(
    status_filter: Optional[PayoutStatus] = Query(None, alias="status"),
    seller_auth_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(SellerPayout).order_by(SellerPayout.created_at.desc())
    if status_filter:
        query = query.where(SellerPayout.status == status_filter)
    if seller_auth_id:
        query = query.where(SellerPayout.seller_auth_id == seller_auth_id)
    result = await db.execute(query.limit(limit))
    return result.scalars().all()


@router.post("/orders/{order_id}/refund", response_model=OrderResponse)
async def refund_order(
    order_id: uuid.UUID,
    payload: AdminRefundRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    paystack: PaystackClient = Depends(get_paystack_client),
):
    """Cancel an undelivered order and refund the buyer in full."""
    return await order_ops.admin_refund(db, order_id, payload.reason, paystack)
