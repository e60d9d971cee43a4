"""Admin dispute queue and resolution."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.orders_service.models import DisputeStatus
from services.orders_service.schemas import DisputeResponse, ResolveDisputeRequest
from services.orders_service.services import dispute_ops
from services.payments_service.paystack_client import (
    PaystackClient,
    get_optional_paystack_client,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/disputes", tags=["disputes"])


@router.get("", response_model=list[DisputeResponse])
async def list_disputes(
    status_filter: Optional[DisputeStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await dispute_ops.list_disputes(db, status_filter, limit)


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await dispute_ops.get_dispute(db, dispute_id)


@router.post("/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(
    dispute_id: uuid.UUID,
    payload: ResolveDisputeRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    paystack: Optional[PaystackClient] = Depends(get_optional_paystack_client),
):
    """Refund the buyer (fully or partly), pay the seller, or take no action."""
    return await dispute_ops.resolve_dispute(db, dispute_id, admin, payload, paystack)
