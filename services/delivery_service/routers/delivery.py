"""Courier quotes and shipment tracking."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.rate_limit import quote_limit
from libs.db.session import get_async_db
from services.delivery_service.models import Shipment
from services.delivery_service.schemas import (
    QuoteRequest,
    QuoteResponse,
    ShipmentResponse,
    TrackingEvent,
)
from services.delivery_service.services import shipment_ops
from services.delivery_service.services.couriers import (
    aggregate_quotes,
    get_live_couriers,
)
from services.delivery_service.services.quotes import fastest_quote
from services.orders_service.services.order_ops import get_order
from services.payments_service.paystack_client import get_optional_paystack_client
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/delivery", tags=["delivery"])


@router.get("/health")
async def delivery_health():
    """Which couriers are answering with live rates."""
    return {
        "status": "ok",
        "live_providers": [c.provider for c in get_live_couriers()],
    }


@router.post("/quotes", response_model=QuoteResponse)
@quote_limit
async def get_delivery_quotes(request: Request, payload: QuoteRequest):
    """Quotes from every courier for a pickup -> delivery route, cheapest first."""
    quotes = await aggregate_quotes(
        payload.pickup_address, payload.delivery_address, payload.package_details
    )
    return QuoteResponse(
        quotes=quotes,
        cheapest=quotes[0] if quotes else None,
        fastest=fastest_quote(quotes),
    )


@router.get("/shipments/{order_id}", response_model=ShipmentResponse)
async def get_order_shipment(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await get_order(db, order_id)
    if current_user.user_id not in (
        order.buyer_auth_id,
        order.seller_auth_id,
    ) and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Shipment not found"
        )
    return await shipment_ops.get_shipment_for_order(db, order_id)


@router.post("/shipments/{shipment_id}/events", response_model=ShipmentResponse)
async def add_tracking_event(
    shipment_id: uuid.UUID,
    event: TrackingEvent,
    _: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    paystack=Depends(get_optional_paystack_client),
):
    """Courier status callback (service role or admin)."""
    result = await db.execute(select(Shipment).where(Shipment.id == shipment_id))
    shipment = result.scalar_one_or_none()
    if not shipment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Shipment not found"
        )
    return await shipment_ops.record_tracking_event(db, shipment, event, paystack)
