"""Shipment booking and tracking updates."""

import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.delivery_service.models import Shipment, ShipmentStatus
from services.delivery_service.schemas import Address, TrackingEvent
from services.delivery_service.services.couriers import (
    CourierError,
    CourierGuyClient,
    get_live_couriers,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def get_shipment_for_order(db: AsyncSession, order_id: uuid.UUID) -> Shipment:
    result = await db.execute(select(Shipment).where(Shipment.order_id == order_id))
    shipment = result.scalar_one_or_none()
    if not shipment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Shipment not found"
        )
    return shipment


async def book_shipment(
    db: AsyncSession, order, couriers: Optional[list] = None
) -> Shipment:
    """Book the courier the buyer chose at checkout.

    Idempotent per order. Falls back to a locally issued tracking number when
    the courier has no booking API or the booking call fails. The caller
    commits.
    """
    result = await db.execute(select(Shipment).where(Shipment.order_id == order.id))
    existing = result.scalar_one_or_none()
    if existing:
        return existing

    quote = order.delivery_quote or {}
    provider = order.delivery_provider or quote.get("provider") or "courier-guy"
    service_code = quote.get("service_code") or "standard"

    shipment = Shipment(
        order_id=order.id,
        provider=provider,
        service_code=service_code,
        service_name=quote.get("service"),
        tracking_number=Shipment.generate_tracking_number(provider),
        collection_address=order.pickup_address,
        delivery_address=order.shipping_address,
        events=[
            {
                "status": ShipmentStatus.BOOKED.value,
                "description": "Shipment booked",
                "occurred_at": utc_now().isoformat(),
            }
        ],
    )

    couriers = get_live_couriers() if couriers is None else couriers
    booking_client = next(
        (
            c
            for c in couriers
            if isinstance(c, CourierGuyClient) and c.provider == provider
        ),
        None,
    )
    if booking_client and order.pickup_address and order.shipping_address:
        try:
            booking = await booking_client.book_shipment(
                reference=order.order_number,
                service_code=service_code,
                pickup=Address(**order.pickup_address),
                delivery=Address(**order.shipping_address),
            )
        except CourierError as e:
            logger.warning(
                f"Courier booking failed for order {order.order_number}, "
                f"using local tracking: {e.message}",
                extra={"extra_fields": {"order_id": str(order.id)}},
            )
        else:
            shipment.tracking_number = booking["tracking_number"]
            shipment.provider_shipment_id = booking["shipment_id"]
            shipment.provider_booked = True

    db.add(shipment)
    await db.flush()
    logger.info(
        f"Booked {provider} shipment {shipment.tracking_number} for order {order.order_number}"
    )
    return shipment


async def record_tracking_event(
    db: AsyncSession, shipment: Shipment, event: TrackingEvent, paystack=None
) -> Shipment:
    """Append a tracking event and move the order along with the parcel."""
    from services.orders_service.services import order_ops

    occurred_at = event.occurred_at or utc_now()
    shipment.events = [
        *(shipment.events or []),
        {
            "status": event.status.value,
            "description": event.description,
            "location": event.location,
            "occurred_at": occurred_at.isoformat(),
        },
    ]
    shipment.status = event.status
    if event.status == ShipmentStatus.COLLECTED and not shipment.collected_at:
        shipment.collected_at = occurred_at
    if event.status == ShipmentStatus.DELIVERED and not shipment.delivered_at:
        shipment.delivered_at = occurred_at
    db.add(shipment)
    await db.commit()

    if event.status in (ShipmentStatus.COLLECTED, ShipmentStatus.DELIVERED):
        order = await order_ops.get_order(db, shipment.order_id)
        if order.status == order_ops.OrderStatus.COMMITTED:
            await order_ops.mark_collected(db, order, paystack)
        if (
            event.status == ShipmentStatus.DELIVERED
            and order.status == order_ops.OrderStatus.COLLECTED
        ):
            await order_ops.mark_delivered(db, order)

    await db.refresh(shipment)
    return shipment


async def cancel_shipment(db: AsyncSession, order_id: uuid.UUID) -> Optional[Shipment]:
    """Stop a booked shipment for a refunded order. The caller commits."""
    result = await db.execute(select(Shipment).where(Shipment.order_id == order_id))
    shipment = result.scalar_one_or_none()
    if not shipment or shipment.status in (
        ShipmentStatus.DELIVERED,
        ShipmentStatus.CANCELLED,
    ):
        return shipment
    shipment.status = ShipmentStatus.CANCELLED
    shipment.events = [
        *(shipment.events or []),
        {
            "status": ShipmentStatus.CANCELLED.value,
            "description": "Shipment cancelled",
            "occurred_at": utc_now().isoformat(),
        },
    ]
    db.add(shipment)
    return shipment
