"""Order disputes: either party opens one, an admin settles the money.

An open dispute holds the seller payout. Resolving it can refund the buyer in
full or in part, pay the seller, or release the held payout unchanged.
"""

import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.books_service.services import book_ops
from services.communications_service.services.order_notifications import (
    notify_dispute_opened,
    notify_dispute_resolved,
)
from services.delivery_service.services import shipment_ops
from services.orders_service.models import (
    CancellationReason,
    Dispute,
    DisputeResolution,
    DisputeStatus,
    Order,
    OrderStatus,
    RefundStatus,
)
from services.orders_service.schemas import OpenDisputeRequest, ResolveDisputeRequest
from services.orders_service.services import order_ops
from services.payments_service.paystack_client import (
    PaystackClient,
    PaystackError,
    RefundResult,
)
from services.payments_service.services import payment_ops, payout_ops
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

DISPUTABLE_STATUSES = (
    OrderStatus.COMMITTED,
    OrderStatus.COLLECTED,
    OrderStatus.DELIVERED,
)
# Orders whose payout would already have been released without the hold
PAYOUT_DUE_STATUSES = (OrderStatus.COLLECTED, OrderStatus.DELIVERED)


async def get_dispute(db: AsyncSession, dispute_id: uuid.UUID) -> Dispute:
    result = await db.execute(select(Dispute).where(Dispute.id == dispute_id))
    dispute = result.scalar_one_or_none()
    if not dispute:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Dispute not found"
        )
    return dispute


async def list_disputes_for_order(
    db: AsyncSession, order_id: uuid.UUID
) -> list[Dispute]:
    result = await db.execute(
        select(Dispute)
        .where(Dispute.order_id == order_id)
        .order_by(Dispute.created_at.desc())
    )
    return list(result.scalars().all())


async def list_disputes(
    db: AsyncSession,
    status_filter: Optional[DisputeStatus] = None,
    limit: int = 100,
) -> list[Dispute]:
    """Admin queue, oldest first."""
    query = select(Dispute).order_by(Dispute.created_at.asc())
    if status_filter:
        query = query.where(Dispute.status == status_filter)
    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())


async def open_dispute(
    db: AsyncSession,
    order_id: uuid.UUID,
    user: AuthUser,
    data: OpenDisputeRequest,
) -> Dispute:
    order = await order_ops.get_order(db, order_id)
    if user.user_id == order.buyer_auth_id:
        role = "buyer"
    elif user.user_id == order.seller_auth_id:
        role = "seller"
    else:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not your order"
        )
    if order.status not in DISPUTABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order cannot be disputed while {order.status.value}",
        )

    result = await db.execute(
        select(Dispute.id).where(
            Dispute.order_id == order.id, Dispute.status == DisputeStatus.OPEN
        )
    )
    if result.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An open dispute already exists for this order",
        )

    dispute = Dispute(
        order_id=order.id,
        opened_by_auth_id=user.user_id,
        opened_by_role=role,
        dispute_type=data.dispute_type,
        description=data.description,
        evidence_urls=list(data.evidence_urls),
        status=DisputeStatus.OPEN,
    )
    order.dispute_hold = True
    db.add(dispute)
    await db.flush()
    notify_dispute_opened(db, order, dispute)
    await db.commit()
    await db.refresh(dispute)

    logger.info(
        f"Dispute opened by {role} on order {order.order_number}",
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "dispute_id": str(dispute.id),
                "dispute_type": dispute.dispute_type.value,
            }
        },
    )
    return dispute


async def _refund_buyer(
    db: AsyncSession,
    order: Order,
    dispute: Dispute,
    amount_cents: Optional[int],
    paystack: Optional[PaystackClient],
) -> tuple[RefundResult, int]:
    """Refund before any dispute state changes, so a failure leaves it open."""
    payment = await payment_ops.get_payment_by_reference(db, order.payment_reference)
    if payment is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Payment record not found"
        )
    if paystack is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Paystack is not configured",
        )

    amount = (
        amount_cents
        if amount_cents is not None
        else payment.total_cents - (payment.refunded_amount_cents or 0)
    )
    try:
        result = await payment_ops.refund_payment(
            db,
            payment,
            paystack,
            reason=(
                f"Dispute on order {order.order_number}: "
                f"{dispute.dispute_type.value.replace('_', ' ')}"
            ),
            amount_cents=amount,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e
    except PaystackError as e:
        logger.warning(
            f"Dispute refund failed for order {order.order_number}: {e.message}",
            extra={"extra_fields": {"dispute_id": str(dispute.id)}},
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Refund failed: {e.message}",
        ) from e

    order.refund_attempts += 1
    order.refund_error = None
    if result.completed:
        order.refund_status = RefundStatus.SUCCEEDED
        order.refunded_at = utc_now()
    else:
        order.refund_status = RefundStatus.PENDING
    return result, amount


async def resolve_dispute(
    db: AsyncSession,
    dispute_id: uuid.UUID,
    admin: AuthUser,
    data: ResolveDisputeRequest,
    paystack: Optional[PaystackClient],
) -> Dispute:
    dispute = await get_dispute(db, dispute_id)
    if dispute.status != DisputeStatus.OPEN:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Dispute is already resolved"
        )
    order = await order_ops.get_order(db, dispute.order_id)
    action = data.resolution

    refund_cents = None
    payout_cents = None
    if action == DisputeResolution.REFUND_BUYER:
        result, refund_cents = await _refund_buyer(
            db, order, dispute, data.amount_cents, paystack
        )
        now = utc_now()
        if order.status == OrderStatus.COMMITTED:
            # The book never left the seller
            await shipment_ops.cancel_shipment(db, order.id)
            await book_ops.relist(db, order.book_id)
        order.status = (
            OrderStatus.REFUNDED if result.completed else OrderStatus.CANCELLED
        )
        order.cancelled_at = now
        order.cancellation_reason = CancellationReason.DISPUTE_REFUND
        existing = await payout_ops.get_payout_for_order(db, order.id)
        if existing:
            logger.warning(
                f"Order {order.order_number} refunded after the seller was paid",
                extra={"extra_fields": {"payout_id": str(existing.id)}},
            )
    elif action == DisputeResolution.PARTIAL_REFUND:
        if data.amount_cents is None or data.amount_cents >= order.total_cents:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="A partial refund needs an amount below the order total",
            )
        _, refund_cents = await _refund_buyer(
            db, order, dispute, data.amount_cents, paystack
        )
        payout_cents = max(order.seller_amount_cents - refund_cents, 0)
    elif action == DisputeResolution.PAY_SELLER:
        payout_cents = order.seller_amount_cents
    elif order.status in PAYOUT_DUE_STATUSES:
        payout_cents = order.seller_amount_cents

    if payout_cents:
        payout = await payout_ops.release_seller_funds(
            db, order, paystack, amount_cents=payout_cents
        )
        payout_cents = payout.amount_cents

    dispute.status = DisputeStatus.RESOLVED
    dispute.resolution = action
    dispute.refund_amount_cents = refund_cents
    dispute.payout_amount_cents = payout_cents or None
    dispute.resolution_notes = data.notes
    dispute.resolved_by_auth_id = admin.user_id
    dispute.resolved_at = utc_now()
    order.dispute_hold = False

    await notify_dispute_resolved(db, order, dispute)
    await db.commit()
    await db.refresh(dispute)

    logger.info(
        f"Dispute on order {order.order_number} resolved: {action.value}",
        extra={
            "extra_fields": {
                "dispute_id": str(dispute.id),
                "refund_cents": refund_cents,
                "payout_cents": dispute.payout_amount_cents,
            }
        },
    )
    return dispute
