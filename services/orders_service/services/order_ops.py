"""Order lifecycle: creation from payment, seller commit, cancellation and refunds.

Status changes that can race (seller commit vs. the expiry sweep, webhook vs.
buyer verification) go through a conditional UPDATE so only one writer wins.
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.currency import format_rand
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from libs.common.pdf import generate_order_receipt_pdf
from services.books_service.services import book_ops
from services.communications_service.services.order_notifications import (
    notify_commit_reminder,
    notify_order_cancelled,
    notify_order_collected,
    notify_order_committed,
    notify_order_delivered,
    notify_order_paid,
    notify_refund_processed,
)
from services.delivery_service.services import shipment_ops
from services.orders_service.models import (
    CancellationReason,
    Order,
    OrderStatus,
    RefundStatus,
)
from services.payments_service.models import PaymentStatus
from services.payments_service.paystack_client import PaystackClient, PaystackError
from services.payments_service.services import payment_ops, payout_ops
from services.sellers_service.services.seller_ops import get_profile
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()

CANCELLABLE_BY_ADMIN = (OrderStatus.PAID, OrderStatus.COMMITTED)
REFUNDED_PAYMENT_STATES = (PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED)


class BookUnavailableError(Exception):
    """The paid-for book was reserved by another order first."""


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Order not found"
        )
    return order


async def get_order_by_reference(
    db: AsyncSession, payment_reference: str
) -> Optional[Order]:
    result = await db.execute(
        select(Order).where(Order.payment_reference == payment_reference)
    )
    return result.scalar_one_or_none()


async def list_orders_for_user(
    db: AsyncSession, user_id: str, role: str = "buyer"
) -> list[Order]:
    column = Order.seller_auth_id if role == "seller" else Order.buyer_auth_id
    result = await db.execute(
        select(Order).where(column == user_id).order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


def ensure_party(order: Order, user: AuthUser) -> None:
    """Buyer, seller or admin may view an order."""
    if user.user_id not in (order.buyer_auth_id, order.seller_auth_id) and not (
        user.is_admin
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not your order"
        )


async def _transition(db: AsyncSession, order: Order, *conditions, **values) -> bool:
    """Apply ``values`` only if the row still matches ``conditions``."""
    result = await db.execute(
        update(Order)
        .where(Order.id == order.id, *conditions)
        .values(updated_at=utc_now(), **values)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(order)
    return (result.rowcount or 0) == 1


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


async def create_order_from_payment(db: AsyncSession, payment) -> Order:
    """
    Turn a paid payment into an order awaiting the seller's commit.

    Idempotent per payment reference. Raises BookUnavailableError when another
    order already holds the book.
    """
    existing = await get_order_by_reference(db, payment.reference)
    if existing:
        return existing

    reference = payment.reference
    if not await book_ops.reserve_for_order(db, payment.book_id):
        # A concurrent call for this same payment may have won the reservation
        existing = await get_order_by_reference(db, payment.reference)
        if existing:
            return existing
        raise BookUnavailableError(str(payment.book_id))

    seller = await get_profile(db, payment.seller_auth_id)
    quote = payment.delivery_quote or {}
    paid_at = ensure_utc(payment.paid_at) or utc_now()
    order = Order(
        order_number=Order.generate_order_number(paid_at),
        payment_reference=payment.reference,
        book_id=payment.book_id,
        book_title=payment.book_title,
        buyer_auth_id=payment.buyer_auth_id,
        buyer_email=payment.buyer_email,
        seller_auth_id=payment.seller_auth_id,
        seller_email=seller.email if seller else None,
        book_price_cents=payment.book_price_cents,
        delivery_fee_cents=payment.delivery_fee_cents,
        platform_fee_cents=payment.platform_fee_cents,
        seller_amount_cents=payment.seller_amount_cents,
        total_cents=payment.total_cents,
        currency=payment.currency,
        status=OrderStatus.PAID,
        shipping_address=payment.shipping_address,
        pickup_address=(payment.payment_metadata or {}).get("pickup_address")
        or (seller.pickup_address if seller else None),
        delivery_provider=quote.get("provider"),
        delivery_service=quote.get("service"),
        delivery_quote=quote,
        paid_at=paid_at,
        commit_deadline=paid_at + timedelta(hours=settings.COMMIT_WINDOW_HOURS),
    )
    db.add(order)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        existing = await get_order_by_reference(db, reference)
        if existing:
            return existing
        raise

    await notify_order_paid(db, order)
    await db.commit()
    await db.refresh(order)

    logger.info(
        f"Order {order.order_number} created for payment {payment.reference}",
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "commit_deadline": order.commit_deadline.isoformat(),
            }
        },
    )
    return order


# ---------------------------------------------------------------------------
# Seller commit / decline, buyer cancel
# ---------------------------------------------------------------------------


async def commit_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    seller: AuthUser,
    now: Optional[datetime] = None,
) -> Order:
    """Seller confirms the sale within the commit window; the courier is booked."""
    now = now or utc_now()
    order = await get_order(db, order_id)
    if order.seller_auth_id != seller.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the seller can commit to this order",
        )
    if order.status == OrderStatus.COMMITTED:
        return order
    if order.status != OrderStatus.PAID:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order cannot be committed while {order.status.value}",
        )
    if ensure_utc(order.commit_deadline) <= now:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Commit window has expired"
        )

    committed = await _transition(
        db,
        order,
        Order.status == OrderStatus.PAID,
        Order.commit_deadline > now,
        status=OrderStatus.COMMITTED,
        committed_at=now,
    )
    if not committed:
        if order.status == OrderStatus.COMMITTED:
            return order
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Commit window has expired"
        )

    await book_ops.mark_sold(db, order.book_id)
    shipment = await shipment_ops.book_shipment(db, order)
    await notify_order_committed(db, order, shipment.tracking_number)
    await db.commit()
    await db.refresh(order)

    logger.info(f"Seller committed to order {order.order_number}")
    return order


async def decline_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    seller: AuthUser,
    reason: Optional[str],
    paystack: Optional[PaystackClient],
) -> Order:
    order = await get_order(db, order_id)
    if order.seller_auth_id != seller.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the seller can decline this order",
        )
    if order.status != OrderStatus.PAID:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order cannot be declined while {order.status.value}",
        )
    return await cancel_and_refund(
        db,
        order,
        CancellationReason.SELLER_DECLINED,
        paystack,
        note=reason,
    )


async def cancel_order_by_buyer(
    db: AsyncSession,
    order_id: uuid.UUID,
    buyer: AuthUser,
    paystack: Optional[PaystackClient],
) -> Order:
    order = await get_order(db, order_id)
    if order.buyer_auth_id != buyer.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the buyer can cancel this order",
        )
    if order.status != OrderStatus.PAID:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Order can no longer be cancelled; the seller has committed",
        )
    return await cancel_and_refund(
        db, order, CancellationReason.BUYER_CANCELLED, paystack
    )


async def admin_refund(
    db: AsyncSession,
    order_id: uuid.UUID,
    reason: str,
    paystack: Optional[PaystackClient],
) -> Order:
    order = await get_order(db, order_id)
    if order.status not in CANCELLABLE_BY_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order cannot be refunded while {order.status.value}",
        )
    if order.status == OrderStatus.COMMITTED:
        await shipment_ops.cancel_shipment(db, order.id)
    return await cancel_and_refund(
        db,
        order,
        CancellationReason.ADMIN_REFUND,
        paystack,
        note=reason,
        from_statuses=CANCELLABLE_BY_ADMIN,
    )


# ---------------------------------------------------------------------------
# Cancellation and refunds
# ---------------------------------------------------------------------------


async def _attempt_refund(
    db: AsyncSession,
    order: Order,
    paystack: Optional[PaystackClient],
    note: Optional[str] = None,
) -> bool:
    """One refund attempt for a cancelled order. True when money went back."""
    payment = await payment_ops.get_payment_by_reference(db, order.payment_reference)
    if payment is None:
        order.refund_status = RefundStatus.FAILED
        order.refund_error = "Payment record not found"
        return False
    if paystack is None:
        order.refund_status = RefundStatus.FAILED
        order.refund_error = "Paystack is not configured"
        return False

    order.refund_attempts += 1
    order.refund_status = RefundStatus.PENDING
    try:
        result = await payment_ops.refund_payment(
            db, payment, paystack, reason=note or _refund_reason(order)
        )
    except PaystackError as e:
        order.refund_status = RefundStatus.FAILED
        order.refund_error = e.message
        logger.warning(
            f"Refund failed for order {order.order_number} "
            f"(attempt {order.refund_attempts}): {e.message}",
            extra={"extra_fields": {"order_id": str(order.id)}},
        )
        return False

    order.refund_error = None
    if not result.completed:
        # Paystack confirms with refund.processed
        return False
    order.refund_status = RefundStatus.SUCCEEDED
    order.status = OrderStatus.REFUNDED
    order.refunded_at = utc_now()
    notify_refund_processed(db, order)
    return True


def _refund_reason(order: Order) -> str:
    reason = order.cancellation_reason.value if order.cancellation_reason else "cancelled"
    return f"Order {order.order_number} {reason.replace('_', ' ')}"


async def cancel_and_refund(
    db: AsyncSession,
    order: Order,
    reason: CancellationReason,
    paystack: Optional[PaystackClient],
    *,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
    from_statuses: tuple = (OrderStatus.PAID,),
) -> Order:
    """
    Cancel the order, put the book back on sale and refund the buyer in full.

    A failed refund leaves the order cancelled with ``refund_status=failed``
    for the retry job.
    """
    now = now or utc_now()
    values = {
        "status": OrderStatus.CANCELLED,
        "cancelled_at": now,
        "cancellation_reason": reason,
    }
    if reason == CancellationReason.SELLER_DECLINED:
        values.update(declined_at=now, decline_reason=note)

    cancelled = await _transition(
        db, order, Order.status.in_(from_statuses), **values
    )
    if not cancelled:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order cannot be cancelled while {order.status.value}",
        )

    await book_ops.relist(db, order.book_id)
    refunded = await _attempt_refund(db, order, paystack, note)
    await notify_order_cancelled(db, order, refunded)
    await db.commit()
    await db.refresh(order)

    logger.info(
        f"Order {order.order_number} cancelled ({reason.value}); "
        f"refund {order.refund_status.value}",
        extra={"extra_fields": {"order_id": str(order.id), "reason": reason.value}},
    )
    return order


async def apply_refund_event(db: AsyncSession, event: str, data: dict) -> None:
    """refund.processed / refund.failed webhooks."""
    transaction = data.get("transaction")
    reference = data.get("transaction_reference") or (
        transaction.get("reference") if isinstance(transaction, dict) else None
    )
    if not reference:
        return
    order = await get_order_by_reference(db, reference)
    if not order:
        logger.warning(f"Refund webhook for unknown order reference {reference}")
        return

    # Partial refunds leave a live order in its fulfilment status
    cancelled = order.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED)

    if event == "refund.processed":
        if order.refund_status == RefundStatus.SUCCEEDED:
            return
        order.refund_status = RefundStatus.SUCCEEDED
        order.refund_error = None
        order.refunded_at = utc_now()
        if cancelled:
            order.status = OrderStatus.REFUNDED
            notify_refund_processed(db, order)
    else:
        order.refund_status = RefundStatus.FAILED
        order.refund_error = data.get("reason") or "Refund failed at Paystack"
        order.refunded_at = None
        if cancelled:
            order.status = OrderStatus.CANCELLED
        payment = await payment_ops.get_payment_by_reference(db, reference)
        if payment and payment.status in REFUNDED_PAYMENT_STATES:
            # Let the retry job issue the refund again
            payment.status = PaymentStatus.PAID
            payment.refunded_amount_cents = None
            payment.refunded_at = None
    await db.commit()


async def retry_failed_refunds(
    db: AsyncSession, paystack: PaystackClient, limit: int = 100
) -> int:
    """Retry refunds for cancelled orders whose refund failed earlier."""
    result = await db.execute(
        select(Order)
        .where(
            Order.status == OrderStatus.CANCELLED,
            Order.refund_status == RefundStatus.FAILED,
            Order.refund_attempts < settings.MAX_REFUND_ATTEMPTS,
        )
        .order_by(Order.cancelled_at.asc())
        .limit(limit)
    )
    refunded = 0
    for order in result.scalars().all():
        if await _attempt_refund(db, order, paystack):
            refunded += 1
        await db.commit()
    if refunded:
        logger.info(f"Retried refunds succeeded for {refunded} orders")
    return refunded


# ---------------------------------------------------------------------------
# Commit window sweeps
# ---------------------------------------------------------------------------


async def expire_overdue_commits(
    db: AsyncSession,
    paystack: Optional[PaystackClient],
    now: Optional[datetime] = None,
) -> int:
    """Cancel and refund every paid order whose commit deadline has passed."""
    now = now or utc_now()
    result = await db.execute(
        select(Order)
        .where(
            Order.status == OrderStatus.PAID,
            Order.committed_at.is_(None),
            Order.commit_deadline < now,
        )
        .order_by(Order.commit_deadline.asc())
    )
    expired = 0
    for order in result.scalars().all():
        try:
            await cancel_and_refund(
                db, order, CancellationReason.COMMIT_EXPIRED, paystack, now=now
            )
        except HTTPException:
            # Committed or cancelled between the select and the update
            continue
        expired += 1
    if expired:
        logger.info(f"Expired {expired} orders past their commit deadline")
    return expired


async def send_commit_reminders(
    db: AsyncSession, now: Optional[datetime] = None
) -> int:
    """Remind sellers once when the commit deadline is close."""
    now = now or utc_now()
    horizon = now + timedelta(hours=settings.COMMIT_REMINDER_HOURS)
    result = await db.execute(
        select(Order).where(
            Order.status == OrderStatus.PAID,
            Order.committed_at.is_(None),
            Order.commit_reminder_sent_at.is_(None),
            Order.commit_deadline > now,
            Order.commit_deadline <= horizon,
        )
    )
    sent = 0
    for order in result.scalars().all():
        order.commit_reminder_sent_at = now
        await notify_commit_reminder(db, order)
        await db.commit()
        sent += 1
    return sent


# ---------------------------------------------------------------------------
# Fulfilment
# ---------------------------------------------------------------------------


async def mark_collected(
    db: AsyncSession, order: Order, paystack: Optional[PaystackClient] = None
) -> Order:
    """The courier has the book: release the seller's funds unless disputed."""
    if order.status != OrderStatus.COMMITTED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order cannot be collected while {order.status.value}",
        )
    order.status = OrderStatus.COLLECTED
    order.collected_at = utc_now()
    if order.dispute_hold:
        logger.info(f"Payout for order {order.order_number} held by an open dispute")
    else:
        await payout_ops.release_seller_funds(db, order, paystack)
    notify_order_collected(db, order)
    await db.commit()
    await db.refresh(order)
    return order


async def mark_delivered(db: AsyncSession, order: Order) -> Order:
    if order.status != OrderStatus.COLLECTED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order cannot be delivered while {order.status.value}",
        )
    order.status = OrderStatus.DELIVERED
    order.delivered_at = utc_now()
    await notify_order_delivered(db, order)
    await db.commit()
    await db.refresh(order)
    return order


async def confirm_delivery(
    db: AsyncSession,
    order_id: uuid.UUID,
    buyer: AuthUser,
    paystack: Optional[PaystackClient] = None,
) -> Order:
    """Buyer confirms receipt, covering couriers that never report collection."""
    order = await get_order(db, order_id)
    if order.buyer_auth_id != buyer.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the buyer can confirm delivery",
        )
    if order.status == OrderStatus.DELIVERED:
        return order
    if order.status == OrderStatus.COMMITTED:
        order = await mark_collected(db, order, paystack)
    return await mark_delivered(db, order)


# ---------------------------------------------------------------------------
# Receipts
# ---------------------------------------------------------------------------


def render_receipt(order: Order, viewer: AuthUser) -> bytes:
    """PDF receipt; sellers see their payout breakdown instead of the charge."""
    is_seller = viewer.user_id == order.seller_auth_id
    details = [
        ("Order status", order.status.value.replace("_", " ").title()),
        ("Paid", ensure_utc(order.paid_at).strftime("%d %b %Y %H:%M UTC")),
        ("Courier", order.delivery_service or order.delivery_provider or "-"),
    ]
    if order.cancellation_reason:
        details.append(
            ("Cancelled", order.cancellation_reason.value.replace("_", " "))
        )

    if is_seller:
        lines = [
            ("Sale price", format_rand(order.book_price_cents)),
            ("Platform fee", f"-{format_rand(order.platform_fee_cents)}"),
        ]
        total_label, total_value = "Your payout", format_rand(order.seller_amount_cents)
        issued_to = order.seller_email or order.seller_auth_id
    else:
        lines = [
            ("Book", format_rand(order.book_price_cents)),
            ("Delivery", format_rand(order.delivery_fee_cents)),
        ]
        total_label, total_value = "Total paid", format_rand(order.total_cents)
        issued_to = order.buyer_email or order.buyer_auth_id

    return generate_order_receipt_pdf(
        order_number=order.order_number,
        issued_to=issued_to,
        book_title=order.book_title,
        lines=lines,
        total_label=total_label,
        total_value=total_value,
        details=details,
    )
