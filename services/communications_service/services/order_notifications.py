"""Buyer and seller notifications for order lifecycle events.

Each function stages in-app notifications on the caller's session (the
caller commits) and sends the matching email. Email problems are logged and
never interrupt the order workflow.
"""

from typing import Awaitable, Optional

from libs.common.currency import format_rand
from libs.common.logging import get_logger
from services.communications_service.models import NotificationType
from services.communications_service.services.notification_ops import (
    add_notification,
)
from services.communications_service.templates.orders import (
    format_deadline,
    send_commit_reminder_email,
    send_dispute_resolved_email,
    send_new_order_email,
    send_order_cancelled_email,
    send_order_committed_email,
    send_order_delivered_email,
    send_payment_received_email,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CANCELLATION_REASON_TEXT = {
    "seller_declined": "the seller declined the order",
    "commit_expired": "the seller did not commit within the commit window",
    "buyer_cancelled": "the buyer cancelled the order",
    "admin_refund": "the order was refunded by support",
    "dispute_refund": "a dispute was resolved in the buyer's favour",
}


async def _send_safely(send: Awaitable[bool], order_number: str, what: str) -> None:
    try:
        await send
    except Exception as e:
        logger.error(
            f"Failed to send {what} email for order {order_number}: {e}",
            extra={"extra_fields": {"order_number": order_number}},
        )


def _reason_text(order) -> str:
    reason = order.cancellation_reason
    key = getattr(reason, "value", reason)
    return CANCELLATION_REASON_TEXT.get(key, "the order was cancelled")


async def notify_order_paid(db: AsyncSession, order) -> None:
    deadline = format_deadline(order.commit_deadline)
    add_notification(
        db,
        user_auth_id=order.seller_auth_id,
        order_id=order.id,
        type=NotificationType.COMMIT_REQUIRED,
        title="New order - commit within 48 hours",
        message=(
            f'A buyer paid for "{order.book_title}". Commit before {deadline} '
            "or the order is cancelled and refunded."
        ),
        metadata={"commit_deadline": order.commit_deadline.isoformat()},
    )
    add_notification(
        db,
        user_auth_id=order.buyer_auth_id,
        order_id=order.id,
        type=NotificationType.ORDER_PAID,
        title="Payment received",
        message=(
            f'Your payment for "{order.book_title}" was received. '
            f"The seller has until {deadline} to commit."
        ),
    )

    if order.seller_email:
        await _send_safely(
            send_new_order_email(
                order.seller_email,
                order.order_number,
                order.book_title,
                order.seller_amount_cents,
                order.commit_deadline,
            ),
            order.order_number,
            "new order",
        )
    if order.buyer_email:
        await _send_safely(
            send_payment_received_email(
                order.buyer_email,
                order.order_number,
                order.book_title,
                order.total_cents,
                order.commit_deadline,
            ),
            order.order_number,
            "payment received",
        )


async def notify_commit_reminder(db: AsyncSession, order) -> None:
    add_notification(
        db,
        user_auth_id=order.seller_auth_id,
        order_id=order.id,
        type=NotificationType.COMMIT_REMINDER,
        title="Commit window closing",
        message=(
            f'Commit to the sale of "{order.book_title}" before '
            f"{format_deadline(order.commit_deadline)}."
        ),
    )
    if order.seller_email:
        await _send_safely(
            send_commit_reminder_email(
                order.seller_email,
                order.order_number,
                order.book_title,
                order.commit_deadline,
            ),
            order.order_number,
            "commit reminder",
        )


async def notify_order_committed(
    db: AsyncSession, order, tracking_number: Optional[str] = None
) -> None:
    add_notification(
        db,
        user_auth_id=order.buyer_auth_id,
        order_id=order.id,
        type=NotificationType.ORDER_COMMITTED,
        title="Seller committed to your order",
        message=f'"{order.book_title}" is being prepared for courier collection.',
        metadata={"tracking_number": tracking_number} if tracking_number else None,
    )
    add_notification(
        db,
        user_auth_id=order.seller_auth_id,
        order_id=order.id,
        type=NotificationType.ORDER_COMMITTED,
        title="Sale confirmed",
        message=(
            f'Thanks for committing. {order.delivery_provider or "The courier"} '
            "will collect the book from your pickup address."
        ),
    )
    if order.buyer_email:
        await _send_safely(
            send_order_committed_email(
                order.buyer_email,
                order.order_number,
                order.book_title,
                order.delivery_provider,
                tracking_number,
            ),
            order.order_number,
            "order committed",
        )


async def notify_order_cancelled(db: AsyncSession, order, refunded: bool) -> None:
    """Both parties; the buyer is told whether the refund went through."""
    reason = _reason_text(order)
    expired = getattr(order.cancellation_reason, "value", None) == "commit_expired"
    declined = getattr(order.cancellation_reason, "value", None) == "seller_declined"
    buyer_type = (
        NotificationType.ORDER_EXPIRED
        if expired
        else NotificationType.ORDER_DECLINED if declined else NotificationType.ORDER_CANCELLED
    )
    refund_line = (
        f"A refund of {format_rand(order.total_cents)} has been issued."
        if refunded
        else "Your refund is being processed."
    )

    add_notification(
        db,
        user_auth_id=order.buyer_auth_id,
        order_id=order.id,
        type=buyer_type,
        title="Order cancelled",
        message=f'Your order for "{order.book_title}" was cancelled: {reason}. {refund_line}',
    )
    add_notification(
        db,
        user_auth_id=order.seller_auth_id,
        order_id=order.id,
        type=NotificationType.ORDER_EXPIRED if expired else NotificationType.ORDER_CANCELLED,
        title="Order cancelled",
        message=(
            f'The order for "{order.book_title}" was cancelled: {reason}. '
            "Your listing is available again."
        ),
    )

    if order.buyer_email:
        await _send_safely(
            send_order_cancelled_email(
                order.buyer_email,
                order.order_number,
                order.book_title,
                reason,
                order.total_cents if refunded else None,
            ),
            order.order_number,
            "buyer cancellation",
        )
    if order.seller_email:
        await _send_safely(
            send_order_cancelled_email(
                order.seller_email,
                order.order_number,
                order.book_title,
                reason,
            ),
            order.order_number,
            "seller cancellation",
        )


def notify_refund_processed(db: AsyncSession, order) -> None:
    add_notification(
        db,
        user_auth_id=order.buyer_auth_id,
        order_id=order.id,
        type=NotificationType.REFUND_PROCESSED,
        title="Refund processed",
        message=(
            f"Your refund of {format_rand(order.total_cents)} for order "
            f"{order.order_number} has been processed."
        ),
    )


def notify_order_collected(db: AsyncSession, order) -> None:
    add_notification(
        db,
        user_auth_id=order.buyer_auth_id,
        order_id=order.id,
        type=NotificationType.ORDER_COLLECTED,
        title="Book collected by courier",
        message=f'"{order.book_title}" has been collected and is on its way.',
    )


async def notify_order_delivered(db: AsyncSession, order) -> None:
    add_notification(
        db,
        user_auth_id=order.seller_auth_id,
        order_id=order.id,
        type=NotificationType.ORDER_DELIVERED,
        title="Book delivered",
        message=f'"{order.book_title}" was delivered to the buyer.',
    )
    if order.seller_email:
        await _send_safely(
            send_order_delivered_email(
                order.seller_email,
                order.order_number,
                order.book_title,
                order.seller_amount_cents,
            ),
            order.order_number,
            "order delivered",
        )


def notify_payout_sent(db: AsyncSession, payout) -> None:
    add_notification(
        db,
        user_auth_id=payout.seller_auth_id,
        order_id=payout.order_id,
        type=NotificationType.PAYOUT_SENT,
        title="Payout sent",
        message=f"{format_rand(payout.amount_cents)} has been paid to your bank account.",
    )


DISPUTE_OUTCOME_TEXT = {
    "refund_buyer": "the buyer is refunded",
    "pay_seller": "the seller is paid",
    "partial_refund": "the buyer is partly refunded and the seller paid the rest",
    "no_action": "no payment changes",
}


def notify_dispute_opened(db: AsyncSession, order, dispute) -> None:
    """Tell the other party; admins work from the dispute queue."""
    other = (
        order.seller_auth_id
        if dispute.opened_by_auth_id == order.buyer_auth_id
        else order.buyer_auth_id
    )
    add_notification(
        db,
        user_auth_id=other,
        order_id=order.id,
        type=NotificationType.DISPUTE_OPENED,
        title="Dispute opened",
        message=(
            f'A {dispute.dispute_type.value.replace("_", " ")} dispute was opened '
            f'on order {order.order_number} for "{order.book_title}". '
            "Support will review it."
        ),
        metadata={"dispute_id": str(dispute.id)},
    )


async def notify_dispute_resolved(db: AsyncSession, order, dispute) -> None:
    outcome = DISPUTE_OUTCOME_TEXT.get(dispute.resolution.value, "resolved")
    if dispute.refund_amount_cents:
        outcome = f"{outcome} ({format_rand(dispute.refund_amount_cents)} refunded)"
    for auth_id in (order.buyer_auth_id, order.seller_auth_id):
        add_notification(
            db,
            user_auth_id=auth_id,
            order_id=order.id,
            type=NotificationType.DISPUTE_RESOLVED,
            title="Dispute resolved",
            message=f"The dispute on order {order.order_number} was resolved: {outcome}.",
            metadata={
                "dispute_id": str(dispute.id),
                "resolution": dispute.resolution.value,
            },
        )

    for email in (order.buyer_email, order.seller_email):
        if email:
            await _send_safely(
                send_dispute_resolved_email(
                    email,
                    order.order_number,
                    order.book_title,
                    outcome,
                    dispute.resolution_notes,
                ),
                order.order_number,
                "dispute resolved",
            )
