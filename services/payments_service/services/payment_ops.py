"""Payment state transitions: mark paid, create the order, refund."""

from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import parse_provider_timestamp, utc_now
from libs.common.logging import get_logger
from services.payments_service.models import Payment, PaymentStatus
from services.payments_service.paystack_client import (
    PaystackClient,
    PaystackError,
    RefundResult,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

FAILED_TRANSACTION_STATES = {"failed", "abandoned", "reversed"}


async def get_payment_by_reference(
    db: AsyncSession, reference: str
) -> Optional[Payment]:
    result = await db.execute(select(Payment).where(Payment.reference == reference))
    return result.scalar_one_or_none()


def _with_provider_payload(payment: Payment, key: str, payload: Optional[dict]) -> None:
    if payload:
        payment.payment_metadata = {**(payment.payment_metadata or {}), key: payload}


async def record_amount_mismatch(
    db: AsyncSession, payment: Payment, amount_cents: int
) -> Payment:
    """Keep the evidence; no order is created for a mismatched charge."""
    payment.fulfillment_error = (
        f"Paystack amount mismatch: got {amount_cents}, expected {payment.total_cents}"
    )
    _with_provider_payload(payment, "mismatched_amount_cents", {"amount": amount_cents})
    await db.commit()
    logger.error(
        payment.fulfillment_error,
        extra={"extra_fields": {"reference": payment.reference}},
    )
    return payment


async def mark_payment_failed(
    db: AsyncSession, payment: Payment, provider_payload: Optional[dict] = None
) -> Payment:
    if payment.status == PaymentStatus.PENDING:
        payment.status = PaymentStatus.FAILED
        _with_provider_payload(payment, "provider_payload", provider_payload)
        await db.commit()
    return payment


async def mark_paid_and_create_order(
    db: AsyncSession,
    payment: Payment,
    *,
    paid_at: Optional[datetime] = None,
    provider_payload: Optional[dict] = None,
    paystack: Optional[PaystackClient] = None,
) -> Payment:
    """
    Mark the payment paid and create its order.

    Safe to call repeatedly (webhook, buyer verification and the reconcile job
    may all race); exactly one order exists per payment reference.
    """
    from services.orders_service.services import order_ops

    if payment.order_id or payment.status == PaymentStatus.REFUNDED:
        return payment

    if payment.status != PaymentStatus.PAID:
        payment.status = PaymentStatus.PAID
        payment.paid_at = paid_at or utc_now()
        _with_provider_payload(payment, "provider_payload", provider_payload)
        await db.commit()

    try:
        order = await order_ops.create_order_from_payment(db, payment)
    except order_ops.BookUnavailableError:
        # Another buyer's payment reserved the book first
        logger.warning(
            f"Book {payment.book_id} unavailable for paid checkout {payment.reference}; refunding",
            extra={"extra_fields": {"reference": payment.reference}},
        )
        payment.fulfillment_error = "Book no longer available"
        if paystack is None:
            await db.commit()
            return payment
        try:
            await refund_payment(
                db, payment, paystack, reason="Book was sold to another buyer"
            )
        except PaystackError as e:
            payment.fulfillment_error = f"Book no longer available; refund failed: {e.message}"
        await db.commit()
        return payment

    payment.order_id = order.id
    payment.fulfillment_error = None
    await db.commit()
    await db.refresh(payment)
    return payment


async def refund_payment(
    db: AsyncSession,
    payment: Payment,
    paystack: PaystackClient,
    *,
    reason: str,
    amount_cents: Optional[int] = None,
) -> RefundResult:
    """
    Refund through Paystack: the unrefunded balance unless ``amount_cents`` is
    given. Raises PaystackError; the caller decides whether a failure is
    retried. The caller commits.
    """
    if payment.status == PaymentStatus.REFUNDED:
        return RefundResult(
            status="already_refunded", amount=payment.refunded_amount_cents
        )

    already = payment.refunded_amount_cents or 0
    remaining = payment.total_cents - already
    amount = amount_cents if amount_cents is not None else remaining
    if amount <= 0 or amount > remaining:
        raise ValueError(
            f"Refund of {amount} cents exceeds the {remaining} cents left on {payment.reference}"
        )
    result = await paystack.create_refund(
        transaction_reference=payment.reference,
        amount_cents=amount,
        currency=payment.currency,
        customer_note=reason,
        merchant_note=f"Refund for {payment.book_title} ({payment.reference}): {reason}",
    )

    payment.refunded_amount_cents = already + amount
    payment.status = (
        PaymentStatus.REFUNDED
        if payment.refunded_amount_cents >= payment.total_cents
        else PaymentStatus.PARTIALLY_REFUNDED
    )
    payment.refund_reference = result.refund_id or payment.refund_reference
    payment.refunded_at = utc_now()
    db.add(payment)

    logger.info(
        f"Refunded {amount} cents for payment {payment.reference}",
        extra={
            "extra_fields": {
                "reference": payment.reference,
                "refund_status": result.status,
            }
        },
    )
    return result


async def sync_with_provider(
    db: AsyncSession,
    payment: Payment,
    paystack: PaystackClient,
    *,
    source: str,
) -> Payment:
    """
    Ask Paystack for the transaction state and advance a pending payment.

    Used by the buyer's verify call and the reconcile job; webhooks carry the
    same data and go straight to ``mark_paid_and_create_order``.
    """
    if payment.status != PaymentStatus.PENDING and not (
        payment.status == PaymentStatus.PAID and not payment.order_id
    ):
        return payment

    transaction = await paystack.verify_transaction(payment.reference)
    payload = {"verify": transaction.raw, "source": source}

    if transaction.status == "success":
        if transaction.amount and transaction.amount != payment.total_cents:
            return await record_amount_mismatch(db, payment, transaction.amount)
        return await mark_paid_and_create_order(
            db,
            payment,
            paid_at=parse_provider_timestamp(transaction.paid_at),
            provider_payload=payload,
            paystack=paystack,
        )
    if transaction.status in FAILED_TRANSACTION_STATES:
        return await mark_payment_failed(db, payment, payload)
    return payment
