"""Background reconciliation tasks for payments service."""

from __future__ import annotations

from datetime import timedelta

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal
from services.payments_service.models import Payment, PaymentStatus
from services.payments_service.paystack_client import (
    PaystackClient,
    PaystackError,
    paystack_enabled,
)
from services.payments_service.services import payment_ops, payout_ops
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def reconcile_pending_payments(
    db: AsyncSession, paystack: PaystackClient, *, min_age_minutes: int = 2
) -> int:
    """Verify stale pending payments (and paid ones without an order) with Paystack."""
    cutoff = utc_now() - timedelta(minutes=min_age_minutes)
    result = await db.execute(
        select(Payment)
        .where(
            Payment.status.in_([PaymentStatus.PENDING, PaymentStatus.PAID]),
            Payment.order_id.is_(None),
            Payment.fulfillment_error.is_(None),
            Payment.created_at <= cutoff,
        )
        .order_by(Payment.created_at.asc())
        .limit(200)
    )
    processed = 0
    for payment in result.scalars().all():
        before = payment.status
        try:
            payment = await payment_ops.sync_with_provider(
                db, payment, paystack, source="payments_worker"
            )
        except PaystackError as exc:
            logger.warning(
                "Pending payment verify failed for %s: %s",
                payment.reference,
                exc.message,
            )
            continue
        if payment.status != before or payment.order_id:
            processed += 1

    if processed:
        logger.info("Reconciled %d pending Paystack payments", processed)
    return processed


async def run_reconcile_pending_payments() -> None:
    if not paystack_enabled():
        logger.info("Paystack not configured; skipping payment reconciliation")
        return
    async with AsyncSessionLocal() as db:
        await reconcile_pending_payments(db, PaystackClient())


async def run_retry_stalled_payouts() -> None:
    if not paystack_enabled():
        return
    async with AsyncSessionLocal() as db:
        retried = await payout_ops.retry_stalled_payouts(db, PaystackClient())
    if retried:
        logger.info("Retried %d seller payouts", retried)
