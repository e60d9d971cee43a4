"""Seller payouts: record subaccount settlements, run Paystack transfers."""

from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.communications_service.services.order_notifications import (
    notify_payout_sent,
)
from services.payments_service.models import (
    PayoutMethod,
    PayoutStatus,
    SellerPayout,
    SettlementMode,
)
from services.payments_service.paystack_client import PaystackClient, PaystackError
from services.payments_service.services.payment_ops import get_payment_by_reference
from services.sellers_service.services.seller_ops import get_profile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()


async def get_payout_for_order(db: AsyncSession, order_id) -> Optional[SellerPayout]:
    result = await db.execute(
        select(SellerPayout).where(SellerPayout.order_id == order_id)
    )
    return result.scalar_one_or_none()


async def _start_transfer(
    db: AsyncSession, payout: SellerPayout, paystack: Optional[PaystackClient]
) -> None:
    if not payout.recipient_code:
        profile = await get_profile(db, payout.seller_auth_id)
        payout.recipient_code = profile.recipient_code if profile else None
    if not payout.recipient_code:
        payout.status = PayoutStatus.FAILED
        payout.failure_reason = "Seller has no transfer recipient on file"
        return
    if paystack is None:
        payout.status = PayoutStatus.PENDING
        payout.failure_reason = "Paystack is not configured"
        return

    payout.attempts += 1
    try:
        transfer = await paystack.initiate_transfer(
            recipient_code=payout.recipient_code,
            amount_cents=payout.amount_cents,
            reason=f"ReBooked sale payout ({payout.payment_reference})",
            reference=payout.transfer_reference,
            currency=payout.currency,
        )
    except PaystackError as e:
        payout.status = PayoutStatus.FAILED
        payout.failure_reason = e.message
        logger.warning(
            f"Payout transfer failed for order {payout.order_id}: {e.message}",
            extra={"extra_fields": {"order_id": str(payout.order_id)}},
        )
        return

    payout.transfer_code = transfer.transfer_code
    payout.failure_reason = None
    if transfer.status == "success":
        payout.status = PayoutStatus.PAID
        payout.paid_at = utc_now()
    else:
        payout.status = PayoutStatus.PROCESSING


async def release_seller_funds(
    db: AsyncSession,
    order,
    paystack: Optional[PaystackClient] = None,
    amount_cents: Optional[int] = None,
) -> SellerPayout:
    """
    Record the seller's payout once the courier has the book. Idempotent per
    order. The caller commits.

    Split-mode payments already settled into the seller's subaccount at charge
    time; transfer-mode payments are paid out now with a Paystack transfer.
    ``amount_cents`` overrides the seller share when a dispute settles for less.
    """
    existing = await get_payout_for_order(db, order.id)
    if existing:
        return existing

    payment = await get_payment_by_reference(db, order.payment_reference)
    mode = payment.settlement_mode if payment else SettlementMode.SPLIT

    payout = SellerPayout(
        order_id=order.id,
        payment_reference=order.payment_reference,
        seller_auth_id=order.seller_auth_id,
        amount_cents=(
            order.seller_amount_cents if amount_cents is None else amount_cents
        ),
        currency=order.currency,
        attempts=0,
    )
    if mode == SettlementMode.SPLIT:
        payout.method = PayoutMethod.SUBACCOUNT_SPLIT
        payout.status = PayoutStatus.PAID
        payout.paid_at = utc_now()
    else:
        payout.method = PayoutMethod.PAYSTACK_TRANSFER
        payout.transfer_reference = f"PAYOUT-{order.order_number}"
        await _start_transfer(db, payout, paystack)

    db.add(payout)
    await db.flush()
    if payout.status == PayoutStatus.PAID:
        notify_payout_sent(db, payout)
    logger.info(
        f"Seller payout for order {order.order_number}: {payout.method.value} / {payout.status.value}"
    )
    return payout


async def retry_stalled_payouts(
    db: AsyncSession, paystack: PaystackClient, limit: int = 100
) -> int:
    """Re-attempt transfer payouts that never reached Paystack or failed."""
    result = await db.execute(
        select(SellerPayout)
        .where(
            SellerPayout.method == PayoutMethod.PAYSTACK_TRANSFER,
            SellerPayout.status.in_([PayoutStatus.PENDING, PayoutStatus.FAILED]),
            SellerPayout.attempts < settings.MAX_REFUND_ATTEMPTS,
        )
        .order_by(SellerPayout.updated_at.asc())
        .limit(limit)
    )
    retried = 0
    for payout in result.scalars().all():
        await _start_transfer(db, payout, paystack)
        if payout.status == PayoutStatus.PAID:
            notify_payout_sent(db, payout)
        await db.commit()
        retried += 1
    return retried


async def apply_transfer_event(db: AsyncSession, event: str, data: dict) -> None:
    """transfer.success / transfer.failed / transfer.reversed webhooks."""
    reference = data.get("reference")
    if not reference:
        return
    result = await db.execute(
        select(SellerPayout).where(SellerPayout.transfer_reference == reference)
    )
    payout = result.scalar_one_or_none()
    if not payout:
        logger.warning(f"Transfer webhook for unknown payout reference {reference}")
        return
    if payout.status == PayoutStatus.PAID and event == "transfer.success":
        return

    if event == "transfer.success":
        payout.status = PayoutStatus.PAID
        payout.paid_at = utc_now()
        payout.failure_reason = None
        notify_payout_sent(db, payout)
    else:
        payout.status = PayoutStatus.FAILED
        payout.failure_reason = (
            data.get("reason") or data.get("message") or event.replace(".", " ")
        )
    payout.transfer_code = data.get("transfer_code") or payout.transfer_code
    await db.commit()
