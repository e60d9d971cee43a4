"""Paystack webhook receiver."""

import json

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.common.datetime_utils import parse_provider_timestamp
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.orders_service.services import order_ops
from services.payments_service.paystack_client import (
    PaystackClient,
    get_optional_paystack_client,
    verify_webhook_signature,
)
from services.payments_service.services import payment_ops, payout_ops
from services.sellers_service.services.seller_ops import apply_subaccount_update
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])
logger = get_logger(__name__)

TRANSFER_EVENTS = ("transfer.success", "transfer.failed", "transfer.reversed")
REFUND_EVENTS = ("refund.processed", "refund.failed")


async def _handle_charge(
    db: AsyncSession, event: str, data: dict, paystack: PaystackClient
) -> None:
    reference = data.get("reference")
    payment = await payment_ops.get_payment_by_reference(db, reference) if reference else None
    if not payment:
        logger.warning(
            f"Webhook received for unknown payment reference: {reference}",
            extra={"extra_fields": {"reference": reference, "event": event}},
        )
        return

    if event == "charge.success":
        amount = int(data.get("amount") or 0)
        if amount and amount != payment.total_cents:
            await payment_ops.record_amount_mismatch(db, payment, amount)
            return
        await payment_ops.mark_paid_and_create_order(
            db,
            payment,
            paid_at=parse_provider_timestamp(data.get("paid_at")),
            provider_payload={"event": event, "data": data},
            paystack=paystack,
        )
    else:
        await payment_ops.mark_payment_failed(
            db, payment, {"event": event, "data": data}
        )


@router.post("/webhooks/paystack")
async def paystack_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    paystack: PaystackClient = Depends(get_optional_paystack_client),
):
    """
    Paystack webhook endpoint (no auth; verified by x-paystack-signature).

    Every handled or unknown event is acknowledged with 200 so Paystack stops
    retrying; all handlers are idempotent.
    """
    raw = await request.body()
    signature = request.headers.get("x-paystack-signature")
    if not signature or not verify_webhook_signature(raw, signature):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature"
        )

    try:
        payload = json.loads(raw.decode("utf-8") or "{}")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body"
        )
    event = payload.get("event") or ""
    data = payload.get("data") or {}
    logger.info(f"Paystack webhook: {event}", extra={"extra_fields": {"event": event}})

    if event in ("charge.success", "charge.failed", "transaction.failed"):
        await _handle_charge(db, event, data, paystack)
    elif event in TRANSFER_EVENTS:
        await payout_ops.apply_transfer_event(db, event, data)
    elif event in REFUND_EVENTS:
        await order_ops.apply_refund_event(db, event, data)
    elif event == "subaccount.updated":
        await apply_subaccount_update(db, data)
    else:
        logger.info(f"Ignoring unhandled Paystack event {event}")

    return {"received": True}
