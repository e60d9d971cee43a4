"""Scheduled order sweeps: commit expiry, reminders and refund retries."""

from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal
from services.orders_service.services import order_ops
from services.payments_service.paystack_client import PaystackClient, paystack_enabled

logger = get_logger(__name__)


def _paystack():
    return PaystackClient() if paystack_enabled() else None


async def run_expire_overdue_commits() -> int:
    async with AsyncSessionLocal() as db:
        return await order_ops.expire_overdue_commits(db, _paystack())


async def run_send_commit_reminders() -> int:
    async with AsyncSessionLocal() as db:
        sent = await order_ops.send_commit_reminders(db)
    if sent:
        logger.info("Sent %d commit reminders", sent)
    return sent


async def run_retry_failed_refunds() -> int:
    paystack = _paystack()
    if paystack is None:
        logger.info("Paystack not configured; skipping refund retries")
        return 0
    async with AsyncSessionLocal() as db:
        return await order_ops.retry_failed_refunds(db, paystack)
