"""ARQ worker for payment reconciliation and payout retries."""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def startup(ctx: dict):
    configure_logging()


async def task_reconcile_pending_payments(ctx: dict):
    from services.payments_service.tasks import run_reconcile_pending_payments

    logger.info("Running: reconcile_pending_payments")
    await run_reconcile_pending_payments()


async def task_retry_stalled_payouts(ctx: dict):
    from services.payments_service.tasks import run_retry_stalled_payouts

    logger.info("Running: retry_stalled_payouts")
    await run_retry_stalled_payouts()


class WorkerSettings:
    redis_settings = get_redis_settings()
    on_startup = startup

    functions = [
        task_reconcile_pending_payments,
        task_retry_stalled_payouts,
    ]

    cron_jobs = [
        cron(
            task_reconcile_pending_payments,
            minute={0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55},
            run_at_startup=True,
        ),
        cron(
            task_retry_stalled_payouts,
            minute={7, 37},
        ),
    ]
