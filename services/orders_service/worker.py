"""ARQ worker for the 48-hour commit window and refund retries."""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def startup(ctx: dict):
    configure_logging()


async def task_expire_overdue_commits(ctx: dict):
    from services.orders_service.tasks import run_expire_overdue_commits

    logger.info("Running: expire_overdue_commits")
    await run_expire_overdue_commits()


async def task_send_commit_reminders(ctx: dict):
    from services.orders_service.tasks import run_send_commit_reminders

    logger.info("Running: send_commit_reminders")
    await run_send_commit_reminders()


async def task_retry_failed_refunds(ctx: dict):
    from services.orders_service.tasks import run_retry_failed_refunds

    logger.info("Running: retry_failed_refunds")
    await run_retry_failed_refunds()


class WorkerSettings:
    redis_settings = get_redis_settings()
    on_startup = startup

    functions = [
        task_expire_overdue_commits,
        task_send_commit_reminders,
        task_retry_failed_refunds,
    ]

    cron_jobs = [
        cron(
            task_expire_overdue_commits,
            minute={0, 15, 30, 45},
            run_at_startup=True,
        ),
        cron(task_send_commit_reminders, minute={5}),
        cron(task_retry_failed_refunds, minute={10, 40}),
    ]
