"""Scheduled ledger jobs run by the arq worker.

- daily_uptime_reset_job: 00:00 UTC, restores every device's quota
- plan_sync_job: every 15 minutes, pulls plan changes for active users
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from sprewards.config import get_settings
from sprewards.database import close_db, get_session_factory, init_db
from sprewards.middleware.logging import setup_logging
from sprewards.subscriptions.plan_sync import plan_source_from_settings, sync_plans
from sprewards.uptime.service import daily_uptime_reset

logger = logging.getLogger(__name__)


async def daily_uptime_reset_job(ctx: dict) -> int:
    """Reset device uptime for every account. Returns users reset."""
    settings = get_settings()
    async with get_session_factory()() as db:
        return await daily_uptime_reset(db, batch_size=settings.uptime_reset_batch_size)


async def plan_sync_job(ctx: dict) -> int:
    """Sync plans from the external plan source. Returns users updated."""
    source = plan_source_from_settings()
    if source is None:
        logger.info("Plan sync skipped: no plan source configured")
        return 0
    async with get_session_factory()() as db:
        try:
            return await sync_plans(db, source)
        except Exception:
            logger.exception("Plan sync run failed")
            return 0


async def startup(ctx: dict) -> None:
    """Open the database pool on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    logger.info("Rewards worker started")


async def shutdown(ctx: dict) -> None:
    await close_db()
    logger.info("Rewards worker shut down")


class WorkerSettings:
    """arq worker settings for the scheduled ledger jobs."""

    functions = [daily_uptime_reset_job, plan_sync_job]
    cron_jobs = [
        cron(daily_uptime_reset_job, hour={0}, minute={0}, run_at_startup=False),
        cron(plan_sync_job, minute={0, 15, 30, 45}, run_at_startup=True),
    ]
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    on_startup = startup
    on_shutdown = shutdown
    max_jobs = 4
    job_timeout = 600
