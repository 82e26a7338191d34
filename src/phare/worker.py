"""arq worker for scheduled jobs.

Import path for arq CLI: arq phare.worker.WorkerSettings
"""

from __future__ import annotations

import structlog
from arq import cron
from arq.connections import RedisSettings
from sqlalchemy.ext.asyncio import AsyncSession

from phare.clock import get_clock
from phare.config import get_settings
from phare.database import close_db, get_session, init_db
from phare.gamification.streak_service import check_all_streaks
from phare.kv_store import RedisKeyValueStore
from phare.logging_config import setup_logging
from phare.notifications.daily import dispatch_daily_reminders
from phare.redis_client import close_redis, get_redis, init_redis

logger = structlog.get_logger()


async def _get_db_session() -> AsyncSession:
    """Get a database session for the worker."""
    async for session in get_session():
        return session
    raise RuntimeError("Failed to get database session")


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize Redis + DB connections on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)

    await init_redis(settings.redis_url)
    ctx["redis"] = get_redis()
    logger.info("worker_started", timezone=settings.timezone)


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    ctx.pop("redis", None)
    await close_redis()
    await close_db()
    logger.info("worker_stopped")


async def daily_streak_check(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scheduled task: lapse streaks whose last activity is older than yesterday."""
    db = await _get_db_session()
    try:
        report = await check_all_streaks(db, get_clock())
    finally:
        await db.close()
    logger.info("streak_check_done", checked=report.checked, reset=report.reset, failed=report.failed)
    return report.reset


async def send_daily_reminders(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scheduled task: send mission reminders due this minute."""
    redis_client = ctx["redis"]
    db = await _get_db_session()
    try:
        report = await dispatch_daily_reminders(db, redis_client, RedisKeyValueStore(redis_client), get_clock())
    finally:
        await db.close()
    if report.sent or report.failed:
        logger.info("reminders_dispatched", checked=report.checked, sent=report.sent, failed=report.failed)
    return report.sent


class WorkerSettings:
    """arq worker settings for the scheduled jobs."""

    functions = [daily_streak_check, send_daily_reminders]
    cron_jobs = [
        cron(daily_streak_check, hour=0, minute=5),
        cron(send_daily_reminders, second=0),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    timezone = get_clock().tz
    max_jobs = 4
