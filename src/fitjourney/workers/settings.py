"""arq worker for scheduled quest jobs.

Import path for arq CLI: arq fitjourney.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from fitjourney.config import get_settings
from fitjourney.database import close_db, get_session_factory, init_db
from fitjourney.quests.quest_service import assign_quests_to_all_users, cleanup_expired_quests
from fitjourney.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open the database and event Redis pools for job functions."""
    settings = get_settings()
    await init_db(settings.database_url, echo=settings.debug)
    await init_redis(settings.redis_url)
    ctx["session_factory"] = get_session_factory()
    logger.info("Quest worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    await close_redis()
    logger.info("Quest worker shut down")


async def _assign(ctx: dict, quest_type: str) -> dict:  # type: ignore[type-arg]
    async with ctx["session_factory"]() as db:
        return await assign_quests_to_all_users(db, quest_type)


async def assign_daily_quests(ctx: dict) -> dict:  # type: ignore[type-arg]
    """Daily at 00:05: give every active user today's quests."""
    return await _assign(ctx, "DAILY")


async def assign_weekly_quests(ctx: dict) -> dict:  # type: ignore[type-arg]
    """Mondays at 00:10: give every active user this week's quests."""
    return await _assign(ctx, "WEEKLY")


async def assign_special_quests(ctx: dict) -> dict:  # type: ignore[type-arg]
    return await _assign(ctx, "SPECIAL")


async def cleanup_quests(ctx: dict) -> int:  # type: ignore[type-arg]
    """Daily at 03:00: drop expired, never-completed quests."""
    async with ctx["session_factory"]() as db:
        return await cleanup_expired_quests(db)


class WorkerSettings:
    """arq worker settings for quest scheduling.

    Cron times are in the worker's timezone; run it with TZ matching
    FJ_ACTIVITY_TIMEZONE so jobs line up with quest periods.
    """

    functions = [assign_daily_quests, assign_weekly_quests, assign_special_quests, cleanup_quests]
    cron_jobs = [
        cron(assign_daily_quests, hour=0, minute=5, second=0),
        cron(assign_weekly_quests, weekday=0, hour=0, minute=10, second=0),
        cron(cleanup_quests, hour=3, minute=0, second=0),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 4
