"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from fitjourney.coins.router import router as coins_router
from fitjourney.config import get_settings
from fitjourney.cron.router import router as cron_router
from fitjourney.database import close_db, get_session_factory, init_db
from fitjourney.gamification.router import router as gamification_router
from fitjourney.gamification.seed import seed_all
from fitjourney.games.router import router as games_router
from fitjourney.health.router import router as health_router
from fitjourney.middleware import setup_middleware
from fitjourney.quests.router import router as quests_router
from fitjourney.redis_client import close_redis, init_redis
from fitjourney.shop.router import router as shop_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url, echo=settings.debug)
    await init_redis(settings.redis_url)

    # Catalog seeding is idempotent
    try:
        async with get_session_factory()() as db:
            await seed_all(db)
    except SQLAlchemyError:
        logger.warning("Catalog seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="FitJourney Gamification API",
        description="XP, streaks, coins, quests, rewards and mini-games for FitJourney",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router)
    app.include_router(gamification_router)
    app.include_router(coins_router)
    app.include_router(quests_router)
    app.include_router(shop_router)
    app.include_router(games_router)
    app.include_router(cron_router)

    return app


app = create_app()
