"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from sprewards.checkins.router import router as checkins_router
from sprewards.claims.router import router as claims_router
from sprewards.config import get_settings
from sprewards.database import close_db, init_db
from sprewards.earnings.router import router as earnings_router
from sprewards.health.router import router as health_router
from sprewards.leaderboard.router import router as leaderboard_router
from sprewards.middleware import setup_middleware
from sprewards.redis_client import close_redis, init_redis
from sprewards.referrals.router import router as referrals_router
from sprewards.stats.router import router as stats_router
from sprewards.subscriptions.router import router as subscriptions_router
from sprewards.tasks.router import router as tasks_router
from sprewards.uptime.router import router as devices_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)

    # Redis backs caching, pub/sub and rate limiting only; run without it if absent
    if settings.redis_url:
        try:
            await init_redis(settings.redis_url)
        except Exception:
            logger.warning("redis_unavailable", url=settings.redis_url, exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SP Rewards API",
        description="Reward ledger, claims and referral royalties for compute contributors",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(claims_router)
    app.include_router(tasks_router)
    app.include_router(checkins_router)
    app.include_router(referrals_router)
    app.include_router(subscriptions_router)
    app.include_router(devices_router)
    app.include_router(earnings_router)
    app.include_router(leaderboard_router)
    app.include_router(stats_router)

    return app


app = create_app()
