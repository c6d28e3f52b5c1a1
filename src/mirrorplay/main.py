"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mirrorplay.billing.router import router as billing_router
from mirrorplay.billing.stripe_client import StripeBillingClient
from mirrorplay.billing.tier_resolver import TierResolver
from mirrorplay.cache import InMemoryTTLCache, RedisTTLCache
from mirrorplay.clock import SystemClock
from mirrorplay.config import Settings, get_settings
from mirrorplay.database import close_db, get_session_factory, init_db
from mirrorplay.gamification.router import router as gamification_router
from mirrorplay.gamification.seed import seed_reference_data
from mirrorplay.health.router import router as health_router
from mirrorplay.middleware import setup_middleware
from mirrorplay.redis_client import close_redis, get_redis, init_redis

logger = logging.getLogger(__name__)


def configure_state(app: FastAPI, settings: Settings) -> None:
    """Attach the clock, tier cache and tier resolver the request dependencies read."""
    clock = SystemClock(settings.day_boundary_timezone)
    billing = StripeBillingClient(settings.stripe_secret_key) if settings.stripe_secret_key else None
    app.state.settings = settings
    app.state.clock = clock
    app.state.tier_resolver = TierResolver(settings, InMemoryTTLCache(clock), billing)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = app.state.settings
    await init_db(settings.database_url)
    if settings.redis_url:
        await init_redis(settings.redis_url)
        # Share the tier cache across instances
        app.state.tier_resolver.cache = RedisTTLCache(get_redis())

    # Seed reward calendar, badges and this week's challenges (idempotent)
    try:
        async with get_session_factory()() as db:
            await seed_reference_data(db, app.state.clock)
    except Exception:
        logger.warning("Reference data seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Mirror Play Progression API",
        description="Streaks, XP, login rewards, badges and usage limits for Mirror Play",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    configure_state(app, settings)
    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(billing_router)
    app.include_router(gamification_router)

    return app


app = create_app()
