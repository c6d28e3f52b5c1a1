"""Shared test fixtures.

Tests run against an in-memory SQLite database (aiosqlite) with the schema
created from the ORM metadata, and a FrozenClock so day boundaries are
deterministic.
"""

from __future__ import annotations

import os

os.environ["MIRROR_ENVIRONMENT"] = "test"
os.environ["MIRROR_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["MIRROR_REDIS_URL"] = ""
os.environ["MIRROR_LOG_FORMAT"] = "console"

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from mirrorplay.billing.tier_resolver import TierResolver  # noqa: E402
from mirrorplay.cache import InMemoryTTLCache  # noqa: E402
from mirrorplay.clock import FrozenClock  # noqa: E402
from mirrorplay.config import Settings, get_settings  # noqa: E402
from mirrorplay.database import close_db, get_engine, get_session, get_session_factory, init_db  # noqa: E402
from mirrorplay.db.base import Base  # noqa: E402
from mirrorplay.db.models import User  # noqa: E402
from mirrorplay.gamification.seed import seed_reference_data  # noqa: E402

get_settings.cache_clear()

# Wednesday, mid-day UTC
FROZEN_NOW = datetime(2026, 3, 4, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    """Test settings: not development, so the free tier is capped at 3 per day."""
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        redis_url="",
        log_format="console",
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(FROZEN_NOW)


@pytest.fixture
def redis() -> AsyncMock:
    """Stand-in for the Redis client used for best-effort publishing."""
    mock = AsyncMock()
    mock.publish = AsyncMock(return_value=1)
    return mock


@pytest_asyncio.fixture
async def db_session(settings: Settings) -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database with all tables, and a session on it."""
    await init_db(settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with get_session_factory()() as session:
        yield session
    await close_db()


@pytest_asyncio.fixture
async def seeded_db(db_session: AsyncSession, clock: FrozenClock) -> AsyncSession:
    """Database with the reward calendar, badge catalog and this week's challenges."""
    await seed_reference_data(db_session, clock)
    return db_session


@pytest.fixture
def user_factory(db_session: AsyncSession, clock: FrozenClock) -> Callable[..., Awaitable[User]]:
    """Insert and commit users created at the clock's current time (override with created_at=...)."""

    async def _make(**kwargs: object) -> User:
        kwargs.setdefault("created_at", clock.now())
        user = User(**kwargs)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def user(seeded_db: AsyncSession, user_factory: Callable[..., Awaitable[User]]) -> User:
    return await user_factory(email="learner@example.com", display_name="Learner")


@pytest.fixture
def tier_resolver(settings: Settings, clock: FrozenClock) -> TierResolver:
    """Resolver with an in-memory cache and no Stripe client."""
    return TierResolver(settings, InMemoryTTLCache(clock), None)


@pytest_asyncio.fixture
async def client(
    seeded_db: AsyncSession,
    settings: Settings,
    clock: FrozenClock,
    tier_resolver: TierResolver,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, sharing the test's session and frozen clock."""
    from mirrorplay.main import create_app

    app = create_app(settings)
    app.state.clock = clock
    app.state.tier_resolver = tier_resolver

    async def _session_override() -> AsyncGenerator[AsyncSession, None]:
        yield seeded_db

    app.dependency_overrides[get_session] = _session_override

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client that identifies as the test user via the gateway header."""
    client.headers["X-User-Id"] = str(user.id)
    return client
