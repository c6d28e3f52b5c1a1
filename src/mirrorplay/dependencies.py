"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.billing.tier_resolver import TierResolver
from mirrorplay.clock import Clock
from mirrorplay.config import Settings, get_settings
from mirrorplay.database import get_session
from mirrorplay.db.models import User
from mirrorplay.redis_client import get_redis_or_none

get_db = get_session


def get_clock(request: Request) -> Clock:
    """The app-wide clock (tests swap in a FrozenClock)."""
    return request.app.state.clock


def get_tier_resolver(request: Request) -> TierResolver:
    return request.app.state.tier_resolver


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


async def get_redis_dep() -> object:
    """Redis client for best-effort publishing, or None when Redis is not configured."""
    return get_redis_or_none()


async def get_current_user(
    x_user_id: int | None = Header(default=None),
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> User:
    """Resolve the X-User-Id header set by the authentication gateway."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = await db.get(User, x_user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user
