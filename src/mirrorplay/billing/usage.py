"""Daily usage ledger and subscription selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.billing.tier_resolver import TIERS, TierResolver, tier_limit
from mirrorplay.clock import Clock
from mirrorplay.config import Settings
from mirrorplay.db.models import PracticeSession, Subscription, User
from mirrorplay.errors import InvalidTier, ManualSubscriptionDisabled, UsageLimitExceeded
from mirrorplay.gamification.badge_requirements import SUBSCRIPTION
from mirrorplay.gamification.badge_service import check_and_award_badges

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageCheck:
    """Outcome of a usage gate check. limit/remaining of None mean unlimited."""

    allowed: bool
    remaining: int | None
    limit: int | None
    tier: str
    used_today: int

    def raise_for_limit(self) -> None:
        if not self.allowed:
            raise UsageLimitExceeded(self.tier, self.limit, self.used_today)


async def get_daily_usage(db: AsyncSession, user_id: int, clock: Clock) -> int:
    """Scored practice sessions created since local midnight."""
    start, end = clock.day_bounds()
    result = await db.execute(
        select(func.count(PracticeSession.id)).where(
            PracticeSession.user_id == user_id,
            PracticeSession.created_at >= start,
            PracticeSession.created_at < end,
        )
    )
    return result.scalar_one()


async def can_analyze(
    db: AsyncSession,
    user: User,
    resolver: TierResolver,
    clock: Clock,
    settings: Settings,
) -> UsageCheck:
    """Compose tier resolution with today's usage count. Read-only."""
    tier = await resolver.get_subscription_tier(db, user)
    limit = tier_limit(tier, settings)
    used_today = await get_daily_usage(db, user.id, clock)

    if limit is None:
        return UsageCheck(allowed=True, remaining=None, limit=None, tier=tier, used_today=used_today)
    return UsageCheck(
        allowed=used_today < limit,
        remaining=max(0, limit - used_today),
        limit=limit,
        tier=tier,
        used_today=used_today,
    )


async def select_subscription(
    db: AsyncSession,
    redis: object,
    user: User,
    tier: str,
    clock: Clock,
    settings: Settings,
) -> Subscription:
    """Set the local subscription tier without a billing link. Commits.

    Only allowed when manual subscriptions are enabled (outside production,
    or with the explicit override flag).
    """
    if not settings.manual_subscription_enabled:
        raise ManualSubscriptionDisabled
    if tier not in TIERS:
        raise InvalidTier(f"Invalid tier: {tier}")

    now = clock.now()
    result = await db.execute(select(Subscription).where(Subscription.user_id == user.id))
    subscription = result.scalar_one_or_none()
    if subscription is None:
        subscription = Subscription(user_id=user.id)
        db.add(subscription)
    subscription.tier = tier
    subscription.status = "active"
    subscription.updated_at = now
    await db.flush()

    if tier != "free":
        await check_and_award_badges(db, redis, clock, user.id, SUBSCRIPTION)

    await db.commit()
    logger.info("User %s selected subscription tier %s", user.id, tier)
    return subscription
