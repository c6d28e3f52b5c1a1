"""Subscription tier resolution and per-tier daily limits."""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.billing.stripe_client import ACTIVE_SUBSCRIPTION_STATUSES
from mirrorplay.cache import TTLCache
from mirrorplay.config import Settings
from mirrorplay.db.models import StripeProduct, StripeSubscription, Subscription, User

logger = logging.getLogger(__name__)

TIERS = ("free", "plus", "pro")

# Product metadata values used by the billing catalog
TIER_ALIASES: dict[str, str] = {
    "free": "free",
    "plus": "plus",
    "pro": "pro",
    "peace_plus": "plus",
    "pro_mind": "pro",
}


class BillingClient(Protocol):
    async def fetch_customer_tier(self, customer_id: str) -> str | None: ...


def normalize_tier(raw: object) -> str:
    """Map billing metadata to a tier. Anything unrecognised is free."""
    if not isinstance(raw, str):
        return "free"
    return TIER_ALIASES.get(raw.strip().lower(), "free")


def tier_limit(tier: str, settings: Settings) -> int | None:
    """Daily analysis limit for a tier; None means unlimited."""
    if tier in ("plus", "pro"):
        return None
    if settings.environment == "development" and settings.free_unlimited_in_development:
        return None
    return settings.free_daily_limit


class TierResolver:
    """Resolves a user's tier from local records, synced billing data, or Stripe.

    Direct Stripe answers are cached per customer for ``tier_cache_ttl_seconds``.
    The cache is advisory: a stale answer for up to the TTL is accepted.
    """

    def __init__(self, settings: Settings, cache: TTLCache, billing: BillingClient | None = None) -> None:
        self.settings = settings
        self.cache = cache
        self.billing = billing

    @staticmethod
    def cache_key(customer_id: str) -> str:
        return f"tier:{customer_id}"

    async def get_subscription_tier(self, db: AsyncSession, user: User) -> str:
        if not user.stripe_customer_id:
            return await self._local_tier(db, user.id)

        tier = await self._synced_tier(db, user.stripe_customer_id)
        if tier is not None:
            return tier
        return await self._remote_tier(user.stripe_customer_id)

    async def _local_tier(self, db: AsyncSession, user_id: int) -> str:
        result = await db.execute(select(Subscription).where(Subscription.user_id == user_id))
        subscription = result.scalar_one_or_none()
        if subscription is None or subscription.status != "active":
            return "free"
        return normalize_tier(subscription.tier)

    async def _synced_tier(self, db: AsyncSession, customer_id: str) -> str | None:
        """Tier from the Stripe mirror tables, or None when they cannot answer."""
        result = await db.execute(
            select(StripeSubscription)
            .where(
                StripeSubscription.customer_id == customer_id,
                StripeSubscription.status.in_(ACTIVE_SUBSCRIPTION_STATUSES),
            )
            .order_by(StripeSubscription.created_at.desc())
            .limit(1)
        )
        subscription = result.scalar_one_or_none()
        if subscription is None or subscription.product_id is None:
            return None

        product = await db.get(StripeProduct, subscription.product_id)
        if product is None or not product.product_metadata.get("tier"):
            return None
        return normalize_tier(product.product_metadata["tier"])

    async def _remote_tier(self, customer_id: str) -> str:
        key = self.cache_key(customer_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return normalize_tier(cached)

        if self.billing is None:
            return "free"

        try:
            tier = normalize_tier(await self.billing.fetch_customer_tier(customer_id))
        except Exception:
            logger.warning("Billing lookup failed for customer %s; treating as free", customer_id, exc_info=True)
            tier = "free"

        await self.cache.set(key, tier, self.settings.tier_cache_ttl_seconds)
        return tier
