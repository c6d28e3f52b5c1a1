"""Subscription usage and manual tier selection endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.billing.schemas import SelectSubscriptionRequest, SelectSubscriptionResponse, UsageResponse
from mirrorplay.billing.tier_resolver import TierResolver
from mirrorplay.billing.usage import can_analyze, select_subscription
from mirrorplay.clock import Clock
from mirrorplay.config import Settings
from mirrorplay.db.models import User
from mirrorplay.dependencies import (
    get_app_settings,
    get_clock,
    get_current_user,
    get_db,
    get_redis_dep,
    get_tier_resolver,
)

router = APIRouter(prefix="/api/v1/subscription", tags=["Subscription"])


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    resolver: TierResolver = Depends(get_tier_resolver),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_app_settings),
):
    """Today's analysis usage against the user's tier limit."""
    check = await can_analyze(db, user, resolver, clock, settings)
    return UsageResponse.model_validate(asdict(check))


@router.post("/select", response_model=SelectSubscriptionResponse)
async def select_tier(
    body: SelectSubscriptionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_app_settings),
):
    """Pick a tier without going through billing (non-production or explicitly enabled)."""
    subscription = await select_subscription(db, redis, user, body.tier, clock, settings)
    return SelectSubscriptionResponse(success=True, tier=subscription.tier)
