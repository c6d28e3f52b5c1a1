"""Pydantic models for subscription endpoints."""

from __future__ import annotations

from mirrorplay.gamification.schemas import CamelModel


class UsageResponse(CamelModel):
    """limit / remaining are null for unlimited tiers."""

    allowed: bool
    remaining: int | None
    limit: int | None
    tier: str
    used_today: int


class SelectSubscriptionRequest(CamelModel):
    tier: str


class SelectSubscriptionResponse(CamelModel):
    success: bool
    tier: str
