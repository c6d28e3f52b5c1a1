"""Pydantic response models for progression endpoints. JSON keys are camelCase."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Practice ---


class PracticeSessionRequest(CamelModel):
    """A scored attempt as returned by the scoring service."""

    score: int = Field(ge=0, le=100)
    mode: str = Field(default="text", pattern="^(text|voice|quick|rehearsal)$")
    tone: str | None = None
    prompt: str | None = None
    category: str | None = None
    xp_base: int | None = Field(default=None, ge=0)
    pp_base: int | None = Field(default=None, ge=0)


class NewBadge(CamelModel):
    name: str
    icon: str
    description: str


class PracticeSessionResponse(CamelModel):
    session_id: int
    score: int
    tone: str | None = None
    mode: str
    xp_earned: int
    pp_earned: int
    streak_bonus: int
    current_streak: int
    streak_multiplier: int
    level: int
    leveled_up: bool
    new_badges: list[NewBadge] = []


# --- Progress / streak ---


class Milestone(CamelModel):
    days: int
    multiplier: int
    days_remaining: int


class ProgressResponse(CamelModel):
    total_xp: int
    total_pp: int
    level: int
    xp_into_level: int
    xp_for_level: int
    current_streak: int
    best_streak: int
    practice_count: int
    streak_multiplier: int
    next_milestone: Milestone | None = None


class StreakStatusResponse(CamelModel):
    current_streak: int
    best_streak: int
    last_practice_date: datetime | None = None
    streak_bonus: int


# --- Login rewards ---


class LoginReward(CamelModel):
    day: int
    reward_type: str
    reward_value: int
    description: str | None = None


class LoginClaim(CamelModel):
    id: int
    claimed_day: int
    claimed_at: datetime
    cycle_start_date: date


class LoginRewardStatusResponse(CamelModel):
    rewards: list[LoginReward]
    current_day: int
    claimed_days: list[int]
    can_claim_today: bool
    cycle_start_date: date
    streak_count: int


class LoginRewardClaimResponse(CamelModel):
    success: bool
    claim: LoginClaim
    reward: LoginReward
    current_day: int
    claimed_days: list[int]
    can_claim_today: bool
    cycle_start_date: date
    streak_count: int


# --- Badges ---


class BadgeResponse(CamelModel):
    slug: str
    name: str
    description: str
    icon: str
    xp_reward: int
    pp_reward: int


class AllBadgesResponse(CamelModel):
    badges: list[BadgeResponse]


class EarnedBadgeResponse(CamelModel):
    slug: str
    name: str
    icon: str
    description: str
    earned_at: datetime


class UserBadgesResponse(CamelModel):
    earned: list[EarnedBadgeResponse]
    total_available: int
    total_earned: int


# --- Weekly challenges ---


class WeeklyChallengeItem(CamelModel):
    id: int
    title: str
    description: str
    category: str | None = None
    goal_type: str
    goal_value: int
    goal_threshold: int | None = None
    xp_reward: int
    pp_reward: int
    week_start_date: date
    week_end_date: date
    user_progress: int
    completed: bool
    completed_at: datetime | None = None
    reward_claimed: bool


class WeeklyChallengesResponse(CamelModel):
    challenges: list[WeeklyChallengeItem]
    days_remaining: int
    week_end_date: date


class UncompletedCountResponse(CamelModel):
    count: int


class ChallengeClaimResponse(CamelModel):
    success: bool
    xp_earned: int
    pp_earned: int
