"""Progression API endpoints: practice, progress, login rewards, badges, weekly challenges."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.billing.tier_resolver import TierResolver
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
from mirrorplay.gamification import weekly_challenges
from mirrorplay.gamification.badge_service import get_user_badges, list_badges
from mirrorplay.gamification.login_rewards import claim_login_reward, get_login_reward_status
from mirrorplay.gamification.practice_service import ScoreResult, submit_scored_action
from mirrorplay.gamification.schemas import (
    AllBadgesResponse,
    BadgeResponse,
    ChallengeClaimResponse,
    EarnedBadgeResponse,
    LoginRewardClaimResponse,
    LoginRewardStatusResponse,
    PracticeSessionRequest,
    PracticeSessionResponse,
    ProgressResponse,
    StreakStatusResponse,
    UncompletedCountResponse,
    UserBadgesResponse,
    WeeklyChallengeItem,
    WeeklyChallengesResponse,
)
from mirrorplay.gamification.streak_service import get_streak_status
from mirrorplay.gamification.xp_service import get_progress_summary

router = APIRouter(prefix="/api/v1", tags=["Progression"])


# ── Practice ──


@router.post("/practice/sessions", response_model=PracticeSessionResponse)
async def create_practice_session(
    body: PracticeSessionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_app_settings),
    resolver: TierResolver = Depends(get_tier_resolver),
):
    """Record a scored attempt. Returns 402 when today's analysis limit is used up."""

    async def scorer() -> ScoreResult:
        return ScoreResult(score=body.score, tone=body.tone, xp_base=body.xp_base, pp_base=body.pp_base)

    result = await submit_scored_action(
        db, redis, user, scorer, clock, settings, resolver,
        mode=body.mode, prompt=body.prompt, category=body.category,
    )
    return PracticeSessionResponse.model_validate(result)


# ── Progress ──


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Totals, level progress, multiplier and next streak milestone."""
    summary = await get_progress_summary(db, user.id)
    await db.commit()
    return ProgressResponse.model_validate(summary)


@router.get("/progress/streak", response_model=StreakStatusResponse)
async def get_streak(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Current and best streak with the bonus the next qualifying action would carry."""
    status = await get_streak_status(db, user.id, settings.streak_bonus_per_day, settings.streak_bonus_cap)
    return StreakStatusResponse.model_validate(status)


# ── Login rewards ──


@router.get("/login-rewards", response_model=LoginRewardStatusResponse)
async def login_reward_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_app_settings),
):
    """The 7-day calendar and where the user stands in the current cycle."""
    status = await get_login_reward_status(db, user.id, clock, settings.login_cycle_reset_on_missed_day)
    await db.commit()
    return LoginRewardStatusResponse.model_validate(status)


@router.post("/login-rewards/claim", response_model=LoginRewardClaimResponse)
async def claim_reward(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_app_settings),
):
    """Claim today's login reward. 400 if already claimed today."""
    result = await claim_login_reward(db, redis, user.id, clock, settings.login_cycle_reset_on_missed_day)
    return LoginRewardClaimResponse.model_validate(result)


# ── Badges ──


@router.get("/badges", response_model=AllBadgesResponse)
async def get_badges(db: AsyncSession = Depends(get_db)):
    """Get all active badge definitions."""
    badges = await list_badges(db)
    return AllBadgesResponse(badges=[BadgeResponse.model_validate(b) for b in badges])


@router.get("/users/me/badges", response_model=UserBadgesResponse)
async def get_my_badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Badges the current user has earned, newest first."""
    earned = await get_user_badges(db, user.id)
    total_available = len(await list_badges(db))
    return UserBadgesResponse(
        earned=[
            EarnedBadgeResponse(
                slug=ub.badge.slug,
                name=ub.badge.name,
                icon=ub.badge.icon,
                description=ub.badge.description,
                earned_at=ub.earned_at,
            )
            for ub in earned
        ],
        total_available=total_available,
        total_earned=len(earned),
    )


# ── Weekly challenges ──


@router.get("/weekly-challenges", response_model=WeeklyChallengesResponse)
async def get_weekly_challenges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """This week's challenges with the user's progress."""
    listing = await weekly_challenges.list_weekly_challenges(db, user.id, clock)
    items = []
    for entry in listing["challenges"]:
        challenge, progress = entry["challenge"], entry["progress"]
        items.append(WeeklyChallengeItem(
            id=challenge.id,
            title=challenge.title,
            description=challenge.description,
            category=challenge.category,
            goal_type=challenge.goal_type,
            goal_value=challenge.goal_value,
            goal_threshold=challenge.goal_threshold,
            xp_reward=challenge.xp_reward,
            pp_reward=challenge.pp_reward,
            week_start_date=challenge.week_start_date,
            week_end_date=challenge.week_end_date,
            user_progress=progress.progress,
            completed=progress.completed,
            completed_at=progress.completed_at,
            reward_claimed=progress.reward_claimed,
        ))
    return WeeklyChallengesResponse(
        challenges=items,
        days_remaining=listing["days_remaining"],
        week_end_date=listing["week_end_date"],
    )


@router.get("/weekly-challenges/uncompleted-count", response_model=UncompletedCountResponse)
async def get_uncompleted_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Number of this week's challenges the user has not completed."""
    count = await weekly_challenges.count_uncompleted_challenges(db, user.id, clock)
    return UncompletedCountResponse(count=count)


@router.post("/weekly-challenges/{challenge_id}/claim", response_model=ChallengeClaimResponse)
async def claim_weekly_challenge(
    challenge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    clock: Clock = Depends(get_clock),
):
    """Claim a completed challenge's reward."""
    result = await weekly_challenges.claim_challenge_reward(db, redis, user.id, challenge_id, clock)
    return ChallengeClaimResponse.model_validate(result)
