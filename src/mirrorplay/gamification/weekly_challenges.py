"""Weekly challenges: per-user progress toward Monday–Sunday goals."""

from __future__ import annotations

import logging
import math
from datetime import datetime

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.clock import Clock
from mirrorplay.db.models import UserWeeklyChallengeProgress, WeeklyChallenge
from mirrorplay.errors import ChallengeNotCompleted, ChallengeNotFound, ChallengeRewardAlreadyClaimed
from mirrorplay.gamification.multiplier import streak_multiplier
from mirrorplay.gamification.seed import seed_weekly_challenges
from mirrorplay.gamification.xp_service import apply_progress_delta, get_or_create_progress

logger = logging.getLogger(__name__)


def _active_filter(clock: Clock):  # noqa: ANN202
    today = clock.today()
    return and_(
        WeeklyChallenge.is_active.is_(True),
        WeeklyChallenge.week_start_date <= today,
        WeeklyChallenge.week_end_date >= today,
    )


async def get_active_challenges(db: AsyncSession, clock: Clock) -> list[WeeklyChallenge]:
    """This week's active challenges, creating them from the templates on first access."""
    result = await db.execute(select(WeeklyChallenge).where(_active_filter(clock)).order_by(WeeklyChallenge.id))
    challenges = list(result.scalars())
    if not challenges:
        challenges = await seed_weekly_challenges(db, clock)
    return challenges


async def get_or_create_challenge_progress(
    db: AsyncSession, user_id: int, challenge_id: int
) -> UserWeeklyChallengeProgress:
    stmt = select(UserWeeklyChallengeProgress).where(
        UserWeeklyChallengeProgress.user_id == user_id,
        UserWeeklyChallengeProgress.challenge_id == challenge_id,
    )
    row = (await db.execute(stmt)).scalar_one_or_none()
    if row is not None:
        return row
    try:
        async with db.begin_nested():
            row = UserWeeklyChallengeProgress(user_id=user_id, challenge_id=challenge_id, progress_data={})
            db.add(row)
    except IntegrityError:
        row = (await db.execute(stmt)).scalar_one()
    return row


def days_remaining(challenge: WeeklyChallenge, clock: Clock) -> int:
    """Whole days (rounded up) until the end of the challenge week."""
    _, week_end = clock.day_bounds(challenge.week_end_date)
    seconds = (week_end - clock.now()).total_seconds()
    return max(0, math.ceil(seconds / 86400))


async def list_weekly_challenges(db: AsyncSession, user_id: int, clock: Clock) -> dict:
    """Active challenges with the user's progress (created lazily). Commits new rows."""
    challenges = await get_active_challenges(db, clock)
    items = []
    for challenge in challenges:
        progress = await get_or_create_challenge_progress(db, user_id, challenge.id)
        items.append({"challenge": challenge, "progress": progress})
    await db.commit()

    if challenges:
        week_end_date = challenges[0].week_end_date
        remaining = days_remaining(challenges[0], clock)
    else:
        week_end_date = clock.week_bounds()[1]
        remaining = 0
    return {"challenges": items, "days_remaining": remaining, "week_end_date": week_end_date}


def _advance(
    challenge: WeeklyChallenge,
    row: UserWeeklyChallengeProgress,
    score: int,
    mode: str,
    category: str | None,
    current_streak: int,
) -> None:
    goal = challenge.goal_type
    if goal == "practice_count":
        row.progress += 1
    elif goal == "score_threshold":
        if score >= (challenge.goal_threshold or 0):
            row.progress += 1
    elif goal == "streak":
        row.progress = max(row.progress, current_streak)
    elif goal == "voice_practice":
        if mode == "voice":
            row.progress += 1
    elif goal == "category_variety":
        if category:
            seen = set(row.progress_data.get("categories", []))
            seen.add(category)
            # Reassign so the JSON column is marked dirty
            row.progress_data = {**row.progress_data, "categories": sorted(seen)}
            row.progress = len(seen)
    else:
        logger.warning("Unknown weekly challenge goal type %s (challenge %s)", goal, challenge.id)
    row.progress = min(row.progress, challenge.goal_value)


async def record_practice(
    db: AsyncSession,
    user_id: int,
    clock: Clock,
    score: int,
    mode: str,
    category: str | None,
    current_streak: int,
    now: datetime | None = None,
) -> list[int]:
    """Advance this week's challenges for a scored action. Returns ids of newly completed challenges."""
    if now is None:
        now = clock.now()
    completed: list[int] = []
    for challenge in await get_active_challenges(db, clock):
        row = await get_or_create_challenge_progress(db, user_id, challenge.id)
        if row.completed:
            continue
        _advance(challenge, row, score, mode, category, current_streak)
        if row.progress >= challenge.goal_value:
            row.completed = True
            row.completed_at = now
            completed.append(challenge.id)
    await db.flush()
    if completed:
        logger.info("User %s completed weekly challenges %s", user_id, completed)
    return completed


async def claim_challenge_reward(
    db: AsyncSession,
    redis: object,
    user_id: int,
    challenge_id: int,
    clock: Clock,
) -> dict:
    """Claim a completed challenge's reward once. XP uses the streak multiplier; PP does not. Commits."""
    now = clock.now()
    challenge = await db.get(WeeklyChallenge, challenge_id)
    if challenge is None:
        raise ChallengeNotFound

    row = (
        await db.execute(
            select(UserWeeklyChallengeProgress).where(
                UserWeeklyChallengeProgress.user_id == user_id,
                UserWeeklyChallengeProgress.challenge_id == challenge_id,
            )
        )
    ).scalar_one_or_none()
    if row is None:
        raise ChallengeNotFound("Progress not found")
    if not row.completed:
        raise ChallengeNotCompleted
    if row.reward_claimed:
        raise ChallengeRewardAlreadyClaimed

    result = await db.execute(
        update(UserWeeklyChallengeProgress)
        .where(
            UserWeeklyChallengeProgress.id == row.id,
            UserWeeklyChallengeProgress.completed.is_(True),
            UserWeeklyChallengeProgress.reward_claimed.is_(False),
        )
        .values(reward_claimed=True, claimed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ChallengeRewardAlreadyClaimed

    progress = await get_or_create_progress(db, user_id, now)
    xp_earned = int(challenge.xp_reward * streak_multiplier(progress.current_streak))
    pp_earned = challenge.pp_reward
    await apply_progress_delta(db, redis, user_id, xp=xp_earned, pp=pp_earned, now=now)
    await db.commit()
    logger.info("User %s claimed weekly challenge %s (+%d XP, +%d PP)", user_id, challenge_id, xp_earned, pp_earned)

    return {"success": True, "xp_earned": xp_earned, "pp_earned": pp_earned}


async def count_uncompleted_challenges(db: AsyncSession, user_id: int, clock: Clock) -> int:
    """Active challenges this week the user has not completed (including ones never started)."""
    result = await db.execute(
        select(func.count(WeeklyChallenge.id))
        .select_from(WeeklyChallenge)
        .outerjoin(
            UserWeeklyChallengeProgress,
            and_(
                UserWeeklyChallengeProgress.challenge_id == WeeklyChallenge.id,
                UserWeeklyChallengeProgress.user_id == user_id,
            ),
        )
        .where(
            _active_filter(clock),
            or_(
                UserWeeklyChallengeProgress.completed.is_(None),
                UserWeeklyChallengeProgress.completed.is_(False),
            ),
        )
    )
    return result.scalar_one()
