"""7-day login reward cycle.

The cycle state is implicit in the user's latest claim and today's date:

    no previous claim                      -> day 1, cycle starts today
    latest claim was today                 -> nothing to claim
    latest claim was day 7 (any later day) -> day 1, cycle restarts today
    latest claim was yesterday             -> next day of the same cycle
    a day was missed                       -> day 1, cycle restarts today
                                              (or the next day when forfeiture is disabled)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.clock import Clock
from mirrorplay.db.models import DailyLoginReward, UserLoginReward
from mirrorplay.errors import AlreadyClaimedToday, MissingRewardData
from mirrorplay.gamification.badge_requirements import STREAK_UPDATE
from mirrorplay.gamification.badge_service import check_and_award_badges
from mirrorplay.gamification.multiplier import streak_multiplier
from mirrorplay.gamification.seed import seed_login_rewards
from mirrorplay.gamification.xp_service import apply_progress_delta, lock_progress

logger = logging.getLogger(__name__)

CYCLE_LENGTH = 7


@dataclass(frozen=True)
class CycleState:
    can_claim: bool
    current_day: int
    cycle_start_date: date


def resolve_cycle_state(
    latest_claim: UserLoginReward | None,
    today: date,
    reset_on_missed_day: bool = True,
) -> CycleState:
    """Decide which cycle day the user may claim today, if any."""
    if latest_claim is None:
        return CycleState(can_claim=True, current_day=1, cycle_start_date=today)

    days_since = (today - latest_claim.claim_date).days
    if days_since <= 0:
        return CycleState(
            can_claim=False,
            current_day=latest_claim.claimed_day,
            cycle_start_date=latest_claim.cycle_start_date,
        )
    if latest_claim.claimed_day >= CYCLE_LENGTH:
        return CycleState(can_claim=True, current_day=1, cycle_start_date=today)
    if days_since > 1 and reset_on_missed_day:
        return CycleState(can_claim=True, current_day=1, cycle_start_date=today)
    return CycleState(
        can_claim=True,
        current_day=latest_claim.claimed_day + 1,
        cycle_start_date=latest_claim.cycle_start_date,
    )


async def get_latest_claim(db: AsyncSession, user_id: int) -> UserLoginReward | None:
    result = await db.execute(
        select(UserLoginReward)
        .where(UserLoginReward.user_id == user_id)
        .order_by(UserLoginReward.claimed_at.desc(), UserLoginReward.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_cycle_claimed_days(db: AsyncSession, user_id: int, cycle_start_date: date) -> list[int]:
    result = await db.execute(
        select(UserLoginReward.claimed_day)
        .where(
            UserLoginReward.user_id == user_id,
            UserLoginReward.cycle_start_date == cycle_start_date,
        )
        .order_by(UserLoginReward.claimed_day)
    )
    return list(result.scalars())


def _reward_dict(reward: DailyLoginReward) -> dict:
    return {
        "day": reward.day,
        "reward_type": reward.reward_type,
        "reward_value": reward.reward_value,
        "description": reward.description,
    }


async def get_login_reward_status(
    db: AsyncSession,
    user_id: int,
    clock: Clock,
    reset_on_missed_day: bool = True,
) -> dict:
    """Calendar plus the user's position in the current cycle. Read-only."""
    rewards = await seed_login_rewards(db)
    latest = await get_latest_claim(db, user_id)
    state = resolve_cycle_state(latest, clock.today(), reset_on_missed_day)

    claimed_days: list[int] = []
    if latest is not None and state.cycle_start_date == latest.cycle_start_date:
        claimed_days = await get_cycle_claimed_days(db, user_id, state.cycle_start_date)

    return {
        "rewards": [_reward_dict(r) for r in rewards],
        "current_day": state.current_day,
        "claimed_days": claimed_days,
        "can_claim_today": state.can_claim,
        "cycle_start_date": state.cycle_start_date,
        "streak_count": len(claimed_days),
    }


async def claim_login_reward(
    db: AsyncSession,
    redis: object,
    user_id: int,
    clock: Clock,
    reset_on_missed_day: bool = True,
) -> dict:
    """Claim today's login reward. Commits.

    Raises AlreadyClaimedToday if the user already claimed on this calendar
    day, and MissingRewardData if the calendar lacks the eligible day.
    """
    now = clock.now()
    today = clock.local_date(now)
    rewards = {r.day: r for r in await seed_login_rewards(db)}

    # Serialises claims for this user until commit
    progress = await lock_progress(db, user_id, now)

    latest = await get_latest_claim(db, user_id)
    state = resolve_cycle_state(latest, today, reset_on_missed_day)
    if not state.can_claim:
        raise AlreadyClaimedToday

    reward = rewards.get(state.current_day)
    if reward is None:
        logger.error("Login reward calendar has no row for day %d", state.current_day)
        raise MissingRewardData(state.current_day)

    claim = UserLoginReward(
        user_id=user_id,
        claimed_day=state.current_day,
        claimed_at=now,
        claim_date=today,
        cycle_start_date=state.cycle_start_date,
    )
    try:
        async with db.begin_nested():
            db.add(claim)
    except IntegrityError:
        raise AlreadyClaimedToday from None

    if reward.reward_type == "xp":
        xp_awarded = int(reward.reward_value * streak_multiplier(progress.current_streak))
        await apply_progress_delta(db, redis, user_id, xp=xp_awarded, now=now)
    else:
        await apply_progress_delta(db, redis, user_id, pp=reward.reward_value, now=now)

    if state.current_day == CYCLE_LENGTH:
        await check_and_award_badges(db, redis, clock, user_id, STREAK_UPDATE)

    claimed_days = await get_cycle_claimed_days(db, user_id, state.cycle_start_date)
    await db.commit()
    logger.info("User %s claimed login reward day %d", user_id, state.current_day)

    return {
        "success": True,
        "claim": {
            "id": claim.id,
            "claimed_day": claim.claimed_day,
            "claimed_at": claim.claimed_at,
            "cycle_start_date": claim.cycle_start_date,
        },
        "reward": _reward_dict(reward),
        "current_day": state.current_day,
        "claimed_days": claimed_days,
        "can_claim_today": False,
        "cycle_start_date": state.cycle_start_date,
        "streak_count": len(claimed_days),
    }
