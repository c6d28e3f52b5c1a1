"""Daily practice streak tracking."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.clock import Clock
from mirrorplay.db.models import UserProgress
from mirrorplay.gamification.rewards import streak_bonus
from mirrorplay.gamification.xp_service import lock_progress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    streak_bonus: int
    current_streak: int
    best_streak: int


async def update_streak(
    db: AsyncSession,
    user_id: int,
    clock: Clock,
    bonus_per_day: int = 5,
    bonus_cap: int = 50,
) -> StreakUpdate:
    """Record a streak-qualifying action for today.

    Same day as the last check-in: streak unchanged, no bonus.
    Exactly one day later: streak + 1.
    Anything else (first action, or a gap of 2+ days): streak restarts at 1.

    The progress row stays locked for the rest of the caller's transaction, so
    two concurrent actions cannot both see yesterday's check-in.
    """
    now = clock.now()
    today = clock.local_date(now)
    progress = await lock_progress(db, user_id, now)

    same_day = False
    if progress.last_check_in is None:
        progress.current_streak = 1
    else:
        days_since = (today - clock.local_date(progress.last_check_in)).days
        if days_since <= 0:
            same_day = True
        elif days_since == 1:
            progress.current_streak += 1
        else:
            progress.current_streak = 1

    progress.best_streak = max(progress.best_streak, progress.current_streak)
    progress.last_check_in = now
    progress.updated_at = now
    await db.flush()

    bonus = 0 if same_day else streak_bonus(progress.current_streak, bonus_per_day, bonus_cap)
    if not same_day:
        logger.info("User %s streak now %d (bonus %d)", user_id, progress.current_streak, bonus)

    return StreakUpdate(
        streak_bonus=bonus,
        current_streak=progress.current_streak,
        best_streak=progress.best_streak,
    )


async def get_streak_status(
    db: AsyncSession,
    user_id: int,
    bonus_per_day: int = 5,
    bonus_cap: int = 50,
) -> dict:
    """Read-only streak view; does not create a progress row."""
    result = await db.execute(select(UserProgress).where(UserProgress.user_id == user_id))
    progress = result.scalar_one_or_none()
    if progress is None:
        return {
            "current_streak": 0,
            "best_streak": 0,
            "last_practice_date": None,
            "streak_bonus": 0,
        }

    last_practice: datetime | None = progress.last_check_in
    return {
        "current_streak": progress.current_streak,
        "best_streak": progress.best_streak,
        "last_practice_date": last_practice,
        "streak_bonus": streak_bonus(progress.current_streak, bonus_per_day, bonus_cap),
    }
