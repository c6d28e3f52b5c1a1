"""XP / Peace Point ledger with atomic updates and level-up detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.db.models import UserProgress
from mirrorplay.gamification.feed import emit_level_up
from mirrorplay.gamification.levels import XP_PER_LEVEL, compute_level, level_for_xp
from mirrorplay.gamification.multiplier import next_milestone, streak_multiplier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressUpdate:
    """Totals after an atomic progress delta."""

    user_id: int
    total_xp: int
    total_pp: int
    level: int
    old_level: int
    practice_count: int

    @property
    def leveled_up(self) -> bool:
        return self.level > self.old_level


async def get_or_create_progress(db: AsyncSession, user_id: int, now: datetime | None = None) -> UserProgress:
    """Get or create the progress row for a user."""
    result = await db.execute(select(UserProgress).where(UserProgress.user_id == user_id))
    progress = result.scalar_one_or_none()
    if progress is not None:
        return progress

    if now is None:
        now = datetime.now(timezone.utc)
    try:
        async with db.begin_nested():
            progress = UserProgress(user_id=user_id, created_at=now, updated_at=now)
            db.add(progress)
    except IntegrityError:
        # Created concurrently by another request
        result = await db.execute(select(UserProgress).where(UserProgress.user_id == user_id))
        progress = result.scalar_one()
    return progress


async def lock_progress(db: AsyncSession, user_id: int, now: datetime | None = None) -> UserProgress:
    """Return the user's progress row locked FOR UPDATE until the transaction ends."""
    await get_or_create_progress(db, user_id, now)
    result = await db.execute(
        select(UserProgress)
        .where(UserProgress.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def apply_progress_delta(
    db: AsyncSession,
    redis: object,
    user_id: int,
    xp: int = 0,
    pp: int = 0,
    practice: int = 0,
    now: datetime | None = None,
) -> ProgressUpdate:
    """Add XP/PP/practice count in one UPDATE and recompute level from the new total.

    The statement reads and writes the row atomically, so concurrent grants
    never overwrite each other. If the level rose, a level-up broadcast is
    emitted (best-effort).
    """
    if xp < 0 or pp < 0 or practice < 0:
        msg = "progress deltas must be non-negative"
        raise ValueError(msg)
    if now is None:
        now = datetime.now(timezone.utc)

    await get_or_create_progress(db, user_id, now)

    result = await db.execute(
        update(UserProgress)
        .where(UserProgress.user_id == user_id)
        .values(
            total_xp=UserProgress.total_xp + xp,
            total_pp=UserProgress.total_pp + pp,
            practice_count=UserProgress.practice_count + practice,
            level=(UserProgress.total_xp + xp) // XP_PER_LEVEL + 1,
            updated_at=now,
        )
        .returning(
            UserProgress.total_xp,
            UserProgress.total_pp,
            UserProgress.level,
            UserProgress.practice_count,
        )
    )
    row = result.one()
    old_level = level_for_xp(row.total_xp - xp)
    update_ = ProgressUpdate(
        user_id=user_id,
        total_xp=row.total_xp,
        total_pp=row.total_pp,
        level=row.level,
        old_level=old_level,
        practice_count=row.practice_count,
    )

    if update_.leveled_up:
        logger.info("User %s leveled up %d -> %d", user_id, old_level, update_.level)
        await emit_level_up(redis, user_id, old_level, update_.level)

    return update_


async def get_progress_summary(db: AsyncSession, user_id: int) -> dict:
    """Read-only progress view: totals, level progress, multiplier and next milestone."""
    progress = await get_or_create_progress(db, user_id)
    level_info = compute_level(progress.total_xp)
    milestone = next_milestone(progress.current_streak)
    return {
        "total_xp": progress.total_xp,
        "total_pp": progress.total_pp,
        "level": progress.level,
        "xp_into_level": level_info["xp_into_level"],
        "xp_for_level": level_info["xp_for_level"],
        "current_streak": progress.current_streak,
        "best_streak": progress.best_streak,
        "practice_count": progress.practice_count,
        "streak_multiplier": streak_multiplier(progress.current_streak),
        "next_milestone": milestone._asdict() if milestone else None,
    }
