"""Scored practice pipeline: usage gate, scoring, streak, rewards, badges."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.billing.tier_resolver import TierResolver
from mirrorplay.billing.usage import can_analyze
from mirrorplay.clock import Clock
from mirrorplay.config import Settings
from mirrorplay.db.models import PracticeSession, User
from mirrorplay.gamification import weekly_challenges
from mirrorplay.gamification.badge_requirements import PRACTICE, VOICE_PRACTICE
from mirrorplay.gamification.badge_service import check_and_award_badges
from mirrorplay.gamification.multiplier import streak_multiplier
from mirrorplay.gamification.rewards import PRACTICE_MODES, base_reward, compute_xp_earned
from mirrorplay.gamification.streak_service import update_streak
from mirrorplay.gamification.xp_service import apply_progress_delta

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreResult:
    """What the scoring collaborator returns for one attempt.

    xp_base / pp_base override the mode-based reward formula when set.
    """

    score: int
    tone: str | None = None
    xp_base: int | None = None
    pp_base: int | None = None


Scorer = Callable[[], Awaitable[ScoreResult]]


async def submit_scored_action(
    db: AsyncSession,
    redis: object,
    user: User,
    scorer: Scorer,
    clock: Clock,
    settings: Settings,
    resolver: TierResolver,
    mode: str = "text",
    prompt: str | None = None,
    category: str | None = None,
) -> dict:
    """Run one scored practice action end to end. Commits.

    The usage gate runs before the scorer is awaited, so a rejected request
    never costs an external scoring call. Raises UsageLimitExceeded.
    """
    if mode not in PRACTICE_MODES:
        msg = f"unknown practice mode: {mode!r}"
        raise ValueError(msg)

    usage = await can_analyze(db, user, resolver, clock, settings)
    usage.raise_for_limit()

    result = await scorer()

    streak = await update_streak(
        db,
        user.id,
        clock,
        bonus_per_day=settings.streak_bonus_per_day,
        bonus_cap=settings.streak_bonus_cap,
    )
    multiplier = streak_multiplier(streak.current_streak)

    xp_base, pp_base = base_reward(result.score, mode)
    if result.xp_base is not None:
        xp_base = result.xp_base
    if result.pp_base is not None:
        pp_base = result.pp_base
    xp_earned = compute_xp_earned(xp_base, multiplier, streak.streak_bonus)
    pp_earned = pp_base

    now = clock.now()
    session = PracticeSession(
        user_id=user.id,
        prompt=prompt,
        mode=mode,
        category=category,
        tone=result.tone,
        score=result.score,
        xp_earned=xp_earned,
        pp_earned=pp_earned,
        created_at=now,
    )
    db.add(session)
    await db.flush()

    update = await apply_progress_delta(db, redis, user.id, xp=xp_earned, pp=pp_earned, practice=1, now=now)

    await weekly_challenges.record_practice(
        db, user.id, clock, result.score, mode, category, streak.current_streak, now=now
    )

    event_type = VOICE_PRACTICE if mode == "voice" else PRACTICE
    new_badges = await check_and_award_badges(db, redis, clock, user.id, event_type, result.score, mode)

    await db.commit()
    logger.info(
        "User %s practice session %s scored %d (+%d XP, +%d PP)",
        user.id, session.id, result.score, xp_earned, pp_earned,
    )

    return {
        "session_id": session.id,
        "score": result.score,
        "tone": result.tone,
        "mode": mode,
        "xp_earned": xp_earned,
        "pp_earned": pp_earned,
        "streak_bonus": streak.streak_bonus,
        "current_streak": streak.current_streak,
        "streak_multiplier": multiplier,
        "level": update.level,
        "leveled_up": update.leveled_up,
        "new_badges": [
            {"name": b.name, "icon": b.icon, "description": b.description} for b in new_badges
        ],
    }
