"""Badge evaluation and award with duplicate prevention."""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.clock import Clock
from mirrorplay.db.models import Badge, Gift, PracticeSession, User, UserBadge
from mirrorplay.gamification.badge_requirements import (
    EVENT_TYPES,
    GIFT_SENT,
    BadgeContext,
    BadgeRequirement,
    parse_requirement,
)
from mirrorplay.gamification.feed import emit_badge_earned
from mirrorplay.gamification.xp_service import apply_progress_delta, get_or_create_progress

logger = logging.getLogger(__name__)

RECENT_SCORE_WINDOW = 20


class BadgeEvaluator:
    """Evaluates the badge catalog against a user's stats for one event."""

    def __init__(self, db: AsyncSession, redis: object, clock: Clock) -> None:
        self.db = db
        self.redis = redis
        self.clock = clock
        self._badge_cache: list[tuple[Badge, BadgeRequirement]] | None = None

    async def _load_badges(self) -> list[tuple[Badge, BadgeRequirement]]:
        """Load and cache active badges with their parsed requirements."""
        if self._badge_cache is None:
            result = await self.db.execute(
                select(Badge).where(Badge.is_active.is_(True)).order_by(Badge.sort_order, Badge.id)
            )
            badges: list[tuple[Badge, BadgeRequirement]] = []
            for badge in result.scalars():
                try:
                    badges.append((badge, parse_requirement(badge.requirement)))
                except ValidationError:
                    logger.warning("Skipping badge %s with invalid requirement %r", badge.slug, badge.requirement)
            self._badge_cache = badges
        return self._badge_cache

    async def _earned_badge_ids(self, user_id: int) -> set[int]:
        result = await self.db.execute(select(UserBadge.badge_id).where(UserBadge.user_id == user_id))
        return set(result.scalars())

    async def build_context(
        self,
        user_id: int,
        event_type: str,
        score: int | None = None,
        mode: str | None = None,
    ) -> BadgeContext:
        """Collect the aggregate stats the requirement predicates read."""
        ctx = BadgeContext(event_type=event_type, score=score, mode=mode)

        if event_type == GIFT_SENT:
            result = await self.db.execute(select(func.count(Gift.id)).where(Gift.sender_id == user_id))
            ctx.gifts_sent = result.scalar_one()
            return ctx

        progress = await get_or_create_progress(self.db, user_id, self.clock.now())
        ctx.practice_count = progress.practice_count
        ctx.current_streak = progress.current_streak
        ctx.level = progress.level

        counts = await self.db.execute(
            select(
                func.count(PracticeSession.id),
                func.count(PracticeSession.id).filter(PracticeSession.mode == "voice"),
            ).where(PracticeSession.user_id == user_id)
        )
        ctx.session_count, ctx.voice_session_count = counts.one()

        scores = await self.db.execute(
            select(PracticeSession.score)
            .where(PracticeSession.user_id == user_id)
            .order_by(PracticeSession.created_at.desc(), PracticeSession.id.desc())
            .limit(RECENT_SCORE_WINDOW)
        )
        ctx.recent_scores = list(scores.scalars())

        user = await self.db.get(User, user_id)
        ctx.joined_at = user.created_at if user is not None else None
        return ctx

    async def check_and_award(
        self,
        user_id: int,
        event_type: str,
        score: int | None = None,
        mode: str | None = None,
    ) -> list[Badge]:
        """Award every newly-qualifying badge for this event. Returns the badges awarded.

        Re-running with unchanged stats awards nothing.
        """
        if event_type not in EVENT_TYPES:
            msg = f"unknown badge event type: {event_type!r}"
            raise ValueError(msg)

        badges = await self._load_badges()
        earned = await self._earned_badge_ids(user_id)
        candidates = [
            (badge, requirement)
            for badge, requirement in badges
            if badge.id not in earned and requirement.applies_to(event_type)
        ]
        if not candidates:
            return []

        ctx = await self.build_context(user_id, event_type, score, mode)
        awarded: list[Badge] = []
        for badge, requirement in candidates:
            if requirement.is_met(ctx) and await self.award_badge(user_id, badge):
                awarded.append(badge)
        return awarded

    async def award_badge(self, user_id: int, badge: Badge, now: datetime | None = None) -> bool:
        """Insert the UserBadge row and grant the badge's XP/PP.

        Returns False if the user already had the badge, including when a
        concurrent request awarded it first.
        """
        if now is None:
            now = self.clock.now()
        try:
            async with self.db.begin_nested():
                self.db.add(UserBadge(user_id=user_id, badge=badge, earned_at=now))
        except IntegrityError:
            return False

        await apply_progress_delta(
            self.db,
            self.redis,
            user_id,
            xp=badge.xp_reward,
            pp=badge.pp_reward,
            now=now,
        )
        logger.info("User %s earned badge %s", user_id, badge.slug)
        await emit_badge_earned(self.redis, user_id, badge.slug, badge.name, badge.icon)
        return True


async def check_and_award_badges(
    db: AsyncSession,
    redis: object,
    clock: Clock,
    user_id: int,
    event_type: str,
    score: int | None = None,
    mode: str | None = None,
) -> list[Badge]:
    """Run one evaluation pass for an event (does not commit)."""
    return await BadgeEvaluator(db, redis, clock).check_and_award(user_id, event_type, score, mode)


async def record_gift_sent(
    db: AsyncSession,
    redis: object,
    clock: Clock,
    sender_id: int,
    recipient_id: int,
    item: str,
) -> list[Badge]:
    """Store a sent gift and evaluate the gift badges for the sender. Commits."""
    db.add(Gift(sender_id=sender_id, recipient_id=recipient_id, item=item, created_at=clock.now()))
    await db.flush()
    awarded = await check_and_award_badges(db, redis, clock, sender_id, GIFT_SENT)
    await db.commit()
    return awarded


async def get_user_badges(db: AsyncSession, user_id: int) -> list[UserBadge]:
    """Badges earned by a user, newest first."""
    result = await db.execute(
        select(UserBadge).where(UserBadge.user_id == user_id).order_by(UserBadge.earned_at.desc(), UserBadge.id.desc())
    )
    return list(result.scalars())


async def list_badges(db: AsyncSession) -> list[Badge]:
    """Active badge catalog in display order."""
    result = await db.execute(select(Badge).where(Badge.is_active.is_(True)).order_by(Badge.sort_order, Badge.id))
    return list(result.scalars())
