"""ORM models for the progression and rewards tables.

Every per-user row references ``users.id`` with ON DELETE CASCADE; the
engine never shares or transfers rows between users.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mirrorplay.db.base import Base, BigIntPK, JSONType, UTCDateTime


# ---------------------------------------------------------------------------
# Users & billing
# ---------------------------------------------------------------------------


class User(Base):
    """Account owner row. Authentication happens upstream of this service."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, server_default=func.now())


class Subscription(Base):
    """Local subscription record, one per user."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("tier IN ('free', 'plus', 'pro')", name="subscriptions_tier_check"),
        CheckConstraint("status IN ('active', 'inactive', 'cancelled')", name="subscriptions_status_check"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    tier: Mapped[str] = mapped_column(String(16), nullable=False, default="free", server_default="free")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active", server_default="active")
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, server_default=func.now())


class StripeProduct(Base):
    """Product catalog mirrored from Stripe by the billing sync job."""

    __tablename__ = "stripe_products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    product_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, nullable=False, default=dict)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())


class StripeSubscription(Base):
    """Subscription state mirrored from Stripe by the billing sync job."""

    __tablename__ = "stripe_subscriptions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    product_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Progress & practice
# ---------------------------------------------------------------------------


class UserProgress(Base):
    """Denormalized progression summary, one row per user, created lazily."""

    __tablename__ = "user_progress"
    __table_args__ = (
        CheckConstraint("total_xp >= 0", name="user_progress_total_xp_check"),
        CheckConstraint("total_pp >= 0", name="user_progress_total_pp_check"),
        CheckConstraint("level >= 1", name="user_progress_level_check"),
        CheckConstraint("current_streak >= 0", name="user_progress_current_streak_check"),
        CheckConstraint("best_streak >= current_streak", name="user_progress_best_streak_check"),
        CheckConstraint("practice_count >= 0", name="user_progress_practice_count_check"),
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_pp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    best_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_check_in: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    practice_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, server_default=func.now())


class PracticeSession(Base):
    """One row per scored attempt. Immutable except for is_favorite."""

    __tablename__ = "practice_sessions"
    __table_args__ = (
        CheckConstraint("score BETWEEN 0 AND 100", name="practice_sessions_score_check"),
        Index("ix_practice_sessions_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pp_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Login rewards
# ---------------------------------------------------------------------------


class DailyLoginReward(Base):
    """Static 7-day reward calendar."""

    __tablename__ = "daily_login_rewards"
    __table_args__ = (
        CheckConstraint("day BETWEEN 1 AND 7", name="daily_login_rewards_day_check"),
        CheckConstraint("reward_type IN ('xp', 'pp')", name="daily_login_rewards_type_check"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    day: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    reward_type: Mapped[str] = mapped_column(String(8), nullable=False)
    reward_value: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(String(128), nullable=True)


class UserLoginReward(Base):
    """Append-only claim log. UNIQUE(user_id, claim_date) allows one claim per calendar day."""

    __tablename__ = "user_login_rewards"
    __table_args__ = (
        UniqueConstraint("user_id", "claim_date", name="user_login_rewards_user_id_claim_date_key"),
        CheckConstraint("claimed_day BETWEEN 1 AND 7", name="user_login_rewards_day_check"),
        Index("ix_user_login_rewards_user_claimed", "user_id", "claimed_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    claimed_day: Mapped[int] = mapped_column(Integer, nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    claim_date: Mapped[date] = mapped_column(Date, nullable=False)
    cycle_start_date: Mapped[date] = mapped_column(Date, nullable=False)


# ---------------------------------------------------------------------------
# Badges & gifts
# ---------------------------------------------------------------------------


class Badge(Base):
    """Badge catalog. requirement is a tagged JSON object, see badge_requirements."""

    __tablename__ = "badges"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(64), nullable=False)
    requirement: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())


class UserBadge(Base):
    """Badges earned by users. UNIQUE(user_id, badge_id) prevents duplicates."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="user_badges_user_id_badge_id_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id: Mapped[int] = mapped_column(ForeignKey("badges.id"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    badge: Mapped[Badge] = relationship("Badge", lazy="joined")


class Gift(Base):
    """Gift sent from one user to another; source of the gift_sent_count predicate."""

    __tablename__ = "gifts"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    sender_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    item: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Weekly challenges
# ---------------------------------------------------------------------------


class WeeklyChallenge(Base):
    """Week-scoped goal definition (Monday through Sunday)."""

    __tablename__ = "weekly_challenges"
    __table_args__ = (
        UniqueConstraint("week_start_date", "goal_type", name="weekly_challenges_week_goal_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    goal_type: Mapped[str] = mapped_column(String(32), nullable=False)
    goal_value: Mapped[int] = mapped_column(Integer, nullable=False)
    goal_threshold: Mapped[int | None] = mapped_column(Integer, nullable=True)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    week_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())


class UserWeeklyChallengeProgress(Base):
    """Per-user progress toward a weekly challenge."""

    __tablename__ = "user_weekly_challenge_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="user_weekly_challenge_progress_user_challenge_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    challenge_id: Mapped[int] = mapped_column(
        ForeignKey("weekly_challenges.id", ondelete="CASCADE"), nullable=False
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    progress_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    reward_claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    claimed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    challenge: Mapped[WeeklyChallenge] = relationship("WeeklyChallenge", lazy="joined")
