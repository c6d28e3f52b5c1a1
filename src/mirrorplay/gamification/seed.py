"""Reference data: login reward calendar, badge catalog, weekly challenge templates."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorplay.clock import Clock
from mirrorplay.db.models import Badge, DailyLoginReward, WeeklyChallenge

logger = logging.getLogger(__name__)

LOGIN_REWARD_SEED_DATA: list[dict] = [
    {"day": 1, "reward_type": "xp", "reward_value": 10, "description": "Day 1: 10 XP"},
    {"day": 2, "reward_type": "xp", "reward_value": 15, "description": "Day 2: 15 XP"},
    {"day": 3, "reward_type": "pp", "reward_value": 5, "description": "Day 3: 5 Peace Points"},
    {"day": 4, "reward_type": "xp", "reward_value": 25, "description": "Day 4: 25 XP"},
    {"day": 5, "reward_type": "pp", "reward_value": 10, "description": "Day 5: 10 Peace Points"},
    {"day": 6, "reward_type": "xp", "reward_value": 50, "description": "Day 6: 50 XP"},
    {"day": 7, "reward_type": "pp", "reward_value": 25, "description": "Day 7: 25 PP + Special Badge"},
]

BADGE_SEED_DATA: list[dict] = [
    # Practice milestones
    {
        "slug": "first_steps",
        "name": "First Steps",
        "description": "Complete your first practice session",
        "icon": "Star",
        "requirement": {"type": "practice_count", "count": 1},
        "xp_reward": 25,
        "pp_reward": 10,
    },
    {
        "slug": "getting_started",
        "name": "Getting Started",
        "description": "Complete 10 practice sessions",
        "icon": "Flame",
        "requirement": {"type": "practice_count", "count": 10},
        "xp_reward": 50,
        "pp_reward": 25,
    },
    {
        "slug": "dedicated_learner",
        "name": "Dedicated Learner",
        "description": "Complete 50 practice sessions",
        "icon": "Award",
        "requirement": {"type": "practice_count", "count": 50},
        "xp_reward": 100,
        "pp_reward": 50,
    },
    {
        "slug": "practice_master",
        "name": "Practice Master",
        "description": "Complete 100 practice sessions",
        "icon": "Trophy",
        "requirement": {"type": "practice_count", "count": 100},
        "xp_reward": 200,
        "pp_reward": 100,
    },
    {
        "slug": "communication_legend",
        "name": "Communication Legend",
        "description": "Complete 500 practice sessions",
        "icon": "Crown",
        "requirement": {"type": "practice_count", "count": 500},
        "xp_reward": 500,
        "pp_reward": 250,
    },
    # Streaks
    {
        "slug": "warming_up",
        "name": "Warming Up",
        "description": "Achieve a 3-day streak",
        "icon": "Flame",
        "requirement": {"type": "streak", "days": 3},
        "xp_reward": 30,
        "pp_reward": 15,
    },
    {
        "slug": "weekly_warrior",
        "name": "Weekly Warrior",
        "description": "Achieve a 7-day streak",
        "icon": "Calendar",
        "requirement": {"type": "streak", "days": 7},
        "xp_reward": 75,
        "pp_reward": 40,
    },
    {
        "slug": "fortnight_focus",
        "name": "Fortnight Focus",
        "description": "Achieve a 14-day streak",
        "icon": "Zap",
        "requirement": {"type": "streak", "days": 14},
        "xp_reward": 150,
        "pp_reward": 75,
    },
    {
        "slug": "monthly_master",
        "name": "Monthly Master",
        "description": "Achieve a 30-day streak",
        "icon": "Medal",
        "requirement": {"type": "streak", "days": 30},
        "xp_reward": 300,
        "pp_reward": 150,
    },
    {
        "slug": "unstoppable",
        "name": "Unstoppable",
        "description": "Achieve a 100-day streak",
        "icon": "Crown",
        "requirement": {"type": "streak", "days": 100},
        "xp_reward": 1000,
        "pp_reward": 500,
    },
    # Scores
    {
        "slug": "perfect_response",
        "name": "Perfect Response",
        "description": "Achieve a perfect score of 100",
        "icon": "Target",
        "requirement": {"type": "perfect_score"},
        "xp_reward": 50,
        "pp_reward": 25,
    },
    {
        "slug": "consistent_excellence",
        "name": "Consistent Excellence",
        "description": "Maintain an average score of 80+",
        "icon": "TrendingUp",
        "requirement": {"type": "average_score", "min_average": 80},
        "xp_reward": 100,
        "pp_reward": 50,
    },
    {
        "slug": "elite_communicator",
        "name": "Elite Communicator",
        "description": "Maintain an average score of 90+",
        "icon": "Star",
        "requirement": {"type": "average_score", "min_average": 90},
        "xp_reward": 200,
        "pp_reward": 100,
    },
    # Levels
    {
        "slug": "rising_star",
        "name": "Rising Star",
        "description": "Reach Level 10",
        "icon": "Sparkles",
        "requirement": {"type": "level", "level": 10},
        "xp_reward": 100,
        "pp_reward": 50,
    },
    {
        "slug": "experienced",
        "name": "Experienced",
        "description": "Reach Level 25",
        "icon": "Shield",
        "requirement": {"type": "level", "level": 25},
        "xp_reward": 250,
        "pp_reward": 125,
    },
    {
        "slug": "master_level",
        "name": "Master Level",
        "description": "Reach Level 50",
        "icon": "Award",
        "requirement": {"type": "level", "level": 50},
        "xp_reward": 500,
        "pp_reward": 250,
    },
    {
        "slug": "legendary_status",
        "name": "Legendary Status",
        "description": "Reach Level 100",
        "icon": "Crown",
        "requirement": {"type": "level", "level": 100},
        "xp_reward": 1000,
        "pp_reward": 500,
    },
    # Voice
    {
        "slug": "voice_debut",
        "name": "Voice Debut",
        "description": "Complete your first voice practice",
        "icon": "Mic",
        "requirement": {"type": "first_voice_practice"},
        "xp_reward": 25,
        "pp_reward": 15,
    },
    {
        "slug": "voice_veteran",
        "name": "Voice Veteran",
        "description": "Complete 50 voice practice sessions",
        "icon": "Volume2",
        "requirement": {"type": "voice_practice_count", "count": 50},
        "xp_reward": 150,
        "pp_reward": 75,
    },
    # Gifts
    {
        "slug": "generous_soul",
        "name": "Generous Soul",
        "description": "Send your first gift",
        "icon": "Gift",
        "requirement": {"type": "gift_sent_count", "count": 1},
        "xp_reward": 25,
        "pp_reward": 15,
    },
    {
        "slug": "gift_giver",
        "name": "Gift Giver",
        "description": "Send 10 gifts to friends",
        "icon": "Heart",
        "requirement": {"type": "gift_sent_count", "count": 10},
        "xp_reward": 100,
        "pp_reward": 50,
    },
    # Special
    {
        "slug": "early_adopter",
        "name": "Early Adopter",
        "description": "Joined Mirror Play in its early days",
        "icon": "Sparkles",
        "requirement": {"type": "early_adopter", "before": "2026-03-01"},
        "xp_reward": 100,
        "pp_reward": 100,
    },
    {
        "slug": "pro_subscriber",
        "name": "Pro Subscriber",
        "description": "Subscribed to Mirror Play Pro",
        "icon": "Crown",
        "requirement": {"type": "subscription"},
        "xp_reward": 50,
        "pp_reward": 50,
    },
]

WEEKLY_CHALLENGE_TEMPLATES: list[dict] = [
    {
        "title": "Complete 5 practice sessions",
        "description": "Practice makes perfect! Complete 5 sessions this week.",
        "category": "general",
        "goal_type": "practice_count",
        "goal_value": 5,
        "xp_reward": 100,
        "pp_reward": 25,
    },
    {
        "title": "Score 80+ on 3 sessions",
        "description": "Aim high! Achieve a score of 80 or higher on 3 sessions.",
        "category": "general",
        "goal_type": "score_threshold",
        "goal_value": 3,
        "goal_threshold": 80,
        "xp_reward": 150,
        "pp_reward": 40,
    },
    {
        "title": "Maintain a 3-day streak",
        "description": "Consistency is key! Practice for 3 days in a row.",
        "category": "general",
        "goal_type": "streak",
        "goal_value": 3,
        "xp_reward": 75,
        "pp_reward": 20,
    },
    {
        "title": "Try voice practice",
        "description": "Step outside your comfort zone! Try voice mode once.",
        "category": "voice",
        "goal_type": "voice_practice",
        "goal_value": 1,
        "xp_reward": 50,
        "pp_reward": 15,
    },
    {
        "title": "Explore 3 categories",
        "description": "Broaden your range! Practice scenarios from 3 different categories.",
        "category": "general",
        "goal_type": "category_variety",
        "goal_value": 3,
        "xp_reward": 75,
        "pp_reward": 20,
    },
]


async def seed_login_rewards(db: AsyncSession) -> list[DailyLoginReward]:
    """Insert the 7-day reward calendar if it is empty. Returns the calendar ordered by day."""
    result = await db.execute(select(DailyLoginReward).order_by(DailyLoginReward.day))
    rewards = list(result.scalars())
    if rewards:
        return rewards

    try:
        async with db.begin_nested():
            db.add_all(DailyLoginReward(**row) for row in LOGIN_REWARD_SEED_DATA)
    except IntegrityError:
        logger.info("Login reward calendar seeded concurrently")
    else:
        logger.info("Seeded %d login reward days", len(LOGIN_REWARD_SEED_DATA))

    result = await db.execute(select(DailyLoginReward).order_by(DailyLoginReward.day))
    return list(result.scalars())


async def seed_badges(db: AsyncSession) -> int:
    """Upsert the badge catalog by slug. Returns number of badges seeded."""
    existing = {b.slug: b for b in (await db.execute(select(Badge))).scalars()}
    seeded = 0
    for sort_order, badge_data in enumerate(BADGE_SEED_DATA, start=1):
        badge = existing.get(badge_data["slug"])
        if badge is None:
            db.add(Badge(**badge_data, sort_order=sort_order))
        else:
            for key, value in badge_data.items():
                setattr(badge, key, value)
            badge.sort_order = sort_order
        seeded += 1
    await db.flush()
    logger.info("Seeded %d badge definitions", seeded)
    return seeded


async def seed_weekly_challenges(db: AsyncSession, clock: Clock) -> list[WeeklyChallenge]:
    """Create this week's challenges from the templates unless the week already has some."""
    monday, sunday = clock.week_bounds()
    stmt = select(WeeklyChallenge).where(WeeklyChallenge.week_start_date == monday).order_by(WeeklyChallenge.id)
    challenges = list((await db.execute(stmt)).scalars())
    if challenges:
        return challenges

    try:
        async with db.begin_nested():
            db.add_all(
                WeeklyChallenge(**template, week_start_date=monday, week_end_date=sunday, is_active=True)
                for template in WEEKLY_CHALLENGE_TEMPLATES
            )
    except IntegrityError:
        logger.info("Weekly challenges for week of %s seeded concurrently", monday.isoformat())
    else:
        logger.info("Seeded %d weekly challenges for week of %s", len(WEEKLY_CHALLENGE_TEMPLATES), monday.isoformat())

    return list((await db.execute(stmt)).scalars())


async def seed_reference_data(db: AsyncSession, clock: Clock) -> None:
    """Seed everything the engine expects to exist. Idempotent; commits."""
    await seed_login_rewards(db)
    await seed_badges(db)
    await seed_weekly_challenges(db, clock)
    await db.commit()
