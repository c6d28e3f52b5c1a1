"""Integration tests for weekly challenges: listing, progress per goal type, reward claims."""

from __future__ import annotations

from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from mirrorplay.db.models import UserProgress, UserWeeklyChallengeProgress, WeeklyChallenge
from mirrorplay.errors import ChallengeNotCompleted, ChallengeNotFound, ChallengeRewardAlreadyClaimed
from mirrorplay.gamification import weekly_challenges
from mirrorplay.gamification.seed import WEEKLY_CHALLENGE_TEMPLATES, seed_weekly_challenges
from mirrorplay.gamification.xp_service import get_or_create_progress


async def _challenge(db, goal_type: str) -> WeeklyChallenge:
    result = await db.execute(select(WeeklyChallenge).where(WeeklyChallenge.goal_type == goal_type))
    return result.scalar_one()


async def _progress_values(db, user_id: int) -> dict[str, tuple[int, bool]]:
    result = await db.execute(
        select(WeeklyChallenge.goal_type, UserWeeklyChallengeProgress.progress, UserWeeklyChallengeProgress.completed)
        .join(UserWeeklyChallengeProgress, UserWeeklyChallengeProgress.challenge_id == WeeklyChallenge.id)
        .where(UserWeeklyChallengeProgress.user_id == user_id)
    )
    return {row.goal_type: (row.progress, row.completed) for row in result}


async def _record(db, user_id, clock, score=70, mode="text", category=None, streak=1) -> list[int]:
    completed = await weekly_challenges.record_practice(db, user_id, clock, score, mode, category, streak)
    await db.commit()
    return completed


class TestListWeeklyChallenges:
    @pytest.mark.asyncio
    async def test_lists_current_week_with_fresh_progress(self, seeded_db, user, clock):
        listing = await weekly_challenges.list_weekly_challenges(seeded_db, user.id, clock)

        assert len(listing["challenges"]) == 5
        assert listing["week_end_date"] == date(2026, 3, 8)
        # Wednesday noon to Monday midnight is 4.5 days
        assert listing["days_remaining"] == 5
        for entry in listing["challenges"]:
            assert entry["challenge"].week_start_date == date(2026, 3, 2)
            assert entry["progress"].progress == 0
            assert entry["progress"].completed is False

    @pytest.mark.asyncio
    async def test_new_week_seeded_lazily(self, seeded_db, user, clock):
        clock.advance(days=7)
        listing = await weekly_challenges.list_weekly_challenges(seeded_db, user.id, clock)
        assert len(listing["challenges"]) == 5
        assert all(e["challenge"].week_start_date == date(2026, 3, 9) for e in listing["challenges"])

    @pytest.mark.asyncio
    async def test_listing_twice_does_not_duplicate_progress(self, seeded_db, user, clock):
        await weekly_challenges.list_weekly_challenges(seeded_db, user.id, clock)
        await weekly_challenges.list_weekly_challenges(seeded_db, user.id, clock)
        rows = (
            await seeded_db.execute(
                select(UserWeeklyChallengeProgress.id).where(UserWeeklyChallengeProgress.user_id == user.id)
            )
        ).all()
        assert len(rows) == 5

    @pytest.mark.asyncio
    async def test_week_rejects_duplicate_templates(self, seeded_db, clock):
        monday, sunday = clock.week_bounds()
        with pytest.raises(IntegrityError):
            async with seeded_db.begin_nested():
                seeded_db.add_all(
                    WeeklyChallenge(**template, week_start_date=monday, week_end_date=sunday)
                    for template in WEEKLY_CHALLENGE_TEMPLATES
                )
        await seeded_db.commit()

        assert len(await weekly_challenges.get_active_challenges(seeded_db, clock)) == 5

    @pytest.mark.asyncio
    async def test_concurrent_seed_keeps_one_set(self, seeded_db, clock):
        """A request that read an empty week after another request seeded it ends up with the same 5 rows."""
        original_execute = seeded_db.execute
        reads = 0

        async def stale_first_read(statement, *args, **kwargs):
            nonlocal reads
            reads += 1
            if reads == 1:
                statement = select(WeeklyChallenge).where(WeeklyChallenge.id == -1)
            return await original_execute(statement, *args, **kwargs)

        with patch.object(seeded_db, "execute", new=stale_first_read):
            challenges = await seed_weekly_challenges(seeded_db, clock)
        await seeded_db.commit()

        assert len(challenges) == 5
        assert len(await weekly_challenges.get_active_challenges(seeded_db, clock)) == 5


class TestRecordPractice:
    @pytest.mark.asyncio
    async def test_practice_count_goal(self, seeded_db, user, clock):
        for _ in range(4):
            assert await _record(seeded_db, user.id, clock) == []
        target = await _challenge(seeded_db, "practice_count")
        assert await _record(seeded_db, user.id, clock) == [target.id]

        progress = await _progress_values(seeded_db, user.id)
        assert progress["practice_count"] == (5, True)

    @pytest.mark.asyncio
    async def test_progress_capped_at_goal(self, seeded_db, user, clock):
        for _ in range(7):
            await _record(seeded_db, user.id, clock)
        progress = await _progress_values(seeded_db, user.id)
        assert progress["practice_count"] == (5, True)

    @pytest.mark.asyncio
    async def test_score_threshold_goal(self, seeded_db, user, clock):
        await _record(seeded_db, user.id, clock, score=79)
        await _record(seeded_db, user.id, clock, score=80)
        await _record(seeded_db, user.id, clock, score=95)
        progress = await _progress_values(seeded_db, user.id)
        assert progress["score_threshold"] == (2, False)

    @pytest.mark.asyncio
    async def test_streak_goal_tracks_best_streak_this_week(self, seeded_db, user, clock):
        await _record(seeded_db, user.id, clock, streak=2)
        await _record(seeded_db, user.id, clock, streak=1)
        progress = await _progress_values(seeded_db, user.id)
        assert progress["streak"] == (2, False)

        await _record(seeded_db, user.id, clock, streak=3)
        progress = await _progress_values(seeded_db, user.id)
        assert progress["streak"] == (3, True)

    @pytest.mark.asyncio
    async def test_voice_goal(self, seeded_db, user, clock):
        await _record(seeded_db, user.id, clock, mode="text")
        assert (await _progress_values(seeded_db, user.id))["voice_practice"] == (0, False)
        await _record(seeded_db, user.id, clock, mode="voice")
        assert (await _progress_values(seeded_db, user.id))["voice_practice"] == (1, True)

    @pytest.mark.asyncio
    async def test_category_variety_counts_distinct(self, seeded_db, user, clock):
        await _record(seeded_db, user.id, clock, category="workplace")
        await _record(seeded_db, user.id, clock, category="workplace")
        await _record(seeded_db, user.id, clock, category="family")
        await _record(seeded_db, user.id, clock, category=None)
        assert (await _progress_values(seeded_db, user.id))["category_variety"] == (2, False)

        await _record(seeded_db, user.id, clock, category="dating")
        assert (await _progress_values(seeded_db, user.id))["category_variety"] == (3, True)

        data = (
            await seeded_db.execute(
                select(UserWeeklyChallengeProgress.progress_data)
                .join(WeeklyChallenge, UserWeeklyChallengeProgress.challenge_id == WeeklyChallenge.id)
                .where(WeeklyChallenge.goal_type == "category_variety")
            )
        ).scalar_one()
        assert data == {"categories": ["dating", "family", "workplace"]}


class TestClaimChallengeReward:
    @pytest.mark.asyncio
    async def test_claim_completed_challenge(self, seeded_db, user, redis, clock):
        await _record(seeded_db, user.id, clock, mode="voice")
        challenge = await _challenge(seeded_db, "voice_practice")

        result = await weekly_challenges.claim_challenge_reward(seeded_db, redis, user.id, challenge.id, clock)
        assert result == {"success": True, "xp_earned": 50, "pp_earned": 15}

        row = (
            await seeded_db.execute(
                select(UserWeeklyChallengeProgress.reward_claimed, UserWeeklyChallengeProgress.claimed_at).where(
                    UserWeeklyChallengeProgress.user_id == user.id,
                    UserWeeklyChallengeProgress.challenge_id == challenge.id,
                )
            )
        ).one()
        assert row.reward_claimed is True
        assert row.claimed_at == clock.now()

    @pytest.mark.asyncio
    async def test_xp_multiplied_pp_not(self, seeded_db, user, redis, clock):
        progress = await get_or_create_progress(seeded_db, user.id, clock.now())
        progress.current_streak = 14
        progress.best_streak = 14
        await seeded_db.commit()
        await _record(seeded_db, user.id, clock, mode="voice")
        challenge = await _challenge(seeded_db, "voice_practice")

        result = await weekly_challenges.claim_challenge_reward(seeded_db, redis, user.id, challenge.id, clock)
        assert result["xp_earned"] == 150
        assert result["pp_earned"] == 15

        totals = (
            await seeded_db.execute(
                select(UserProgress.total_xp, UserProgress.total_pp).where(UserProgress.user_id == user.id)
            )
        ).one()
        assert (totals.total_xp, totals.total_pp) == (150, 15)

    @pytest.mark.asyncio
    async def test_claim_twice_rejected(self, seeded_db, user, redis, clock):
        await _record(seeded_db, user.id, clock, mode="voice")
        challenge = await _challenge(seeded_db, "voice_practice")
        await weekly_challenges.claim_challenge_reward(seeded_db, redis, user.id, challenge.id, clock)

        with pytest.raises(ChallengeRewardAlreadyClaimed):
            await weekly_challenges.claim_challenge_reward(seeded_db, redis, user.id, challenge.id, clock)

    @pytest.mark.asyncio
    async def test_not_completed(self, seeded_db, user, redis, clock):
        await _record(seeded_db, user.id, clock)
        challenge = await _challenge(seeded_db, "practice_count")
        with pytest.raises(ChallengeNotCompleted):
            await weekly_challenges.claim_challenge_reward(seeded_db, redis, user.id, challenge.id, clock)

    @pytest.mark.asyncio
    async def test_unknown_challenge(self, seeded_db, user, redis, clock):
        with pytest.raises(ChallengeNotFound):
            await weekly_challenges.claim_challenge_reward(seeded_db, redis, user.id, 99999, clock)

    @pytest.mark.asyncio
    async def test_no_progress_row(self, seeded_db, user, redis, clock):
        challenge = await _challenge(seeded_db, "practice_count")
        with pytest.raises(ChallengeNotFound, match="Progress not found"):
            await weekly_challenges.claim_challenge_reward(seeded_db, redis, user.id, challenge.id, clock)


class TestUncompletedCount:
    @pytest.mark.asyncio
    async def test_counts_unstarted_challenges(self, seeded_db, user, clock):
        assert await weekly_challenges.count_uncompleted_challenges(seeded_db, user.id, clock) == 5

    @pytest.mark.asyncio
    async def test_excludes_completed(self, seeded_db, user, clock):
        await _record(seeded_db, user.id, clock, mode="voice")
        assert await weekly_challenges.count_uncompleted_challenges(seeded_db, user.id, clock) == 4

    @pytest.mark.asyncio
    async def test_other_users_progress_ignored(self, seeded_db, user, user_factory, clock):
        other = await user_factory(email="other@example.com")
        await _record(seeded_db, other.id, clock, mode="voice")
        assert await weekly_challenges.count_uncompleted_challenges(seeded_db, user.id, clock) == 5
