"""HTTP-level tests for the progression and subscription endpoints."""

from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

from mirrorplay.db.models import PracticeSession


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_user_header(self, client: AsyncClient):
        response = await client.get("/api/v1/progress")
        assert response.status_code == 401
        assert response.json() == {"detail": "Not authenticated"}

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient):
        response = await client.get("/api/v1/progress", headers={"X-User-Id": "424242"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Unknown user"}


class TestPracticeSessions:
    @pytest.mark.asyncio
    async def test_first_session(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/practice/sessions", json={"score": 90, "xpBase": 20})
        assert response.status_code == 200
        data = response.json()
        assert data["xpEarned"] == 25
        assert data["streakBonus"] == 5
        assert data["currentStreak"] == 1
        assert data["streakMultiplier"] == 1
        assert data["mode"] == "text"
        assert data["newBadges"] == [
            {"name": "First Steps", "icon": "Star", "description": "Complete your first practice session"}
        ]

    @pytest.mark.asyncio
    async def test_limit_returns_payment_required(self, authed_client: AsyncClient, seeded_db, user, clock):
        seeded_db.add_all(
            PracticeSession(user_id=user.id, mode="text", score=50, created_at=clock.now() - timedelta(minutes=i))
            for i in range(3)
        )
        await seeded_db.commit()

        response = await authed_client.post("/api/v1/practice/sessions", json={"score": 90})
        assert response.status_code == 402
        assert response.json() == {
            "message": "Daily analysis limit reached. Upgrade your subscription for more analyses.",
            "tier": "free",
            "limit": 3,
            "usedToday": 3,
            "upgradeRequired": True,
        }

    @pytest.mark.asyncio
    async def test_invalid_score_rejected(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/practice/sessions", json={"score": 140})
        assert response.status_code == 422
        assert response.json()["detail"] == "Validation error"

    @pytest.mark.asyncio
    async def test_invalid_mode_rejected(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/practice/sessions", json={"score": 50, "mode": "telepathy"})
        assert response.status_code == 422


class TestProgressEndpoints:
    @pytest.mark.asyncio
    async def test_progress_for_new_user(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/progress")
        assert response.status_code == 200
        data = response.json()
        assert data["totalXp"] == 0
        assert data["level"] == 1
        assert data["xpForLevel"] == 100
        assert data["streakMultiplier"] == 1
        assert data["nextMilestone"] == {"days": 7, "multiplier": 2, "daysRemaining": 7}

    @pytest.mark.asyncio
    async def test_streak_status(self, authed_client: AsyncClient):
        await authed_client.post("/api/v1/practice/sessions", json={"score": 60})
        response = await authed_client.get("/api/v1/progress/streak")
        assert response.status_code == 200
        data = response.json()
        assert data["currentStreak"] == 1
        assert data["bestStreak"] == 1
        assert data["streakBonus"] == 5
        assert data["lastPracticeDate"] is not None


class TestLoginRewardEndpoints:
    @pytest.mark.asyncio
    async def test_status_then_claim(self, authed_client: AsyncClient):
        status = (await authed_client.get("/api/v1/login-rewards")).json()
        assert status["canClaimToday"] is True
        assert status["currentDay"] == 1
        assert len(status["rewards"]) == 7

        response = await authed_client.post("/api/v1/login-rewards/claim")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["canClaimToday"] is False
        assert data["currentDay"] == 1
        assert data["claimedDays"] == [1]
        assert data["streakCount"] == 1
        assert data["cycleStartDate"] == "2026-03-04"
        assert data["reward"]["rewardType"] == "xp"
        assert data["claim"]["claimedDay"] == 1

    @pytest.mark.asyncio
    async def test_second_claim_rejected(self, authed_client: AsyncClient):
        await authed_client.post("/api/v1/login-rewards/claim")
        response = await authed_client.post("/api/v1/login-rewards/claim")
        assert response.status_code == 400
        assert response.json() == {"message": "Already claimed today's reward"}

    @pytest.mark.asyncio
    async def test_claim_next_day(self, authed_client: AsyncClient, clock):
        await authed_client.post("/api/v1/login-rewards/claim")
        clock.advance(days=1)
        data = (await authed_client.post("/api/v1/login-rewards/claim")).json()
        assert data["currentDay"] == 2
        assert data["claimedDays"] == [1, 2]


class TestBadgeEndpoints:
    @pytest.mark.asyncio
    async def test_catalog(self, client: AsyncClient):
        response = await client.get("/api/v1/badges")
        assert response.status_code == 200
        badges = response.json()["badges"]
        assert len(badges) == 23
        assert badges[0]["slug"] == "first_steps"
        assert badges[0]["xpReward"] == 25

    @pytest.mark.asyncio
    async def test_my_badges(self, authed_client: AsyncClient):
        empty = (await authed_client.get("/api/v1/users/me/badges")).json()
        assert empty["earned"] == []
        assert empty["totalEarned"] == 0
        assert empty["totalAvailable"] == 23

        await authed_client.post("/api/v1/practice/sessions", json={"score": 100, "mode": "voice"})
        data = (await authed_client.get("/api/v1/users/me/badges")).json()
        assert {b["slug"] for b in data["earned"]} == {"first_steps", "voice_debut"}
        assert data["totalEarned"] == 2


class TestWeeklyChallengeEndpoints:
    @pytest.mark.asyncio
    async def test_list_and_claim(self, authed_client: AsyncClient):
        listing = (await authed_client.get("/api/v1/weekly-challenges")).json()
        assert len(listing["challenges"]) == 5
        assert listing["daysRemaining"] == 5
        assert listing["weekEndDate"] == "2026-03-08"
        voice = next(c for c in listing["challenges"] if c["goalType"] == "voice_practice")
        assert voice["userProgress"] == 0
        assert voice["completed"] is False

        early = await authed_client.post(f"/api/v1/weekly-challenges/{voice['id']}/claim")
        assert early.status_code == 400
        assert early.json() == {"message": "Challenge not completed yet"}

        await authed_client.post("/api/v1/practice/sessions", json={"score": 70, "mode": "voice"})
        count = (await authed_client.get("/api/v1/weekly-challenges/uncompleted-count")).json()
        assert count == {"count": 4}

        claimed = await authed_client.post(f"/api/v1/weekly-challenges/{voice['id']}/claim")
        assert claimed.status_code == 200
        assert claimed.json() == {"success": True, "xpEarned": 50, "ppEarned": 15}

        again = await authed_client.post(f"/api/v1/weekly-challenges/{voice['id']}/claim")
        assert again.status_code == 400
        assert again.json() == {"message": "Reward already claimed"}

    @pytest.mark.asyncio
    async def test_claim_unknown_challenge(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/weekly-challenges/99999/claim")
        assert response.status_code == 404
        assert response.json() == {"message": "Challenge not found"}


class TestSubscriptionEndpoints:
    @pytest.mark.asyncio
    async def test_usage_for_free_user(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/subscription/usage")
        assert response.status_code == 200
        assert response.json() == {"allowed": True, "remaining": 3, "limit": 3, "tier": "free", "usedToday": 0}

    @pytest.mark.asyncio
    async def test_select_tier_lifts_limit(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/subscription/select", json={"tier": "pro"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "tier": "pro"}

        usage = (await authed_client.get("/api/v1/subscription/usage")).json()
        assert usage["tier"] == "pro"
        assert usage["limit"] is None
        assert usage["remaining"] is None

    @pytest.mark.asyncio
    async def test_select_invalid_tier(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/subscription/select", json={"tier": "platinum"})
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid tier: platinum"}
