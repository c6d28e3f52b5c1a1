"""Domain errors raised by the progression engine.

Each error knows the HTTP status it maps to and the JSON body the client
sees; ``middleware.error_handler`` turns them into responses.
"""

from __future__ import annotations

from typing import Any


class ProgressionError(Exception):
    """Base class for expected, user-facing engine outcomes."""

    status_code: int = 400
    message: str = "Request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def payload(self) -> dict[str, Any]:
        return {"message": self.message}


class UsageLimitExceeded(ProgressionError):
    """The user's tier allows no more scored analyses today."""

    status_code = 402
    message = "Daily analysis limit reached. Upgrade your subscription for more analyses."

    def __init__(self, tier: str, limit: int | None, used_today: int) -> None:
        super().__init__()
        self.tier = tier
        self.limit = limit
        self.used_today = used_today

    def payload(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "tier": self.tier,
            "limit": self.limit,
            "usedToday": self.used_today,
            "upgradeRequired": True,
        }


class AlreadyClaimedToday(ProgressionError):
    status_code = 400
    message = "Already claimed today's reward"


class MissingRewardData(ProgressionError):
    """The 7-day reward calendar has no row for the eligible day."""

    status_code = 500
    message = "Reward not found for day"

    def __init__(self, day: int) -> None:
        super().__init__()
        self.day = day


class ChallengeNotFound(ProgressionError):
    status_code = 404
    message = "Challenge not found"


class ChallengeNotCompleted(ProgressionError):
    status_code = 400
    message = "Challenge not completed yet"


class ChallengeRewardAlreadyClaimed(ProgressionError):
    status_code = 400
    message = "Reward already claimed"


class ManualSubscriptionDisabled(ProgressionError):
    status_code = 403
    message = "Manual subscription selection is disabled"


class InvalidTier(ProgressionError):
    status_code = 400
    message = "Invalid tier"
