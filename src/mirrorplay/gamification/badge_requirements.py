"""Badge requirement variants.

Each badge stores its requirement as a JSON object tagged by ``type``. The
tag selects one of the models below; every model declares which events it is
evaluated on and a single ``is_met`` predicate over a BadgeContext. Adding a
badge type means adding one model to the union.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Annotated, ClassVar, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

# Event types
PRACTICE = "practice"
VOICE_PRACTICE = "voice_practice"
STREAK_UPDATE = "streak_update"
GIFT_SENT = "gift_sent"
SUBSCRIPTION = "subscription"

EVENT_TYPES = frozenset({PRACTICE, VOICE_PRACTICE, STREAK_UPDATE, GIFT_SENT, SUBSCRIPTION})
PROGRESS_EVENTS = frozenset({PRACTICE, VOICE_PRACTICE, STREAK_UPDATE, SUBSCRIPTION})


@dataclass
class BadgeContext:
    """Aggregate user stats plus the triggering event."""

    event_type: str
    score: int | None = None
    mode: str | None = None
    practice_count: int = 0
    current_streak: int = 0
    level: int = 1
    session_count: int = 0
    voice_session_count: int = 0
    recent_scores: list[int] = field(default_factory=list)
    gifts_sent: int = 0
    joined_at: datetime | None = None


class _Requirement(BaseModel):
    events: ClassVar[frozenset[str]] = PROGRESS_EVENTS

    def applies_to(self, event_type: str) -> bool:
        return event_type in self.events

    def is_met(self, ctx: BadgeContext) -> bool:
        raise NotImplementedError


class PracticeCountRequirement(_Requirement):
    type: Literal["practice_count"]
    count: int

    def is_met(self, ctx: BadgeContext) -> bool:
        return ctx.practice_count >= self.count


class StreakRequirement(_Requirement):
    type: Literal["streak"]
    days: int

    def is_met(self, ctx: BadgeContext) -> bool:
        return ctx.current_streak >= self.days


class PerfectScoreRequirement(_Requirement):
    events: ClassVar[frozenset[str]] = frozenset({PRACTICE})

    type: Literal["perfect_score"]
    score: int = 100

    def is_met(self, ctx: BadgeContext) -> bool:
        return ctx.score is not None and ctx.score >= self.score


class AverageScoreRequirement(_Requirement):
    type: Literal["average_score"]
    min_average: float
    min_sessions: int = 5
    window: int = 20

    def is_met(self, ctx: BadgeContext) -> bool:
        if ctx.session_count < self.min_sessions:
            return False
        recent = ctx.recent_scores[: self.window]
        if not recent:
            return False
        return sum(recent) / len(recent) >= self.min_average


class LevelRequirement(_Requirement):
    type: Literal["level"]
    level: int

    def is_met(self, ctx: BadgeContext) -> bool:
        return ctx.level >= self.level


class VoicePracticeCountRequirement(_Requirement):
    type: Literal["voice_practice_count"]
    count: int

    def is_met(self, ctx: BadgeContext) -> bool:
        return ctx.voice_session_count >= self.count


class FirstVoicePracticeRequirement(_Requirement):
    events: ClassVar[frozenset[str]] = frozenset({VOICE_PRACTICE})

    type: Literal["first_voice_practice"]

    def is_met(self, ctx: BadgeContext) -> bool:
        return ctx.mode == "voice" and ctx.voice_session_count == 1


class GiftSentCountRequirement(_Requirement):
    events: ClassVar[frozenset[str]] = frozenset({GIFT_SENT})

    type: Literal["gift_sent_count"]
    count: int

    def is_met(self, ctx: BadgeContext) -> bool:
        return ctx.gifts_sent >= self.count


class SubscriptionRequirement(_Requirement):
    events: ClassVar[frozenset[str]] = frozenset({SUBSCRIPTION})

    type: Literal["subscription"]

    def is_met(self, ctx: BadgeContext) -> bool:
        return ctx.event_type == SUBSCRIPTION


class EarlyAdopterRequirement(_Requirement):
    type: Literal["early_adopter"]
    before: date = date(2026, 3, 1)

    def is_met(self, ctx: BadgeContext) -> bool:
        return ctx.joined_at is not None and ctx.joined_at.date() < self.before


BadgeRequirement = Annotated[
    Union[
        PracticeCountRequirement,
        StreakRequirement,
        PerfectScoreRequirement,
        AverageScoreRequirement,
        LevelRequirement,
        VoicePracticeCountRequirement,
        FirstVoicePracticeRequirement,
        GiftSentCountRequirement,
        SubscriptionRequirement,
        EarlyAdopterRequirement,
    ],
    Field(discriminator="type"),
]

_requirement_adapter: TypeAdapter[BadgeRequirement] = TypeAdapter(BadgeRequirement)


def parse_requirement(data: dict) -> BadgeRequirement:
    """Validate a stored requirement object. Raises pydantic.ValidationError on unknown shapes."""
    return _requirement_adapter.validate_python(data)
