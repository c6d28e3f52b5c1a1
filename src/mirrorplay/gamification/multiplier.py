"""Streak multiplier policy.

Pure functions used both when granting rewards and when rendering progress,
so they carry no state and are defined for every non-negative streak length.
"""

from __future__ import annotations

from typing import NamedTuple

# (minimum streak days, multiplier), highest first
STREAK_MULTIPLIER_TIERS: list[tuple[int, int]] = [
    (30, 5),
    (14, 3),
    (7, 2),
]


class Milestone(NamedTuple):
    days: int
    multiplier: int
    days_remaining: int


def _check_streak(streak_days: int) -> None:
    if streak_days < 0:
        msg = f"streak_days must be non-negative, got {streak_days}"
        raise ValueError(msg)


def streak_multiplier(streak_days: int) -> int:
    """Return 5 at 30+ days, 3 at 14+, 2 at 7+, otherwise 1."""
    _check_streak(streak_days)
    for threshold, multiplier in STREAK_MULTIPLIER_TIERS:
        if streak_days >= threshold:
            return multiplier
    return 1


def next_milestone(streak_days: int) -> Milestone | None:
    """Smallest milestone strictly above streak_days, or None once the top tier is reached."""
    _check_streak(streak_days)
    for threshold, multiplier in reversed(STREAK_MULTIPLIER_TIERS):
        if threshold > streak_days:
            return Milestone(days=threshold, multiplier=multiplier, days_remaining=threshold - streak_days)
    return None
