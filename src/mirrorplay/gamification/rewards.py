"""Reward arithmetic for scored practice actions. Integer math only."""

from __future__ import annotations

PRACTICE_MODES = frozenset({"text", "voice", "quick", "rehearsal"})


def base_reward(score: int, mode: str) -> tuple[int, int]:
    """Return (xp_base, pp_base) for a scored action.

    text / rehearsal: xp = floor(10 + score * 0.20), pp = floor(5 + score * 0.10)
    quick:            the text reward halved before flooring
    voice:            xp = floor(15 + score * 0.25), pp = floor(8 + score * 0.12)
    """
    if not 0 <= score <= 100:
        msg = f"score must be between 0 and 100, got {score}"
        raise ValueError(msg)
    if mode not in PRACTICE_MODES:
        msg = f"unknown practice mode: {mode!r}"
        raise ValueError(msg)

    if mode == "voice":
        return 15 + score // 4, 8 + (score * 12) // 100
    if mode == "quick":
        return (50 + score) // 10, (50 + score) // 20
    return 10 + score // 5, 5 + score // 10


def streak_bonus(current_streak: int, per_day: int = 5, cap: int = 50) -> int:
    """Flat XP add-on for the streak: min(current_streak * per_day, cap)."""
    return min(current_streak * per_day, cap)


def compute_xp_earned(xp_base: int, multiplier: int, bonus: int) -> int:
    """xp_earned = floor(xp_base * multiplier) + streak bonus."""
    return int(xp_base * multiplier) + bonus
