"""Level curve: a flat 100 XP per level.

The client renders the same curve, so ``level_for_xp`` is the only place the
formula lives on the server; the atomic progress update in xp_service
repeats it in SQL.
"""

from __future__ import annotations

XP_PER_LEVEL = 100


def level_for_xp(total_xp: int) -> int:
    """level = floor(total_xp / 100) + 1."""
    if total_xp < 0:
        msg = f"total_xp must be non-negative, got {total_xp}"
        raise ValueError(msg)
    return total_xp // XP_PER_LEVEL + 1


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP for progress displays."""
    level = level_for_xp(total_xp)
    xp_into_level = total_xp - (level - 1) * XP_PER_LEVEL
    return {
        "level": level,
        "xp_into_level": xp_into_level,
        "xp_for_level": XP_PER_LEVEL,
        "xp_to_next_level": XP_PER_LEVEL - xp_into_level,
        "next_level": level + 1,
    }
