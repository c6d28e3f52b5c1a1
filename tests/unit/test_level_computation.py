"""Level computation tests. Must match the client's level curve exactly."""

import pytest

from mirrorplay.gamification.levels import XP_PER_LEVEL, compute_level, level_for_xp


class TestLevelComputation:
    """level = floor(total_xp / 100) + 1."""

    def test_level_1_at_zero_xp(self):
        assert level_for_xp(0) == 1

    def test_level_boundary_99_xp(self):
        """99 XP is still level 1."""
        assert level_for_xp(99) == 1

    def test_level_2_at_100_xp(self):
        assert level_for_xp(100) == 2

    def test_large_xp(self):
        assert level_for_xp(123_456) == 1235

    def test_negative_xp_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            level_for_xp(-1)

    @pytest.mark.parametrize("xp", [0, 1, 25, 99, 100, 101, 199, 250, 999, 1000, 54321])
    def test_matches_floor_formula(self, xp):
        assert level_for_xp(xp) == xp // 100 + 1


class TestComputeLevel:
    def test_xp_into_level_calculation(self):
        result = compute_level(150)  # 50 XP into level 2
        assert result["level"] == 2
        assert result["xp_into_level"] == 50
        assert result["xp_for_level"] == XP_PER_LEVEL
        assert result["xp_to_next_level"] == 50
        assert result["next_level"] == 3

    def test_xp_into_level_at_boundary(self):
        result = compute_level(300)  # Exactly at level 4 boundary
        assert result["level"] == 4
        assert result["xp_into_level"] == 0
        assert result["xp_to_next_level"] == 100

    def test_zero_xp(self):
        result = compute_level(0)
        assert result == {
            "level": 1,
            "xp_into_level": 0,
            "xp_for_level": 100,
            "xp_to_next_level": 100,
            "next_level": 2,
        }
