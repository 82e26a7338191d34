"""Level computation from the threshold table."""

import pytest

from phare.gamification.catalog import LevelRow
from phare.gamification.level_service import build_level_info, compute_level, find_threshold

THRESHOLDS = (
    LevelRow(1, 0, "Commis", "🥄"),
    LevelRow(2, 50, "Apprenti", "🍳"),
    LevelRow(3, 150, "Chef de partie", "🔪"),
)


class TestComputeLevel:
    def test_zero_xp_is_level_1(self):
        assert compute_level(THRESHOLDS, 0) == 1

    @pytest.mark.parametrize(
        ("xp", "level"),
        [(49, 1), (50, 2), (149, 2), (150, 3), (10_000, 3)],
    )
    def test_boundaries(self, xp, level):
        assert compute_level(THRESHOLDS, xp) == level

    def test_unordered_table(self):
        shuffled = (THRESHOLDS[2], THRESHOLDS[0], THRESHOLDS[1])
        assert compute_level(shuffled, 60) == 2

    def test_empty_table_is_level_1(self):
        assert compute_level((), 500) == 1
        assert find_threshold((), 500) is None

    def test_xp_below_every_row(self):
        """A table that starts above zero still reports level 1 below its first row."""
        assert compute_level((LevelRow(2, 100),), 10) == 1


class TestLevelInfo:
    def test_progress_inside_level(self):
        info = build_level_info(THRESHOLDS, 100)

        assert info.level == 2
        assert info.name == "Apprenti"
        assert info.next_level == 3
        assert info.xp_for_next_level == 150
        assert info.xp_to_next_level == 50
        assert info.xp_into_level == 50
        assert info.progress_percent == 50
        assert info.is_max_level is False

    def test_exactly_on_boundary(self):
        info = build_level_info(THRESHOLDS, 50)
        assert info.xp_into_level == 0
        assert info.progress_percent == 0

    def test_max_level(self):
        info = build_level_info(THRESHOLDS, 400)

        assert info.level == 3
        assert info.is_max_level is True
        assert info.next_level is None
        assert info.progress_percent == 100

    def test_empty_table(self):
        info = build_level_info((), 20)
        assert info.level == 1
        assert info.name is None
        assert info.is_max_level is True
