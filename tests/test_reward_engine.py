"""
tests/test_reward_engine.py — Unit Tests for the XP Pipeline
=============================================================

Tests the pure calculation pipeline and level table (no I/O, no database).
"""

from __future__ import annotations

import pytest

from lexiquest.constants import (
    LEVEL_THRESHOLDS,
    level_for_xp,
    level_progress,
    xp_for_next_level,
)
from lexiquest.engine.reward import (
    GameMetadata,
    calculate_xp,
    round_half_up,
    safe_time_limit,
    streak_multiplier,
    time_multiplier,
)


# ---------------------------------------------------------------------------
# Streak multiplier
# ---------------------------------------------------------------------------
class TestStreakMultiplier:
    @pytest.mark.parametrize(
        ("streak", "expected"),
        [(1, 1.0), (2, 1.1), (11, 2.0), (50, 2.0)],
    )
    def test_bounds(self, streak, expected):
        assert streak_multiplier(streak) == pytest.approx(expected)

    def test_zero_streak_has_no_bonus(self):
        assert streak_multiplier(0) == 1.0


# ---------------------------------------------------------------------------
# Time bonus
# ---------------------------------------------------------------------------
class TestTimeBonus:
    def test_more_than_half_remaining_earns_bonus(self):
        assert time_multiplier(10, 30) == 1.2

    def test_less_than_half_remaining_earns_nothing(self):
        assert time_multiplier(20, 30) == 1.0

    def test_exactly_half_remaining_is_not_enough(self):
        assert time_multiplier(15, 30) == 1.0

    def test_time_spent_is_clamped(self):
        assert time_multiplier(-5, 30) == 1.2
        assert time_multiplier(999, 30) == 1.0


class TestSafeTimeLimit:
    def test_question_limit_wins(self):
        assert safe_time_limit(20, 45) == 20

    def test_falls_back_to_caller_then_default(self):
        assert safe_time_limit(None, 45) == 45
        assert safe_time_limit(None, None) == 30

    def test_never_below_one_second(self):
        assert safe_time_limit(0.2, None) == 1.0


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------
class TestCalculateXP:
    def test_fast_first_day_answer(self):
        game = GameMetadata(points_value=100, difficulty_multiplier=1.5, time_limit=30)
        result = calculate_xp(game, current_streak=1, time_spent=5)

        assert result.base_xp == 150
        assert not result.streak_bonus
        assert result.time_bonus
        assert result.final_xp == 180

    def test_streak_and_time_bonus_compose(self):
        game = GameMetadata(points_value=80, difficulty_multiplier=1.2, time_limit=20)
        result = calculate_xp(game, current_streak=3, time_spent=5, time_limit=20)

        assert result.streak_multiplier == pytest.approx(1.2)
        assert result.time_multiplier == 1.2
        assert result.final_xp == 138

    def test_slow_answer_without_streak(self):
        game = GameMetadata(points_value=10)
        result = calculate_xp(game, current_streak=1, time_spent=30, time_limit=30)
        assert result.final_xp == 10
        assert not result.time_bonus

    def test_rounds_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(138.24) == 138


class TestGameMetadata:
    def test_from_json(self):
        game = GameMetadata.from_json(
            {"pointsValue": 50, "timeLimit": 20, "difficultyMultiplier": 1.5}
        )
        assert game == GameMetadata(points_value=50, difficulty_multiplier=1.5, time_limit=20)

    def test_missing_fields_use_defaults(self):
        game = GameMetadata.from_json({"pointsValue": 10})
        assert game.difficulty_multiplier == 1.0
        assert game.time_limit is None

    def test_zero_multiplier_is_kept(self):
        game = GameMetadata.from_json(
            {"pointsValue": 100, "difficultyMultiplier": 0, "timeLimit": 30}
        )
        assert game.difficulty_multiplier == 0.0
        assert calculate_xp(game, current_streak=1, time_spent=30).final_xp == 0

    def test_null_multiplier_uses_default(self):
        game = GameMetadata.from_json({"pointsValue": 10, "difficultyMultiplier": None})
        assert game.difficulty_multiplier == 1.0


# ---------------------------------------------------------------------------
# Level table
# ---------------------------------------------------------------------------
class TestLevels:
    @pytest.mark.parametrize(
        ("xp", "level"),
        [(0, 0), (95, 0), (100, 1), (105, 1), (299, 1), (300, 2), (4500, 9), (99999, 9)],
    )
    def test_level_for_xp(self, xp, level):
        assert level_for_xp(xp) == level

    def test_next_level_threshold(self):
        assert xp_for_next_level(0) == 100
        assert xp_for_next_level(len(LEVEL_THRESHOLDS) - 1) is None

    def test_progress(self):
        assert level_progress(200) == pytest.approx(0.5)
        assert level_progress(10_000) == 1.0
