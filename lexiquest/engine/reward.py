"""
lexiquest.engine.reward — XP Calculation Pipeline
==================================================

Pure calculation pipeline.  No DB I/O inside the engine.

Pipeline stages:
  GameMetadata → Time limit → Base XP → Streak multiplier → Time bonus → Round → XPBreakdown
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

DEFAULT_TIME_LIMIT = 30  # seconds, when neither question nor caller gives one

STREAK_STEP = 0.1        # +10% per consecutive day beyond the first
STREAK_MAX_STEPS = 10    # capped at +100%

TIME_BONUS_MULTIPLIER = 1.2
TIME_BONUS_THRESHOLD = 0.5  # fraction of the limit that must remain unused


# ---------------------------------------------------------------------------
# Question inputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GameMetadata:
    """XP inputs stored on a question's ``game_metadata`` JSON column."""

    points_value: float
    difficulty_multiplier: float = 1.0
    time_limit: float | None = None

    @classmethod
    def from_json(cls, raw: dict[str, Any] | None) -> GameMetadata:
        raw = raw or {}
        time_limit = raw.get("timeLimit")
        multiplier = raw.get("difficultyMultiplier")
        return cls(
            points_value=float(raw.get("pointsValue", 0) or 0),
            difficulty_multiplier=1.0 if multiplier is None else float(multiplier),
            time_limit=float(time_limit) if time_limit else None,
        )


# ---------------------------------------------------------------------------
# XPBreakdown — output of the pipeline
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class XPBreakdown:
    base_xp: float
    streak_multiplier: float
    time_multiplier: float
    final_xp: int

    @property
    def streak_bonus(self) -> bool:
        return self.streak_multiplier > 1

    @property
    def time_bonus(self) -> bool:
        return self.time_multiplier > 1


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------
def safe_time_limit(configured: float | None, supplied: float | None) -> float:
    """Question's limit, else the caller's, else 30s; never below 1s."""
    return max(1.0, float(configured or supplied or DEFAULT_TIME_LIMIT))


def streak_multiplier(current_streak: int) -> float:
    """``1 + min(max(streak - 1, 0), 10) * 0.1`` — range ``[1.0, 2.0]``."""
    steps = min(max(current_streak - 1, 0), STREAK_MAX_STEPS)
    return 1 + steps * STREAK_STEP


def time_multiplier(time_spent: float, limit: float) -> float:
    """1.2 when more than half of *limit* was left unused, else 1.0."""
    effective = min(max(time_spent, 0), limit)
    remaining = limit - effective
    if remaining > limit * TIME_BONUS_THRESHOLD:
        return TIME_BONUS_MULTIPLIER
    return 1.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Full calculation pipeline
# ---------------------------------------------------------------------------
def calculate_xp(
    game: GameMetadata,
    *,
    current_streak: int,
    time_spent: float,
    time_limit: float | None = None,
) -> XPBreakdown:
    """Run the XP pipeline for one correct answer.

    This is a PURE function — callers pass the streak value *after* the
    streak engine has refreshed it for today.
    """
    limit = safe_time_limit(game.time_limit, time_limit)
    base = game.points_value * game.difficulty_multiplier
    s_mult = streak_multiplier(current_streak)
    t_mult = time_multiplier(time_spent, limit)

    return XPBreakdown(
        base_xp=base,
        streak_multiplier=s_mult,
        time_multiplier=t_mult,
        final_xp=round_half_up(base * s_mult * t_mult),
    )
