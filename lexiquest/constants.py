"""
lexiquest.constants — Shared Constants & Leveling Helpers
==========================================================

Single source of truth for the level table.  Import from here instead of
duplicating thresholds in services and API routes.
"""

from __future__ import annotations

from bisect import bisect_right

# ---------------------------------------------------------------------------
# Level table — cumulative XP breakpoints, ascending
# ---------------------------------------------------------------------------
LEVEL_THRESHOLDS: tuple[int, ...] = (0, 100, 300, 600, 1000, 1500, 2100, 2800, 3600, 4500)

MAX_LEVEL = len(LEVEL_THRESHOLDS) - 1


def level_for_xp(total_xp: int) -> int:
    """Index of the highest threshold not exceeding *total_xp*.

    Level 0 covers everything below the first non-zero breakpoint (100 XP).
    """
    return max(bisect_right(LEVEL_THRESHOLDS, max(total_xp, 0)) - 1, 0)


def xp_for_next_level(level: int) -> int | None:
    """XP needed to reach ``level + 1``, or ``None`` at the top of the table."""
    if level >= MAX_LEVEL:
        return None
    return LEVEL_THRESHOLDS[level + 1]


def level_progress(total_xp: int) -> float:
    """Fraction (0..1) of the way from the current level to the next."""
    level = level_for_xp(total_xp)
    nxt = xp_for_next_level(level)
    if nxt is None:
        return 1.0
    floor = LEVEL_THRESHOLDS[level]
    return (total_xp - floor) / max(nxt - floor, 1)
