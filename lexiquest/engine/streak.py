"""
lexiquest.engine.streak — Streak Day Classification
====================================================

Pure decision function: given the last day credited to a streak and the
current instant, say whether the streak is already counted for today,
continues, or has to start over.  Persistence lives in
:mod:`lexiquest.services.streak_service`.
"""

from __future__ import annotations

import enum
from datetime import datetime

from lexiquest.engine.calendar import STREAK_GRACE_PERIOD, as_utc, day_bounds, start_of_utc_day


class StreakTransition(enum.StrEnum):
    SAME_DAY = "same_day"
    CONTINUE = "continue"
    RESET = "reset"


def classify_streak(
    last_streak_date: datetime | None,
    now: datetime,
) -> StreakTransition:
    """Decide what today's activity does to a streak last credited on
    *last_streak_date*.

    * ``SAME_DAY`` — today is already counted.
    * ``CONTINUE`` — last credited yesterday, or no more than 26 hours ago.
    * ``RESET`` — no prior streak, or a gap of two days or more.
    """
    if last_streak_date is None:
        return StreakTransition.RESET

    now = as_utc(now)
    today, yesterday = day_bounds(now)
    last = start_of_utc_day(last_streak_date)

    if last == today:
        return StreakTransition.SAME_DAY

    within_grace = now - last <= STREAK_GRACE_PERIOD
    if last == yesterday or within_grace:
        return StreakTransition.CONTINUE

    return StreakTransition.RESET
