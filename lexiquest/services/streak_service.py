"""
lexiquest.services.streak_service — Race-Safe Streak Maintenance
=================================================================

Keeps ``current_streak``, ``longest_streak`` and ``last_streak_date`` on
``users`` in step with learner activity.  Two entry points:

* :func:`refresh_streak` — the "pull" side, called before every XP award
  (correct or not).  Credits today to the streak at most once.
* :func:`check_streak_break` — the "push" side, called per user by the
  nightly maintenance job.  Zeroes streaks that have gone stale; never
  increments.

The increment is a compare-and-swap ``UPDATE … WHERE last_streak_date <
today``: of two concurrent refreshes on the same day exactly one affects a
row, the other sees ``rowcount == 0`` and treats it as success.  The
longest-streak comparison is folded into the same statement, so the
``longest_streak >= current_streak`` invariant never depends on a second,
racy read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Engine, case, or_, select, update

from lexiquest.database.engine import get_session
from lexiquest.database.models import User
from lexiquest.engine.calendar import as_utc, start_of_utc_day, utc_now
from lexiquest.engine.streak import StreakTransition, classify_streak
from lexiquest.services.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StreakUpdate:
    """Streak state after a refresh."""

    current_streak: int
    longest_streak: int
    last_streak_date: datetime | None
    transition: StreakTransition
    applied: bool  # False when a concurrent caller won the CAS, or SAME_DAY


def _greatest(column, value):
    """Portable ``GREATEST(column, value)`` (SQLite has no GREATEST)."""
    return case((value > column, value), else_=column)


def _load_streak(session, user_id: str) -> tuple[int, int, datetime | None]:
    row = session.execute(
        select(User.current_streak, User.longest_streak, User.last_streak_date)
        .where(User.id == user_id)
    ).one_or_none()
    if row is None:
        raise NotFoundError("user", user_id)
    return row.current_streak, row.longest_streak, as_utc(row.last_streak_date)


def refresh_streak(
    engine: Engine,
    user_id: str,
    *,
    now: datetime | None = None,
) -> StreakUpdate:
    """Credit today's activity to *user_id*'s streak.

    Raises :class:`NotFoundError` if the user does not exist.  Storage
    errors propagate unchanged; this function does not retry.
    """
    now = as_utc(now) or utc_now()
    today = start_of_utc_day(now)

    with get_session(engine) as session:
        current, longest, last = _load_streak(session, user_id)
        transition = classify_streak(last, now)

        if transition is StreakTransition.SAME_DAY:
            return StreakUpdate(current, longest, last, transition, applied=False)

        if transition is StreakTransition.CONTINUE:
            result = session.execute(
                update(User)
                .where(
                    User.id == user_id,
                    or_(User.last_streak_date.is_(None), User.last_streak_date < today),
                )
                .values(
                    current_streak=User.current_streak + 1,
                    longest_streak=_greatest(User.longest_streak, User.current_streak + 1),
                    last_streak_date=today,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                logger.debug("Streak for user=%s already advanced today", user_id)
                current, longest, last = _load_streak(session, user_id)
                return StreakUpdate(current, longest, last, transition, applied=False)
        else:
            # Broken streak: every concurrent caller converges on the same values
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(
                    current_streak=1,
                    longest_streak=_greatest(User.longest_streak, 1),
                    last_streak_date=today,
                )
                .execution_options(synchronize_session=False)
            )

        current, longest, last = _load_streak(session, user_id)

    logger.info(
        "Streak %s for user=%s → current=%d longest=%d",
        transition.value, user_id, current, longest,
    )
    return StreakUpdate(current, longest, last, transition, applied=True)


def check_streak_break(
    engine: Engine,
    user_id: str,
    *,
    now: datetime | None = None,
    dry_run: bool = False,
) -> bool:
    """Zero *user_id*'s streak if it can no longer continue today.

    Returns ``True`` when the streak was (or, with *dry_run*, would be)
    broken.  The write is guarded by the ``last_streak_date`` that was read,
    so an award that advances the streak in the meantime wins.
    """
    now = as_utc(now) or utc_now()

    with get_session(engine) as session:
        current, _longest, last = _load_streak(session, user_id)
        if current <= 0 or classify_streak(last, now) is not StreakTransition.RESET:
            return False
        if dry_run:
            return True

        guard = (
            User.last_streak_date.is_(None) if last is None
            else User.last_streak_date == last
        )
        result = session.execute(
            update(User)
            .where(User.id == user_id, User.current_streak > 0, guard)
            .values(current_streak=0)
            .execution_options(synchronize_session=False)
        )
        broken = result.rowcount > 0

    if broken:
        logger.info("Streak broken for user=%s (was %d)", user_id, current)
    return broken
