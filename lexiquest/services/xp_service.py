"""
lexiquest.services.xp_service — XP Award Engine & Progress Read Models
=======================================================================

Shared service module callable by the API and by scripts.  Turns one
answered question into an XP delta and applies it atomically:

1. Load the question's game metadata (correct answers only).  Nothing has
   been written yet, so an unknown question leaves no trace.
2. Refresh the streak (own transaction, so the multiplier sees today).
3. In one unit of work:
   a. idempotency check via the :class:`AwardLedger`
   b. run the pure pipeline in :mod:`lexiquest.engine.reward`
   c. increment ``total_xp`` / ``daily_xp`` / ``weekly_xp`` in SQL
   d. upsert today's ``user_activity`` row
   e. record the award in the ledger

Counters are always bumped with ``col = col + n`` so concurrent awards for
the same user both land.  Any failure inside step 3 rolls back every write
in it.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime

from sqlalchemy import Engine, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lexiquest.constants import level_for_xp, level_progress, xp_for_next_level
from lexiquest.database.engine import get_session
from lexiquest.database.models import Question, User, UserActivity
from lexiquest.engine.calendar import as_utc, utc_day, utc_now
from lexiquest.engine.reward import GameMetadata, calculate_xp
from lexiquest.services.errors import DuplicateAwardError, NotFoundError
from lexiquest.services.ledger import AwardLedger, PersistentLedger
from lexiquest.services.streak_service import refresh_streak

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


# ---------------------------------------------------------------------------
# Result contract
# ---------------------------------------------------------------------------
@dataclass
class XPAwardResult:
    xp_awarded: int
    total_xp: int
    current_streak: int
    streak_bonus: bool = False
    time_bonus: bool = False
    level_up: bool = False
    old_level: int = 0
    new_level: int = 0
    duplicate: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _unchanged(session: Session, user_id: str, *, duplicate: bool = False) -> XPAwardResult:
    """Zero-XP result carrying the user's current totals."""
    row = session.execute(
        select(User.total_xp, User.current_streak).where(User.id == user_id)
    ).one_or_none()
    if row is None:
        raise NotFoundError("user", user_id)
    level = level_for_xp(row.total_xp)
    return XPAwardResult(
        xp_awarded=0,
        total_xp=row.total_xp,
        current_streak=row.current_streak,
        old_level=level,
        new_level=level,
        duplicate=duplicate,
    )


def _upsert_activity(session: Session, user_id: str, day, xp: int) -> None:
    """Add *xp* and one completed question to the user's row for *day*."""

    def _increment() -> int:
        return session.execute(
            update(UserActivity)
            .where(UserActivity.user_id == user_id, UserActivity.activity_date == day)
            .values(
                xp_earned=UserActivity.xp_earned + xp,
                questions_completed=UserActivity.questions_completed + 1,
            )
            .execution_options(synchronize_session=False)
        ).rowcount

    if _increment():
        return
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(UserActivity(
                user_id=user_id,
                activity_date=day,
                xp_earned=xp,
                questions_completed=1,
            ))
            session.flush()
    except IntegrityError:
        # A concurrent award created today's row first
        _increment()


def _load_game_metadata(engine: Engine, question_id: str) -> GameMetadata:
    """Parsed XP inputs for *question_id*; a missing row or null metadata is
    :class:`NotFoundError`."""
    with Session(engine) as session:
        raw_game = session.scalar(
            select(Question.game_metadata).where(Question.id == question_id)
        )
    if raw_game is None:
        raise NotFoundError("question", question_id)
    return GameMetadata.from_json(raw_game)


# ---------------------------------------------------------------------------
# Award
# ---------------------------------------------------------------------------
def award_xp(
    engine: Engine,
    user_id: str,
    question_id: str,
    is_correct: bool,
    time_spent: float,
    time_limit: float | None = None,
    *,
    ledger: AwardLedger | None = None,
    now: datetime | None = None,
) -> XPAwardResult:
    """Apply the outcome of one answered question to *user_id*.

    Incorrect answers earn nothing but still count as activity for the
    streak.  Raises :class:`NotFoundError` for an unknown user, or for an
    unknown question on a correct answer; nothing is written in that case.
    """
    now = as_utc(now) or utc_now()
    ledger = ledger if ledger is not None else PersistentLedger()

    game = _load_game_metadata(engine, question_id) if is_correct else None

    streak = refresh_streak(engine, user_id, now=now)

    if not is_correct:
        with get_session(engine) as session:
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(last_activity_at=now)
                .execution_options(synchronize_session=False)
            )
            return _unchanged(session, user_id)

    try:
        with get_session(engine) as session:
            if ledger.has(session, user_id, question_id):
                logger.info(
                    "Duplicate award ignored for user=%s question=%s", user_id, question_id
                )
                return _unchanged(session, user_id, duplicate=True)

            breakdown = calculate_xp(
                game,
                current_streak=streak.current_streak,
                time_spent=time_spent,
                time_limit=time_limit,
            )
            xp = breakdown.final_xp

            result = session.execute(
                update(User)
                .where(User.id == user_id)
                .values(
                    total_xp=User.total_xp + xp,
                    daily_xp=User.daily_xp + xp,
                    weekly_xp=User.weekly_xp + xp,
                    last_activity_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("user", user_id)

            row = session.execute(
                select(User.total_xp, User.current_streak).where(User.id == user_id)
            ).one()
            new_total = row.total_xp
            old_level = level_for_xp(new_total - xp)
            new_level = level_for_xp(new_total)

            _upsert_activity(session, user_id, utc_day(now), xp)
            ledger.record(session, user_id, question_id, xp)
    except DuplicateAwardError:
        logger.info(
            "Concurrent duplicate award rolled back for user=%s question=%s",
            user_id, question_id,
        )
        with get_session(engine) as session:
            return _unchanged(session, user_id, duplicate=True)

    if new_level > old_level:
        logger.info("User %s leveled up %d → %d", user_id, old_level, new_level)

    return XPAwardResult(
        xp_awarded=xp,
        total_xp=new_total,
        current_streak=row.current_streak,
        streak_bonus=breakdown.streak_bonus,
        time_bonus=breakdown.time_bonus,
        level_up=new_level > old_level,
        old_level=old_level,
        new_level=new_level,
    )


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------
def _page(limit: int, offset: int) -> tuple[int, int]:
    return min(max(1, int(limit)), MAX_PAGE_SIZE), max(0, int(offset))


def get_user_stats(engine: Engine, user_id: str) -> dict:
    """Totals, streaks and level progress for one user."""
    with Session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("user", user_id)

        level = level_for_xp(user.total_xp)
        days_active = session.scalar(
            select(func.count()).select_from(UserActivity)
            .where(UserActivity.user_id == user_id)
        ) or 0
        last_streak = as_utc(user.last_streak_date)
        last_activity = as_utc(user.last_activity_at)

        return {
            "user_id": user.id,
            "total_xp": user.total_xp,
            "daily_xp": user.daily_xp,
            "weekly_xp": user.weekly_xp,
            "current_streak": user.current_streak,
            "longest_streak": user.longest_streak,
            "last_streak_date": last_streak.isoformat() if last_streak else None,
            "last_activity_at": last_activity.isoformat() if last_activity else None,
            "level": level,
            "xp_for_next": xp_for_next_level(level),
            "xp_progress": level_progress(user.total_xp),
            "days_active": days_active,
        }


def get_activity_history(
    engine: Engine,
    user_id: str,
    limit: int = 30,
    offset: int = 0,
) -> list[dict]:
    """Per-day activity rows for *user_id*, newest first."""
    limit, offset = _page(limit, offset)
    with Session(engine) as session:
        rows = session.scalars(
            select(UserActivity)
            .where(UserActivity.user_id == user_id)
            .order_by(UserActivity.activity_date.desc())
            .offset(offset)
            .limit(limit)
        ).all()
        return [
            {
                "activity_date": r.activity_date.isoformat(),
                "xp_earned": r.xp_earned,
                "questions_completed": r.questions_completed,
            }
            for r in rows
        ]


def get_leaderboard(engine: Engine, limit: int = 10, offset: int = 0) -> list[dict]:
    """Users ordered by ``total_xp`` descending."""
    limit, offset = _page(limit, offset)
    with Session(engine) as session:
        users = session.scalars(
            select(User)
            .order_by(User.total_xp.desc(), User.id)
            .offset(offset)
            .limit(limit)
        ).all()
        return [
            {
                "rank": offset + i + 1,
                "user_id": u.id,
                "name": f"{u.first_name or ''} {u.last_name or ''}".strip(),
                "total_xp": u.total_xp,
                "level": level_for_xp(u.total_xp),
                "current_streak": u.current_streak,
            }
            for i, u in enumerate(users)
        ]
