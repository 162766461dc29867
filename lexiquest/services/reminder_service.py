"""
lexiquest.services.reminder_service — Durable Reminder Dedup
=============================================================

Finds learners who have gone quiet and hands them to an outbound notifier
at most once per reminder type per UTC day.  "Already sent" lives in the
``reminder_log`` table (unique on user + type + day), so the guarantee
holds across restarts and across several job runners.

The transport itself (email, push) is supplied by the caller as a plain
callable; this module never talks to a mail server.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import Engine, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lexiquest.database.engine import get_session
from lexiquest.database.models import ReminderLog, ReminderType, User
from lexiquest.engine.calendar import as_utc, utc_day, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReminderTarget:
    user_id: str
    email: str
    first_name: str | None
    current_streak: int
    last_activity_at: datetime | None


Notifier = Callable[[ReminderTarget], None]


def find_inactive_users(
    engine: Engine,
    *,
    now: datetime | None = None,
    inactive_hours: int = 24,
) -> list[ReminderTarget]:
    """Verified users with no activity in the last *inactive_hours*."""
    now = as_utc(now) or utc_now()
    cutoff = now - timedelta(hours=inactive_hours)

    with Session(engine) as session:
        rows = session.execute(
            select(
                User.id, User.email, User.first_name,
                User.current_streak, User.last_activity_at,
            )
            .where(
                User.is_email_verified.is_(True),
                or_(
                    User.last_activity_at < cutoff,
                    User.last_activity_at.is_(None) & (User.created_at < cutoff),
                ),
            )
            .order_by(User.id)
        ).all()

    return [
        ReminderTarget(
            user_id=r.id,
            email=r.email,
            first_name=r.first_name,
            current_streak=r.current_streak,
            last_activity_at=as_utc(r.last_activity_at),
        )
        for r in rows
    ]


def claim_reminder(
    session: Session,
    user_id: str,
    reminder_type: ReminderType,
    day: date,
) -> bool:
    """Insert the dedup row; ``False`` if this reminder was already sent today."""
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(ReminderLog(
                user_id=user_id,
                reminder_type=reminder_type.value,
                sent_on=day,
            ))
            session.flush()
    except IntegrityError:
        return False
    return True


def send_inactivity_reminders(
    engine: Engine,
    notifier: Notifier,
    *,
    now: datetime | None = None,
    inactive_hours: int = 24,
) -> dict[str, int]:
    """Notify inactive users once per day.

    Each reminder is claimed and sent inside one transaction: if the
    notifier raises, the claim rolls back and tomorrow's run (or a retry
    today) tries again.  Returns ``{"sent", "skipped", "failed", "total"}``.
    """
    now = as_utc(now) or utc_now()
    today = utc_day(now)
    targets = find_inactive_users(engine, now=now, inactive_hours=inactive_hours)
    sent = skipped = failed = 0

    for target in targets:
        try:
            with get_session(engine) as session:
                if not claim_reminder(session, target.user_id, ReminderType.INACTIVITY, today):
                    skipped += 1
                    continue
                notifier(target)
            sent += 1
        except Exception:
            failed += 1
            logger.exception(
                "Inactivity reminder failed for user=%s", target.user_id,
                extra={"task": "reminders"},
            )

    logger.info(
        "Inactivity reminders: sent=%d skipped=%d failed=%d total=%d",
        sent, skipped, failed, len(targets),
    )
    return {"sent": sent, "skipped": skipped, "failed": failed, "total": len(targets)}
