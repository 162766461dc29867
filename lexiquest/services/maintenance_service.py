"""
lexiquest.services.maintenance_service — Daily Maintenance Job
===============================================================

The "push" side of streak upkeep, run once per UTC day by an external
scheduler (see ``python -m lexiquest.jobs``):

1. Walk every user in id order (keyset batches of ``BATCH_SIZE``) and run
   the streak break-check on each in its own transaction.  A failure for
   one user is logged and collected; the batch carries on.
2. Zero ``daily_xp`` for everyone.
3. On the weekly reset day, zero ``weekly_xp`` as well.
4. Optionally nudge inactive learners through a caller-supplied notifier.

Running the job twice on the same day is harmless: the break-check is a
no-op for streaks already at zero, and zeroing a zero counter changes
nothing.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime

from sqlalchemy import Engine, func, select, update

from lexiquest.database.engine import get_session
from lexiquest.database.models import User
from lexiquest.engine.calendar import as_utc, utc_now
from lexiquest.services.reminder_service import Notifier, find_inactive_users, send_inactivity_reminders
from lexiquest.services.streak_service import check_streak_break

logger = logging.getLogger(__name__)

BATCH_SIZE = 1_000


@dataclass
class MaintenanceSummary:
    now: str
    dry_run: bool
    processed: int = 0
    streaks_broken: int = 0
    daily_reset: int = 0
    weekly_reset: int = 0
    reminders_sent: int = 0
    reminders_failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _user_id_batches(engine: Engine):
    """Yield lists of user ids in ascending order, ``BATCH_SIZE`` at a time."""
    cursor: str | None = None
    while True:
        with get_session(engine) as session:
            stmt = select(User.id).order_by(User.id).limit(BATCH_SIZE)
            if cursor is not None:
                stmt = stmt.where(User.id > cursor)
            ids = list(session.scalars(stmt).all())
        if not ids:
            return
        yield ids
        cursor = ids[-1]


def _reset_counter(engine: Engine, column, *, dry_run: bool) -> int:
    with get_session(engine) as session:
        if dry_run:
            return session.scalar(
                select(func.count()).select_from(User).where(column != 0)
            ) or 0
        result = session.execute(
            update(User)
            .where(column != 0)
            .values({column.key: 0})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


def run_daily_maintenance(
    engine: Engine,
    *,
    now: datetime | None = None,
    dry_run: bool = False,
    weekly_reset_weekday: int = 0,
    notifier: Notifier | None = None,
    inactive_hours: int = 24,
) -> MaintenanceSummary:
    """Run the nightly streak break-check and counter resets.

    Never raises for an individual user's failure; those end up in
    ``summary.errors`` as ``{"user_id": ..., "error": ...}``.
    """
    now = as_utc(now) or utc_now()
    summary = MaintenanceSummary(now=now.isoformat(), dry_run=dry_run)

    # --- Streak break-check, one transaction per user ---
    for ids in _user_id_batches(engine):
        for user_id in ids:
            summary.processed += 1
            try:
                if check_streak_break(engine, user_id, now=now, dry_run=dry_run):
                    summary.streaks_broken += 1
            except Exception as exc:
                logger.exception(
                    "Streak break-check failed for user=%s", user_id,
                    extra={"task": "daily_maintenance"},
                )
                summary.errors.append({"user_id": user_id, "error": str(exc)})

    # --- Counter resets ---
    summary.daily_reset = _reset_counter(engine, User.daily_xp, dry_run=dry_run)
    if now.weekday() == weekly_reset_weekday:
        summary.weekly_reset = _reset_counter(engine, User.weekly_xp, dry_run=dry_run)

    # --- Inactivity reminders ---
    if notifier is not None:
        if dry_run:
            logger.info(
                "Dry run: %d users would be reminded",
                len(find_inactive_users(engine, now=now, inactive_hours=inactive_hours)),
            )
        else:
            sent = send_inactivity_reminders(
                engine, notifier, now=now, inactive_hours=inactive_hours,
            )
            summary.reminders_sent = sent["sent"]
            summary.reminders_failed = sent["failed"]

    logger.info(
        "Daily maintenance complete — processed=%d broken=%d daily_reset=%d "
        "weekly_reset=%d reminders=%d errors=%d (dry_run=%s)",
        summary.processed, summary.streaks_broken, summary.daily_reset,
        summary.weekly_reset, summary.reminders_sent, len(summary.errors), dry_run,
    )
    return summary
