"""
lexiquest.engine.calendar — UTC Day-Boundary Arithmetic
========================================================

Pure helpers, no I/O.  The streak engine, the activity-ledger key and the
maintenance job all agree on what "today" means by going through here.

Values read back from SQLite come out naive; they are always stored as UTC,
so :func:`as_utc` treats naive datetimes as UTC.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

ONE_DAY = timedelta(days=1)

# Tolerance beyond "exactly yesterday" before a streak counts as broken
STREAK_GRACE_PERIOD = timedelta(hours=26)


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize *value* to an aware UTC datetime (``None`` passes through)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def start_of_utc_day(moment: datetime | None = None) -> datetime:
    """UTC midnight of *moment* (defaults to now)."""
    moment = as_utc(moment) or utc_now()
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def utc_day(moment: datetime | None = None) -> date:
    """Calendar date (UTC) of *moment*; the key for per-day ledgers."""
    return start_of_utc_day(moment).date()


def day_bounds(moment: datetime | None = None) -> tuple[datetime, datetime]:
    """``(today, yesterday)`` as UTC midnights for *moment*."""
    today = start_of_utc_day(moment)
    return today, today - ONE_DAY
