"""
lexiquest.jobs.__main__ — Entry point for ``python -m lexiquest.jobs``
======================================================================

The CRON side of the XP core.  A crontab (or any scheduler) invokes::

    5 0 * * *  python -m lexiquest.jobs daily-maintenance

Wiring:
1. Load .env (``DATABASE_URL``).
2. Load config.yaml (weekly reset day, optional reminder notifier).
3. Create the SQLAlchemy engine.
4. Run the maintenance job once and print its summary as JSON.

Flags::

    --dry            count what would change, write nothing
    --date ISO8601   pretend "now" is this instant (backfills, testing)
    --config PATH    alternate config.yaml
"""

from __future__ import annotations

import argparse
import json
import logging
import pkgutil
import sys
from datetime import datetime

from dotenv import load_dotenv

from lexiquest.config import load_config
from lexiquest.database.engine import create_db_engine
from lexiquest.engine.calendar import as_utc
from lexiquest.services.maintenance_service import run_daily_maintenance
from lexiquest.services.reminder_service import Notifier

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("lexiquest")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m lexiquest.jobs")
    sub = parser.add_subparsers(dest="command", required=True)

    daily = sub.add_parser("daily-maintenance", help="Break stale streaks and reset daily XP")
    daily.add_argument("--dry", action="store_true", help="Report only, no writes")
    daily.add_argument(
        "--date",
        type=datetime.fromisoformat,
        default=None,
        help="Run as if the current instant were this ISO-8601 timestamp (UTC if naive)",
    )
    daily.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    return parser


def resolve_notifier(path: str | None) -> Notifier | None:
    """Import the reminder transport named by *path* (``"pkg.module:func"``).

    Raises ``TypeError`` if the target is not callable; import errors
    propagate so a typo in config.yaml fails the run loudly.
    """
    if not path:
        return None
    notifier = pkgutil.resolve_name(path)
    if not callable(notifier):
        raise TypeError(f"reminder_notifier {path!r} is not callable")
    return notifier


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    load_dotenv()
    cfg = load_config(args.config)
    notifier = resolve_notifier(cfg.reminder_notifier)
    engine = create_db_engine()
    logger.info("Running daily maintenance for %s (dry_run=%s)", cfg.platform_name, args.dry)

    try:
        summary = run_daily_maintenance(
            engine,
            now=as_utc(args.date),
            dry_run=args.dry,
            weekly_reset_weekday=cfg.weekly_reset_weekday,
            notifier=notifier,
            inactive_hours=cfg.reminder_inactive_hours,
        )
    finally:
        engine.dispose()

    print(json.dumps(summary.to_dict(), indent=2))
    return 1 if summary.errors else 0


if __name__ == "__main__":
    sys.exit(main())
