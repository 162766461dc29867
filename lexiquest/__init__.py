"""
LexiQuest — XP & Streak Core for a Gamified English-Learning Platform
======================================================================
Turns answered quiz questions into XP, keeps daily learning streaks
honest under concurrent submissions, and runs the nightly maintenance
pass that breaks stale streaks and resets the daily counters.

Package layout::

    lexiquest/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Level table + leveling helpers
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helper
    │   └── models.py      # ORM models (users, questions, ledgers)
    ├── engine/
    │   ├── calendar.py    # UTC day-boundary arithmetic
    │   ├── reward.py      # Pure XP calculation pipeline
    │   └── streak.py      # Pure streak day classification
    ├── services/
    │   ├── streak_service.py      # Race-safe streak refresh / break-check
    │   ├── xp_service.py          # Atomic XP award + read models
    │   ├── ledger.py              # Award idempotency capability
    │   ├── reminder_service.py    # Durable reminder dedup
    │   └── maintenance_service.py # Daily maintenance job
    ├── jobs/
    │   └── __main__.py    # CLI entry for the CRON trigger
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine / JWT dependencies
        └── routes/        # Gamification, public and admin endpoints
"""

__version__ = "0.1.0"
