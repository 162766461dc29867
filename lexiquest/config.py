"""
lexiquest.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for **infrastructure-only** settings (platform
identity, API port, maintenance scheduling knobs).  Secrets such as
``DATABASE_URL`` and ``JWT_SECRET`` stay in the environment (``.env``),
and the gameplay arithmetic (level table, multipliers, grace period) is
fixed in :mod:`lexiquest.constants` and :mod:`lexiquest.engine`.

Usage::

    from lexiquest.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.platform_name)     # "LexiQuest"
    print(cfg.weekly_reset_weekday)  # 0 (Monday)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LexiQuestConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    platform_name: str

    # API
    api_port: int

    # Maintenance job
    weekly_reset_weekday: int = 0  # datetime.weekday(): Monday == 0
    reminder_notifier: str | None = None  # "package.module:callable"
    reminder_inactive_hours: int = 24


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> LexiQuestConfig:
    """Read *path* and return a :class:`LexiQuestConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If ``weekly_reset_weekday`` is outside ``0..6`` or
        ``reminder_inactive_hours`` is below 1.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    maintenance: dict = raw.get("maintenance") or {}
    weekday = int(maintenance.get("weekly_reset_weekday", 0))
    if not 0 <= weekday <= 6:
        raise ValueError(
            f"maintenance.weekly_reset_weekday must be 0..6, got {weekday}"
        )

    inactive_hours = int(maintenance.get("reminder_inactive_hours", 24))
    if inactive_hours < 1:
        raise ValueError(
            f"maintenance.reminder_inactive_hours must be >= 1, got {inactive_hours}"
        )

    return LexiQuestConfig(
        platform_name=raw["platform_name"],
        api_port=int(raw["api_port"]),
        weekly_reset_weekday=weekday,
        reminder_notifier=maintenance.get("reminder_notifier") or None,
        reminder_inactive_hours=inactive_hours,
    )
