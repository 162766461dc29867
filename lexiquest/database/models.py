"""
lexiquest.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- users          — Learner profiles plus XP / streak counters
- questions      — Quiz reference data (read-only to the XP core)
- user_activity  — One row per user per UTC day (XP earned, questions done)
- xp_awards      — Idempotency ledger, one row per (user, question)
- reminder_log   — Durable dedup of sent reminder notifications

The XP / streak columns on ``users`` are owned by the XP core.  Other
subsystems (wallet, achievements) touch disjoint columns on the same row,
so every core write is a field-scoped ``UPDATE``, never a whole-row save.
"""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all LexiQuest ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class QuestionStatus(enum.StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ReminderType(enum.StrEnum):
    """Kinds of outbound nudges deduplicated by ``reminder_log``."""
    INACTIVITY = "INACTIVITY"


# ---------------------------------------------------------------------------
# Users — one row per learner
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str | None] = mapped_column(String(100), default=None)
    last_name: Mapped[str | None] = mapped_column(String(100), default=None)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    # XP counters; daily/weekly are zeroed by the maintenance job
    total_xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    daily_xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    weekly_xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Streak state: longest_streak >= current_streak after every write
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_streak_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    last_activity_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    activities: Mapped[list[UserActivity]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_users_total_xp_desc", "total_xp"),
        Index("ix_users_last_activity_at", "last_activity_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<User id={self.id} xp={self.total_xp} "
            f"streak={self.current_streak}/{self.longest_streak}>"
        )


# ---------------------------------------------------------------------------
# Questions — quiz reference data
# ---------------------------------------------------------------------------
class Question(Base):
    """A quiz question.

    ``game_metadata`` carries the XP inputs as
    ``{"pointsValue": int, "timeLimit": seconds, "difficultyMultiplier": float}``.
    """
    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    content: Mapped[dict | None] = mapped_column(JSONB, default=dict)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONB, default=dict)
    game_metadata: Mapped[dict] = mapped_column(JSONB, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=QuestionStatus.ACTIVE.value
    )
    created_by: Mapped[str | None] = mapped_column(String(36), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Question id={self.id} status={self.status}>"


# ---------------------------------------------------------------------------
# UserActivity — per-user, per-UTC-day aggregate
# ---------------------------------------------------------------------------
class UserActivity(Base):
    __tablename__ = "user_activity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    activity_date: Mapped[date] = mapped_column(Date, nullable=False)
    xp_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    questions_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    user: Mapped[User] = relationship(back_populates="activities")

    __table_args__ = (
        UniqueConstraint("user_id", "activity_date", name="uq_user_activity_user_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserActivity user={self.user_id} date={self.activity_date} "
            f"xp={self.xp_earned}>"
        )


# ---------------------------------------------------------------------------
# XPAward — idempotency ledger for question rewards
# ---------------------------------------------------------------------------
class XPAward(Base):
    __tablename__ = "xp_awards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[str] = mapped_column(String(36), nullable=False)
    xp_awarded: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    awarded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_xp_awards_user_question"),
    )

    def __repr__(self) -> str:
        return f"<XPAward user={self.user_id} question={self.question_id} xp={self.xp_awarded}>"


# ---------------------------------------------------------------------------
# ReminderLog — durable dedup of sent notifications
# ---------------------------------------------------------------------------
class ReminderLog(Base):
    __tablename__ = "reminder_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reminder_type: Mapped[str] = mapped_column(String(30), nullable=False)
    sent_on: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "reminder_type", "sent_on",
            name="uq_reminder_log_user_type_day",
        ),
    )

    def __repr__(self) -> str:
        return f"<ReminderLog user={self.user_id} type={self.reminder_type} on={self.sent_on}>"
