"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of lexiquest.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

from datetime import UTC, datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, event  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from lexiquest.database.models import Base, Question, User  # noqa: E402

# Thursday noon; 2026-01-12 is the Monday of that week
NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)
TODAY = datetime(2026, 1, 15, tzinfo=UTC)
YESTERDAY = datetime(2026, 1, 14, tzinfo=UTC)

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all LexiQuest tables.

    Uses StaticPool so every session shares the same in-memory database.
    pysqlite's implicit transaction handling is switched off and BEGIN is
    emitted explicitly, otherwise SAVEPOINT rollbacks (ledger, activity
    upsert) do not behave as they do on PostgreSQL.
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_txn(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------
_seq = 0


def make_user(engine: Engine, **fields) -> str:
    """Insert a user and return its id."""
    global _seq
    _seq += 1
    fields.setdefault("email", f"learner{_seq}@example.com")
    with Session(engine) as session:
        user = User(**fields)
        session.add(user)
        session.commit()
        return user.id


def make_question(
    engine: Engine,
    points_value: float = 100,
    difficulty_multiplier: float = 1.0,
    time_limit: int | None = 30,
) -> str:
    """Insert a question with the given game metadata and return its id."""
    game = {"pointsValue": points_value, "difficultyMultiplier": difficulty_multiplier}
    if time_limit is not None:
        game["timeLimit"] = time_limit
    with Session(engine) as session:
        question = Question(
            content={"question": "Pick the past tense of 'go'", "correctAnswer": "went"},
            metadata_={"type": "multiple-choice", "englishLevel": "A2"},
            game_metadata=game,
        )
        session.add(question)
        session.commit()
        return question.id


def load_user(engine: Engine, user_id: str) -> User:
    with Session(engine, expire_on_commit=False) as session:
        user = session.get(User, user_id)
        session.expunge(user)
        return user


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------
def make_token(sub: str = "user-1", role: str = "learner") -> str:
    """Create a signed JWT.  Usable as both a fixture helper and a factory."""
    import jwt

    from lexiquest.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": sub, "role": role}, JWT_SECRET, algorithm=JWT_ALGORITHM)


@pytest.fixture
def admin_token():
    return make_token(sub="admin-1", role="admin")


@pytest.fixture
def client(db_engine):
    """FastAPI TestClient wired to the in-memory database."""
    from fastapi.testclient import TestClient

    # Take get_engine from the app module: the JWT startup tests reload
    # lexiquest.api.deps, which rebinds the name there.
    from lexiquest.api.main import app, get_engine

    app.dependency_overrides[get_engine] = lambda: db_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
