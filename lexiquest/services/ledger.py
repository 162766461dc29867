"""
lexiquest.services.ledger — Award Idempotency Capability
=========================================================

Guards against crediting the same question twice when a client retries a
submission.  The guard is optional infrastructure, so it is modelled as a
capability with two variants:

* :class:`PersistentLedger` — backed by the ``xp_awards`` table.  If that
  table is missing (older schema, partial migration) lookups and inserts
  degrade to "no prior record" instead of failing the award.
* :class:`NullLedger` — never remembers anything; every award proceeds.

Both run inside the caller's session so the record commits or rolls back
together with the XP it describes.  Each statement runs in a SAVEPOINT so
an infrastructure error does not poison the outer transaction.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from lexiquest.database.models import XPAward
from lexiquest.services.errors import DuplicateAwardError

logger = logging.getLogger(__name__)

# Raised when the backing table is absent (SQLite / PostgreSQL respectively)
_INFRA_ERRORS = (OperationalError, ProgrammingError)


class AwardLedger(Protocol):
    def has(self, session: Session, user_id: str, question_id: str) -> bool: ...

    def record(
        self, session: Session, user_id: str, question_id: str, xp_awarded: int
    ) -> None: ...


class NullLedger:
    """Ledger variant used when no idempotency storage is available."""

    def has(self, session: Session, user_id: str, question_id: str) -> bool:
        return False

    def record(
        self, session: Session, user_id: str, question_id: str, xp_awarded: int
    ) -> None:
        return None


class PersistentLedger:
    """Ledger variant backed by ``xp_awards`` (unique on user + question)."""

    def has(self, session: Session, user_id: str, question_id: str) -> bool:
        try:
            with session.begin_nested():   # SAVEPOINT
                found = session.scalar(
                    select(XPAward.id).where(
                        XPAward.user_id == user_id,
                        XPAward.question_id == question_id,
                    )
                )
        except _INFRA_ERRORS as exc:
            logger.warning("Award ledger unavailable, skipping lookup: %s", exc)
            return False
        return found is not None

    def record(
        self, session: Session, user_id: str, question_id: str, xp_awarded: int
    ) -> None:
        """Insert the award record.

        Raises :class:`DuplicateAwardError` when a concurrent call already
        recorded the same pair; the caller rolls the whole award back.
        """
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(XPAward(
                    user_id=user_id,
                    question_id=question_id,
                    xp_awarded=xp_awarded,
                ))
                session.flush()
        except IntegrityError as exc:
            raise DuplicateAwardError(user_id, question_id) from exc
        except _INFRA_ERRORS as exc:
            logger.warning(
                "Award ledger unavailable, award for user=%s question=%s not recorded: %s",
                user_id, question_id, exc,
            )
