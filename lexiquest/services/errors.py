"""
lexiquest.services.errors — Domain Errors
==========================================

Raised by the service layer and translated to HTTP status codes by the
API routes.  Messages are safe to show to end users.
"""

from __future__ import annotations


class LexiQuestError(Exception):
    """Base class for domain errors raised by the XP core."""


class NotFoundError(LexiQuestError):
    """A user or question referenced by a call does not exist."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind.capitalize()} not found")


class DuplicateAwardError(LexiQuestError):
    """A concurrent call already recorded XP for this (user, question).

    Internal to :mod:`lexiquest.services.xp_service`; it aborts the unit of
    work so the second award is rolled back.
    """

    def __init__(self, user_id: str, question_id: str) -> None:
        self.user_id = user_id
        self.question_id = question_id
        super().__init__(f"XP already awarded for question {question_id}")
