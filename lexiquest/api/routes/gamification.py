"""
lexiquest.api.routes.gamification — XP & streak endpoints (JWT-protected)
==========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine
from sqlalchemy.exc import OperationalError

from lexiquest.api.deps import get_current_user, get_engine, is_admin
from lexiquest.services import xp_service
from lexiquest.services.errors import NotFoundError

router = APIRouter(prefix="/gamification", tags=["gamification"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class AwardXPRequest(BaseModel):
    question_id: str = Field(min_length=1)
    is_correct: bool
    time_spent: int = Field(ge=0)
    time_limit: int = Field(ge=1)
    target_user_id: str | None = None  # admins only


# ---------------------------------------------------------------------------
# POST /gamification/award-xp
# ---------------------------------------------------------------------------
@router.post("/award-xp")
def award_xp(
    body: AwardXPRequest,
    user: dict = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    """Apply one answered question to the caller (or, for admins, a target user)."""
    user_id = body.target_user_id if body.target_user_id and is_admin(user) else user["sub"]
    try:
        result = xp_service.award_xp(
            engine,
            user_id,
            body.question_id,
            body.is_correct,
            body.time_spent,
            body.time_limit,
        )
    except NotFoundError as exc:
        raise HTTPException(404, str(exc))
    except OperationalError:
        raise HTTPException(503, "Storage temporarily unavailable, please retry")
    return {"status": "success", "data": result.to_dict()}


# ---------------------------------------------------------------------------
# GET /gamification/stats
# ---------------------------------------------------------------------------
@router.get("/stats")
def get_stats(
    user: dict = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    try:
        stats = xp_service.get_user_stats(engine, user["sub"])
    except NotFoundError as exc:
        raise HTTPException(404, str(exc))
    except OperationalError:
        raise HTTPException(503, "Storage temporarily unavailable, please retry")
    return {"status": "success", "data": stats}


# ---------------------------------------------------------------------------
# GET /gamification/streak-history
# ---------------------------------------------------------------------------
@router.get("/streak-history")
def get_streak_history(
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    """Daily XP / questions-completed rows for the caller, newest first."""
    try:
        rows = xp_service.get_activity_history(engine, user["sub"], limit=limit, offset=offset)
    except OperationalError:
        raise HTTPException(503, "Storage temporarily unavailable, please retry")
    return {"status": "success", "data": rows}
