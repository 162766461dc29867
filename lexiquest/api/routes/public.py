"""
lexiquest.api.routes.public — Read-only public endpoints
=========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Engine

from lexiquest.api.deps import get_engine
from lexiquest.constants import LEVEL_THRESHOLDS
from lexiquest.services import xp_service

router = APIRouter(tags=["public"])


# ---------------------------------------------------------------------------
# GET /leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard")
def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    engine: Engine = Depends(get_engine),
):
    """Users ranked by total XP."""
    return {
        "status": "success",
        "data": xp_service.get_leaderboard(engine, limit=limit, offset=offset),
    }


# ---------------------------------------------------------------------------
# GET /levels
# ---------------------------------------------------------------------------
@router.get("/levels")
def get_levels():
    """The level table, so clients can draw progress bars."""
    return {
        "levels": [
            {"level": i, "min_xp": xp} for i, xp in enumerate(LEVEL_THRESHOLDS)
        ]
    }
