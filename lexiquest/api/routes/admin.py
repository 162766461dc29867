"""
lexiquest.api.routes.admin — Admin operations (JWT-protected)
==============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import Engine

from lexiquest.api.deps import get_current_admin, get_engine
from lexiquest.services import streak_service
from lexiquest.services.errors import NotFoundError
from lexiquest.services.maintenance_service import run_daily_maintenance

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# POST /admin/maintenance/run
# ---------------------------------------------------------------------------
@router.post("/maintenance/run")
def run_maintenance(
    dry_run: bool = Query(True),
    admin: dict = Depends(get_current_admin),
    engine: Engine = Depends(get_engine),
):
    """Trigger the daily maintenance job by hand (dry run unless told otherwise)."""
    summary = run_daily_maintenance(engine, dry_run=dry_run)
    return {"status": "success", "data": summary.to_dict()}


# ---------------------------------------------------------------------------
# POST /admin/users/{user_id}/refresh-streak
# ---------------------------------------------------------------------------
@router.post("/users/{user_id}/refresh-streak")
def refresh_streak(
    user_id: str,
    admin: dict = Depends(get_current_admin),
    engine: Engine = Depends(get_engine),
):
    try:
        update = streak_service.refresh_streak(engine, user_id)
    except NotFoundError as exc:
        raise HTTPException(404, str(exc))
    return {
        "status": "success",
        "data": {
            "current_streak": update.current_streak,
            "longest_streak": update.longest_streak,
            "transition": update.transition.value,
            "applied": update.applied,
        },
    }
