"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Integration tests for the gamification, public and admin API routes using
the FastAPI TestClient against the in-memory database.

These tests verify:
- Auth guards on user and admin endpoints
- Response envelopes and status codes
- Health endpoint availability
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from conftest import make_question, make_token, make_user
from sqlalchemy.exc import OperationalError


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _award_body(question_id: str, **overrides) -> dict:
    body = {"question_id": question_id, "is_correct": True, "time_spent": 5, "time_limit": 30}
    body.update(overrides)
    return body


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Auth guards
# ===========================================================================
class TestAuthGuards:
    USER_ENDPOINTS = [
        ("post", "/api/gamification/award-xp"),
        ("get", "/api/gamification/stats"),
        ("get", "/api/gamification/streak-history"),
    ]

    ADMIN_ENDPOINTS = [
        "/api/admin/maintenance/run",
        "/api/admin/users/someone/refresh-streak",
    ]

    @pytest.mark.parametrize(("method", "endpoint"), USER_ENDPOINTS)
    def test_rejects_missing_token(self, client, method, endpoint):
        resp = getattr(client, method)(endpoint)
        assert resp.status_code == 401

    @pytest.mark.parametrize(("method", "endpoint"), USER_ENDPOINTS)
    def test_rejects_garbage_token(self, client, method, endpoint):
        resp = getattr(client, method)(endpoint, headers=_auth("not-a-jwt"))
        assert resp.status_code == 401

    @pytest.mark.parametrize("endpoint", ADMIN_ENDPOINTS)
    def test_admin_rejects_learner(self, client, endpoint):
        resp = client.post(endpoint, headers=_auth(make_token(sub="u-1", role="learner")))
        assert resp.status_code == 403

    @pytest.mark.parametrize("endpoint", ADMIN_ENDPOINTS)
    def test_admin_rejects_missing_token(self, client, endpoint):
        assert client.post(endpoint).status_code == 401


# ===========================================================================
# POST /api/gamification/award-xp
# ===========================================================================
class TestAwardXPRoute:
    def test_awards_xp_to_caller(self, client, db_engine):
        uid = make_user(db_engine)
        qid = make_question(db_engine, points_value=100, difficulty_multiplier=1.5)

        resp = client.post(
            "/api/gamification/award-xp",
            json=_award_body(qid),
            headers=_auth(make_token(sub=uid)),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "success"
        assert body["data"]["xp_awarded"] == 180
        assert body["data"]["current_streak"] == 1
        assert body["data"]["level_up"] is True

    def test_retry_is_idempotent(self, client, db_engine):
        uid = make_user(db_engine)
        qid = make_question(db_engine)
        headers = _auth(make_token(sub=uid))

        client.post("/api/gamification/award-xp", json=_award_body(qid), headers=headers)
        resp = client.post("/api/gamification/award-xp", json=_award_body(qid), headers=headers)

        assert resp.json()["data"]["xp_awarded"] == 0
        assert resp.json()["data"]["duplicate"] is True

    def test_unknown_question_is_404(self, client, db_engine):
        uid = make_user(db_engine)
        resp = client.post(
            "/api/gamification/award-xp",
            json=_award_body("missing"),
            headers=_auth(make_token(sub=uid)),
        )
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Question not found"

    def test_unknown_user_is_404(self, client, db_engine):
        qid = make_question(db_engine)
        resp = client.post(
            "/api/gamification/award-xp",
            json=_award_body(qid),
            headers=_auth(make_token(sub="ghost")),
        )
        assert resp.status_code == 404
        assert resp.json()["detail"] == "User not found"

    def test_rejects_invalid_body(self, client, db_engine):
        uid = make_user(db_engine)
        resp = client.post(
            "/api/gamification/award-xp",
            json=_award_body("q", time_limit=0),
            headers=_auth(make_token(sub=uid)),
        )
        assert resp.status_code == 422

    def test_target_user_ignored_for_learners(self, client, db_engine):
        caller = make_user(db_engine)
        other = make_user(db_engine)
        qid = make_question(db_engine, points_value=10)

        client.post(
            "/api/gamification/award-xp",
            json=_award_body(qid, target_user_id=other, time_spent=30),
            headers=_auth(make_token(sub=caller)),
        )

        stats = client.get("/api/gamification/stats", headers=_auth(make_token(sub=other)))
        assert stats.json()["data"]["total_xp"] == 0

    def test_admin_can_award_for_target_user(self, client, db_engine, admin_token):
        target = make_user(db_engine)
        qid = make_question(db_engine, points_value=10)

        resp = client.post(
            "/api/gamification/award-xp",
            json=_award_body(qid, target_user_id=target, time_spent=30),
            headers=_auth(admin_token),
        )

        assert resp.status_code == 200
        assert resp.json()["data"]["total_xp"] == 10


# ===========================================================================
# Read endpoints
# ===========================================================================
class TestReadRoutes:
    @pytest.mark.parametrize(
        ("target", "endpoint"),
        [
            ("get_user_stats", "/api/gamification/stats"),
            ("get_activity_history", "/api/gamification/streak-history"),
        ],
    )
    def test_storage_outage_is_503(self, client, target, endpoint):
        outage = OperationalError("SELECT 1", {}, ConnectionRefusedError("db down"))
        with patch(f"lexiquest.services.xp_service.{target}", side_effect=outage):
            resp = client.get(endpoint, headers=_auth(make_token(sub="u-1")))

        assert resp.status_code == 503
        assert resp.json()["detail"] == "Storage temporarily unavailable, please retry"

    def test_stats(self, client, db_engine):
        uid = make_user(db_engine, total_xp=350, current_streak=2, longest_streak=5)

        resp = client.get("/api/gamification/stats", headers=_auth(make_token(sub=uid)))

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["level"] == 2
        assert data["longest_streak"] == 5

    def test_stats_unknown_user_is_404(self, client):
        resp = client.get("/api/gamification/stats", headers=_auth(make_token(sub="ghost")))
        assert resp.status_code == 404

    def test_streak_history(self, client, db_engine):
        uid = make_user(db_engine)
        qid = make_question(db_engine)
        headers = _auth(make_token(sub=uid))
        client.post("/api/gamification/award-xp", json=_award_body(qid), headers=headers)

        resp = client.get("/api/gamification/streak-history", headers=headers)

        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 1
        assert resp.json()["data"][0]["questions_completed"] == 1

    def test_leaderboard_is_public(self, client, db_engine):
        make_user(db_engine, total_xp=10)
        top = make_user(db_engine, total_xp=900)

        resp = client.get("/api/leaderboard?limit=5")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data[0]["user_id"] == top
        assert len(data) == 2

    def test_leaderboard_limit_is_bounded(self, client):
        assert client.get("/api/leaderboard?limit=500").status_code == 422

    def test_levels(self, client):
        resp = client.get("/api/levels")
        levels = resp.json()["levels"]
        assert levels[0] == {"level": 0, "min_xp": 0}
        assert levels[1] == {"level": 1, "min_xp": 100}


# ===========================================================================
# Admin endpoints
# ===========================================================================
class TestAdminRoutes:
    def test_maintenance_defaults_to_dry_run(self, client, db_engine, admin_token):
        make_user(db_engine, daily_xp=50)

        resp = client.post("/api/admin/maintenance/run", headers=_auth(admin_token))

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["dry_run"] is True
        assert data["daily_reset"] == 1

    def test_refresh_streak(self, client, db_engine, admin_token):
        uid = make_user(db_engine)

        resp = client.post(f"/api/admin/users/{uid}/refresh-streak", headers=_auth(admin_token))

        assert resp.status_code == 200
        assert resp.json()["data"]["current_streak"] == 1

    def test_refresh_streak_unknown_user(self, client, admin_token):
        resp = client.post("/api/admin/users/ghost/refresh-streak", headers=_auth(admin_token))
        assert resp.status_code == 404
