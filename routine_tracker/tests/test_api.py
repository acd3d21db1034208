"""
Tests for the HTTP API.
"""
import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from routine_tracker.config import AppConfig
from routine_tracker.exceptions import StreakConflictException
from routine_tracker.repositories.streak_repository import StreakRepository
from routine_tracker.main import create_app


HEADERS = {"X-API-Key": "test-key", "X-User-Id": "user-1"}


@pytest.fixture
def client(session_factory):
    config = AppConfig(cron_enabled=False, api_key="test-key")
    app = create_app(config, session_factory=session_factory, configure_logging=False)
    with TestClient(app) as client:
        yield client


def create_routine(client, **overrides):
    body = {"title": "Morning run", "frequency": "daily"}
    body.update(overrides)
    response = client.post("/api/routines", json=body, headers=HEADERS)
    assert response.status_code == 201
    return response.json()


class TestAuth:
    def test_health_needs_no_key(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "active"

    def test_missing_key(self, client):
        response = client.get("/api/routines", headers={"X-User-Id": "user-1"})

        assert response.status_code == 401

    def test_wrong_key(self, client):
        response = client.get("/api/routines", headers={"X-API-Key": "nope", "X-User-Id": "user-1"})

        assert response.status_code == 401

    def test_missing_user(self, client):
        response = client.get("/api/routines", headers={"X-API-Key": "test-key"})

        assert response.status_code == 401


class TestRoutineEndpoints:
    def test_create_and_list(self, client):
        routine = create_routine(client, frequency="weekly", weekdays=[5, 1])

        response = client.get("/api/routines", headers=HEADERS)

        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [routine["id"]]
        assert routine["weekdays"] == [1, 5]
        assert routine["user_id"] == "user-1"

    def test_invalid_rule_is_400(self, client):
        response = client.post(
            "/api/routines", json={"title": "Gym", "frequency": "weekly"}, headers=HEADERS
        )

        assert response.status_code == 400
        assert response.json()["field"] == "weekdays"

    def test_unknown_frequency_is_422(self, client):
        response = client.post(
            "/api/routines", json={"title": "Gym", "frequency": "monthly"}, headers=HEADERS
        )

        assert response.status_code == 422

    def test_update_and_delete(self, client):
        routine = create_routine(client)

        response = client.put(
            f"/api/routines/{routine['id']}", json={"title": "Evening run"}, headers=HEADERS
        )
        assert response.status_code == 200
        assert response.json()["title"] == "Evening run"

        response = client.delete(f"/api/routines/{routine['id']}", headers=HEADERS)
        assert response.status_code == 204

        response = client.get(f"/api/routines/{routine['id']}", headers=HEADERS)
        assert response.status_code == 404

    def test_other_user_cannot_see_routine(self, client):
        routine = create_routine(client)

        response = client.get(
            f"/api/routines/{routine['id']}",
            headers={"X-API-Key": "test-key", "X-User-Id": "user-2"}
        )

        assert response.status_code == 404


class TestCheckinFlow:
    """Generate placeholders, mark them done, read the streak"""

    def test_generate_mark_done_and_streak(self, client):
        routine = create_routine(client)

        for day in ("2025-11-10", "2025-11-11"):
            response = client.post(
                "/api/admin/generate-checkins", json={"target_date": day}, headers=HEADERS
            )
            assert response.status_code == 200
            assert response.json()["created"] == 1

        checkins = client.get(
            "/api/checkins", params={"from": "2025-11-10", "to": "2025-11-11"}, headers=HEADERS
        ).json()
        assert [c["status"] for c in checkins] == ["skipped", "skipped"]

        for checkin in reversed(checkins):
            response = client.patch(
                f"/api/checkins/{checkin['id']}/done", json={"note": "done"}, headers=HEADERS
            )
            assert response.status_code == 200
            assert response.json()["status"] == "done"

        streak = client.get(f"/api/streaks/{routine['id']}", headers=HEADERS).json()
        assert streak["current_streak"] == 2
        assert streak["best_streak"] == 2
        assert streak["last_checkin_date"] == "2025-11-11"

    def test_generate_twice_is_idempotent(self, client):
        create_routine(client)
        body = {"target_date": "2025-11-12"}

        client.post("/api/admin/generate-checkins", json=body, headers=HEADERS)
        response = client.post("/api/admin/generate-checkins", json=body, headers=HEADERS)

        assert response.json()["created"] == 0
        assert response.json()["skipped_existing"] == 1
        assert len(client.get("/api/checkins", headers=HEADERS).json()) == 1

    def test_mark_done_without_body(self, client):
        routine = create_routine(client)
        checkin = client.post(
            "/api/checkins",
            json={"routine_id": routine["id"], "checkin_date": "2025-11-10", "status": "skipped"},
            headers=HEADERS
        ).json()

        response = client.patch(f"/api/checkins/{checkin['id']}/done", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["status"] == "done"

    def test_duplicate_checkin_is_409(self, client):
        routine = create_routine(client)
        body = {"routine_id": routine["id"], "checkin_date": "2025-11-10", "status": "done"}

        assert client.post("/api/checkins", json=body, headers=HEADERS).status_code == 201
        assert client.post("/api/checkins", json=body, headers=HEADERS).status_code == 409

    def test_streak_failure_points_to_mark_done(self, client):
        routine = create_routine(client)
        body = {"routine_id": routine["id"], "checkin_date": "2025-11-10", "status": "done"}

        with patch.object(StreakRepository, "create", side_effect=StreakConflictException(routine["id"])):
            response = client.post("/api/checkins", json=body, headers=HEADERS)

        assert response.status_code == 503
        checkin_id = response.json()["checkin_id"]
        assert response.json()["retry"] == f"PATCH /api/checkins/{checkin_id}/done"

        response = client.patch(f"/api/checkins/{checkin_id}/done", headers=HEADERS)

        assert response.status_code == 200
        streak = client.get(f"/api/streaks/{routine['id']}", headers=HEADERS).json()
        assert streak["current_streak"] == 1

    def test_checkin_for_unknown_routine_is_404(self, client):
        body = {"routine_id": "missing", "checkin_date": "2025-11-10", "status": "done"}

        assert client.post("/api/checkins", json=body, headers=HEADERS).status_code == 404

    def test_unknown_checkin_is_404(self, client):
        assert client.patch("/api/checkins/missing/done", headers=HEADERS).status_code == 404
        assert client.delete("/api/checkins/missing", headers=HEADERS).status_code == 404

    def test_streak_not_found(self, client):
        assert client.get("/api/streaks/missing", headers=HEADERS).status_code == 404

    def test_streak_list_and_events(self, client):
        routine = create_routine(client)
        client.post(
            "/api/checkins",
            json={"routine_id": routine["id"], "checkin_date": "2025-11-10", "status": "done"},
            headers=HEADERS
        )

        streaks = client.get("/api/streaks", headers=HEADERS).json()
        events = client.get("/api/events", headers=HEADERS).json()

        assert [s["routine_id"] for s in streaks] == [routine["id"]]
        assert [e["type"] for e in events] == ["checkin_created"]

    def test_routine_checkins(self, client):
        first = create_routine(client, title="Run")
        create_routine(client, title="Read")
        client.post("/api/admin/generate-checkins", json={"target_date": "2025-11-10"}, headers=HEADERS)

        response = client.get(f"/api/routines/{first['id']}/checkins", headers=HEADERS)

        assert [c["routine_id"] for c in response.json()] == [first["id"]]


class TestSchedulerEndpoints:
    def test_scheduler_status(self, client):
        response = client.get("/api/admin/scheduler", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["enabled"] is False
        assert body["running"] is False
        assert body["fire_time"] == "00:05"
        assert body["jobs"] == []

    def test_status_reports_last_run(self, client):
        create_routine(client)
        client.post("/api/admin/generate-checkins", json={"target_date": "2025-11-10"}, headers=HEADERS)

        body = client.get("/api/admin/scheduler", headers=HEADERS).json()

        assert body["last_result"]["created"] == 1
        assert body["last_result"]["target_date"] == "2025-11-10"
