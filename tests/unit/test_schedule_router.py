"""Unit tests for the schedule HTTP router."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.core.errors import ScheduleError
from src.interface.schedule_router import router, schedule_error_handler
from src.modules.schedule.service import ScheduleController


@pytest.fixture
def client(patched_db, fixed_clock):
    app = FastAPI()
    app.include_router(router)
    app.add_exception_handler(ScheduleError, schedule_error_handler)
    app.state.schedule_controller = ScheduleController(user_id="user1", clock=fixed_clock, cooldown_seconds=0)
    return TestClient(app)


def _create(client, **overrides) -> dict:
    payload = {
        "title": "Dentist",
        "scheduled_date": "2024-01-20",
        "scheduled_time": "14:00",
        "repeat_frequency": "none",
        "notification_enabled": False,
    }
    payload.update(overrides)
    response = client.post("/schedule/tasks", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.unit
class TestTaskRoutes:
    """Tests for the task CRUD and lifecycle routes."""

    def test_create_and_get(self, client):
        created = _create(client)

        response = client.get(f"/schedule/tasks/{created['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Dentist"
        assert body["scheduled_date"] == "2024-01-20"
        assert body["scheduled_time"] == "14:00"
        assert body["status"] == "upcoming"

    def test_past_date_returns_422_with_verbatim_message(self, client):
        response = client.post(
            "/schedule/tasks",
            json={"title": "Dentist", "scheduled_date": "2024-01-14", "notification_enabled": False},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "ERR_VALIDATION:PAST_DATE"
        assert body["message"] == "Cannot schedule events for past dates. Please select today or a future date."

    def test_unknown_task_returns_404(self, client):
        response = client.get("/schedule/tasks/9999")

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_TASK_NOT_FOUND"

    def test_patch_updates_fields(self, client):
        created = _create(client)

        response = client.patch(f"/schedule/tasks/{created['id']}", json={"title": "Orthodontist"})

        assert response.status_code == 200
        assert response.json()["title"] == "Orthodontist"
        assert response.json()["scheduled_time"] == "14:00"

    def test_complete_and_reset(self, client):
        created = _create(client)

        completed = client.post(f"/schedule/tasks/{created['id']}/complete")
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"

        again = client.post(f"/schedule/tasks/{created['id']}/complete")
        assert again.status_code == 409
        assert again.json()["code"] == "ERR_INVALID_STATE_TRANSITION"

        reset = client.post(f"/schedule/tasks/{created['id']}/reset")
        assert reset.status_code == 200
        assert reset.json()["status"] == "upcoming"
        assert reset.json()["scheduled_date"] == "2024-01-20"

    def test_virtual_key_returns_400(self, client):
        created = _create(client, repeat_frequency="weekly")

        response = client.post(f"/schedule/tasks/{created['id']}-recurring-2024-01-27/complete")

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_VIRTUAL_OCCURRENCE"

    def test_delete(self, client):
        created = _create(client)

        response = client.delete(f"/schedule/tasks/{created['id']}")

        assert response.status_code == 204
        assert client.get(f"/schedule/tasks/{created['id']}").status_code == 404

    def test_list_by_status(self, client):
        first = _create(client, title="First")
        second = _create(client, title="Second", scheduled_date="2024-01-21")
        client.post(f"/schedule/tasks/{second['id']}/complete")

        everything = client.get("/schedule/tasks").json()
        upcoming = client.get("/schedule/tasks", params={"status": "upcoming"}).json()

        assert [task["id"] for task in everything] == [first["id"], second["id"]]
        assert [task["id"] for task in upcoming] == [first["id"]]

    def test_occurrences(self, client):
        created = _create(client, scheduled_date="2024-01-15", scheduled_time=None, repeat_frequency="weekly", due_date="2024-02-05")

        response = client.get(f"/schedule/tasks/{created['id']}/occurrences")

        assert response.status_code == 200
        assert response.json()["dates"] == ["2024-01-15", "2024-01-22", "2024-01-29", "2024-02-05"]


@pytest.mark.unit
class TestCalendarRoutes:
    """Tests for the calendar and sweep routes."""

    def test_month_summary(self, client):
        _create(client, scheduled_date="2024-01-15", scheduled_time=None, repeat_frequency="weekly", due_date="2024-02-05")

        response = client.get("/schedule/calendar/2024/2")

        assert response.status_code == 200
        days = response.json()["days"]
        assert [day["date"] for day in days] == ["2024-02-05"]
        assert days[0]["direct_count"] == 1
        assert days[0]["due_count"] == 1
        assert days[0]["total"] == 2

    def test_invalid_month(self, client):
        assert client.get("/schedule/calendar/2024/13").status_code == 422

    def test_day_detail(self, client):
        created = _create(client, scheduled_date="2024-01-15", scheduled_time=None, repeat_frequency="weekly")

        response = client.get("/schedule/calendar/day/2024-01-22")

        assert response.status_code == 200
        body = response.json()
        assert body["direct_count"] == 1
        assert body["occurrences"][0]["key"] == f"{created['id']}-recurring-2024-01-22"
        assert body["occurrences"][0]["kind"] == "virtual"

    def test_sweep(self, client, patched_db):
        record = {
            "user_id": "user1",
            "title": "Old",
            "scheduled_date": "2024-01-01",
            "repeat_frequency": "none",
            "notification_enabled": False,
            "status": "upcoming",
        }
        patched_db._collections.setdefault("scheduled_tasks", {})["1"] = {
            "id": "1",
            "created": "2024-01-01T00:00:00Z",
            "updated": "2024-01-01T00:00:00Z",
            **record,
        }

        assert client.post("/schedule/sweep").json() == {"transitioned": 1}
        assert client.post("/schedule/sweep").json() == {"transitioned": 0}
        assert client.get("/schedule/stats").json()["missed"] == 1
