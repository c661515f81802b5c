from datetime import datetime, timedelta, timezone

from conftest import FakeCalendar, FlakyStore
from lifeos.dependencies.auth import get_auth_context, get_store
from lifeos.dependencies.services import get_calendar
from lifeos.main import app


def test_health(client):
    assert client.get("/").json()["status"] == "ok"


def test_task_lifecycle(client):
    created = client.post(
        "/tasks",
        json={"title": "File taxes", "priority": "high", "is_urgent": True, "is_important": True},
    )
    assert created.status_code == 201
    task = created.json()
    assert task["id"].startswith("local_tasks_")
    assert task["user_id"] == "user-1"

    listed = client.get("/tasks").json()
    assert listed[0]["task"]["id"] == task["id"]
    assert listed[0]["quadrant"] == "do-first"
    assert listed[0]["xp"]["total_xp"] == 200

    cleared = client.patch(f"/tasks/{task['id']}", json={"is_urgent": False, "due_date": None})
    assert cleared.status_code == 200
    assert cleared.json()["is_urgent"] is False

    toggled = client.post(f"/tasks/{task['id']}/toggle", json={"completed": True})
    assert toggled.json()["is_completed"] is True

    assert client.delete(f"/tasks/{task['id']}").status_code == 204
    assert client.delete(f"/tasks/{task['id']}").status_code == 204
    assert client.get("/tasks").json() == []


def test_matrix_hides_completed_by_default(client):
    client.post("/tasks", json={"title": "open", "is_important": True})
    client.post("/tasks", json={"title": "done", "is_important": True, "is_completed": True})

    matrix = client.get("/tasks/matrix").json()
    assert set(matrix) == {"do-first", "schedule", "delegate", "eliminate"}
    assert [t["title"] for t in matrix["schedule"]] == ["open"]

    everything = client.get("/tasks/matrix", params={"include_completed": True}).json()
    assert len(everything["schedule"]) == 2


def test_updating_a_missing_task_is_404(client):
    resp = client.patch("/tasks/nope", json={"title": "x"})
    assert resp.status_code == 404


def test_blank_title_is_rejected(client):
    assert client.post("/tasks", json={"title": "   "}).status_code == 422


def test_event_is_mirrored_to_google(client, calendar):
    start = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
    resp = client.post(
        "/events",
        json={"title": "Standup", "start": start.isoformat(), "end": (start + timedelta(minutes=15)).isoformat()},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["mirror"] == "mirrored"
    assert body["event"]["google_event_id"] == "g-1"
    assert calendar.created[0].title == "Standup"

    event_id = body["event"]["id"]
    patched = client.patch(f"/events/{event_id}", json={"title": "Daily standup"}).json()
    assert patched["mirror"] == "mirrored"
    assert calendar.updated[0][0] == "g-1"

    listed = client.get(
        "/events",
        params={"start": "2025-03-10T00:00:00+00:00", "end": "2025-03-10T23:59:59+00:00"},
    ).json()
    assert [e["title"] for e in listed] == ["Daily standup"]

    deleted = client.delete(f"/events/{event_id}").json()
    assert deleted["mirror"] == "mirrored"
    assert calendar.deleted == ["g-1"]
    assert client.delete(f"/events/{event_id}").status_code == 200


def test_event_survives_a_calendar_outage(client):
    app.dependency_overrides[get_calendar] = lambda: FakeCalendar(fail=True)
    start = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
    resp = client.post(
        "/events",
        json={"title": "Lunch", "start": start.isoformat(), "end": (start + timedelta(hours=1)).isoformat()},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["mirror"] == "failed"
    assert body["warning"]
    assert body["event"]["google_event_id"] is None


def test_event_end_before_start_is_rejected(client):
    resp = client.post(
        "/events",
        json={"title": "x", "start": "2025-03-10T10:00:00Z", "end": "2025-03-10T09:00:00Z"},
    )
    assert resp.status_code == 422


def test_dashboard_summarises_today(client):
    for title, priority in (("low one", "low"), ("high one", "high"), ("mid one", "medium")):
        client.post("/tasks", json={"title": title, "priority": priority})
    done = client.post("/tasks", json={"title": "finished"}).json()
    client.post(f"/tasks/{done['id']}/toggle", json={"completed": True})

    board = client.get("/dashboard").json()
    assert [t["title"] for t in board["pending_tasks"]] == ["high one", "mid one", "low one"]
    assert board["completed_today"] == 1
    assert board["progress"]["tasks_completed"] == 1
    assert board["today_events"] == []


def test_goals_and_profile_routes(client):
    goal = client.post("/goals", json={"title": "Run a 10k", "category": "health"}).json()
    task = client.post("/tasks", json={"title": "5k tempo", "goal_id": goal["id"]}).json()
    client.post(f"/tasks/{task['id']}/toggle", json={"completed": True})

    fetched = client.get(f"/goals/{goal['id']}").json()
    assert fetched["progress"] == 100
    assert fetched["linked_task_ids"] == [task["id"]]

    progress = client.get("/profile/progress").json()
    assert progress["xp"] == 120

    renamed = client.patch("/profile", json={"name": "Ada"}).json()
    assert renamed["name"] == "Ada"

    assert client.delete(f"/goals/{goal['id']}").status_code == 204
    assert client.get(f"/goals/{goal['id']}").status_code == 404


def test_timer_settings_route(client):
    assert client.get("/profile/timer-settings").json()["pomodoro_duration"] == 25
    saved = client.put("/profile/timer-settings", json={"pomodoro_duration": 45, "alarm_sound": "bird"})
    assert saved.json()["alarm_sound"] == "bird"
    assert client.put("/profile/timer-settings", json={"alarm_sound": "gong"}).status_code == 422


def test_anonymous_callers_cannot_touch_tasks(client, anonymous):
    app.dependency_overrides[get_auth_context] = lambda: anonymous
    assert client.get("/tasks").status_code == 401
    assert client.post("/tasks", json={"title": "x"}).status_code == 401


def test_anonymous_callers_keep_local_habits(client, anonymous):
    app.dependency_overrides[get_auth_context] = lambda: anonymous
    habit = client.post("/habits", json={"title": "Water", "emoji": "💧"})
    assert habit.status_code == 201
    habit_id = habit.json()["id"]

    toggled = client.post(f"/habits/{habit_id}/toggle").json()
    assert toggled == {"habit_id": habit_id, "completed": True}
    assert client.get("/habits").json()[0]["completed_today"] is True

    assert client.delete(f"/habits/{habit_id}").status_code == 204
    assert client.get("/habits").json() == []


def test_workout_routes(client):
    created = client.post("/workouts", json={"week_name": "Week 1"}).json()
    edited = client.patch(f"/workouts/{created['id']}", json={"note_content": "squats"}).json()
    assert edited["note_content"] == "squats"
    assert client.delete(f"/workouts/{created['id']}").status_code == 204
    assert client.get("/workouts").json() == []


def test_store_outage_maps_to_bad_gateway(client):
    app.dependency_overrides[get_store] = lambda: FlakyStore(failing={"insert"})
    resp = client.post("/tasks", json={"title": "x"})
    assert resp.status_code == 502
    assert "connection reset" in resp.json()["detail"]
