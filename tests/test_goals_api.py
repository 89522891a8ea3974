from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.deps import get_db
from app.db.models.agent_action_log import AgentActionLog
from app.db.models.focus_session import FocusSession
from app.db.models.goal import Goal
from app.db.models.task import Task
from app.db.models.user import User
from app.main import app


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    Goal.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)
    AgentActionLog.__table__.create(bind=engine)
    FocusSession.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def test_create_goal_registers_user(client):
    test_client, session_factory = client
    user_id = uuid4()

    resp = test_client.post(
        "/goals",
        json={"user_id": str(user_id), "title": "  Learn Spanish ", "target_date": "2026-06-01T00:00:00+00:00"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["title"] == "Learn Spanish"
    assert body["progress"] == 0
    assert body["status"] == "active"
    assert body["category"] == "Other"
    with session_factory() as db:
        assert db.get(User, user_id) is not None


def test_list_goals_is_scoped_to_user(client):
    test_client, _ = client
    user_id = uuid4()
    test_client.post("/goals", json={"user_id": str(user_id), "title": "One"})
    test_client.post("/goals", json={"user_id": str(user_id), "title": "Two"})
    test_client.post("/goals", json={"user_id": str(uuid4()), "title": "Someone else"})

    resp = test_client.get("/goals", params={"user_id": str(user_id)})

    assert resp.status_code == 200
    assert {goal["title"] for goal in resp.json()} == {"One", "Two"}


def test_progress_is_share_of_completed_tasks(client):
    test_client, _ = client
    user_id = uuid4()
    goal_id = UUID(test_client.post("/goals", json={"user_id": str(user_id), "title": "Ship"}).json()["id"])
    task_ids = []
    for title in ("a", "b", "c"):
        resp = test_client.post("/tasks", json={"user_id": str(user_id), "goal_id": str(goal_id), "title": title})
        task_ids.append(resp.json()["id"])
    test_client.post(f"/tasks/{task_ids[0]}/toggle", json={"user_id": str(user_id)})

    resp = test_client.post(f"/goals/{goal_id}/progress", params={"user_id": str(user_id)})

    assert resp.status_code == 200
    assert resp.json()["progress"] == 33
    listed = test_client.get("/goals", params={"user_id": str(user_id)}).json()
    assert listed[0]["progress"] == 33


def test_progress_without_tasks_is_zero(client):
    test_client, _ = client
    user_id = uuid4()
    goal_id = test_client.post("/goals", json={"user_id": str(user_id), "title": "Empty"}).json()["id"]

    resp = test_client.post(f"/goals/{goal_id}/progress", params={"user_id": str(user_id)})

    assert resp.json()["progress"] == 0


def test_progress_checks_ownership(client):
    test_client, _ = client
    goal_id = test_client.post("/goals", json={"user_id": str(uuid4()), "title": "Mine"}).json()["id"]

    forbidden = test_client.post(f"/goals/{goal_id}/progress", params={"user_id": str(uuid4())})
    missing = test_client.post(f"/goals/{uuid4()}/progress", params={"user_id": str(uuid4())})

    assert forbidden.status_code == 403
    assert missing.status_code == 404


def test_patch_goal_updates_only_sent_fields(client):
    test_client, _ = client
    user_id = uuid4()
    created = test_client.post(
        "/goals",
        json={"user_id": str(user_id), "title": "Thesis", "category": "Study", "color": "#22c55e"},
    ).json()

    resp = test_client.patch(
        f"/goals/{created['id']}",
        json={"user_id": str(user_id), "status": "paused", "title": " Thesis draft ", "color": None},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "paused"
    assert body["title"] == "Thesis draft"
    assert body["category"] == "Study"
    assert body["color"] == "#22c55e"


def test_patch_goal_rejects_bad_values_and_foreign_users(client):
    test_client, _ = client
    user_id = uuid4()
    goal_id = test_client.post("/goals", json={"user_id": str(user_id), "title": "Thesis"}).json()["id"]

    invalid = test_client.patch(f"/goals/{goal_id}", json={"user_id": str(user_id), "status": "abandoned"})
    too_much = test_client.patch(f"/goals/{goal_id}", json={"user_id": str(user_id), "progress": 120})
    foreign = test_client.patch(f"/goals/{goal_id}", json={"user_id": str(uuid4()), "status": "paused"})

    assert invalid.status_code == 422
    assert too_much.status_code == 422
    assert foreign.status_code == 403


def test_delete_goal_removes_its_tasks_and_sessions(client):
    test_client, session_factory = client
    user_id = uuid4()
    goal_id = test_client.post("/goals", json={"user_id": str(user_id), "title": "Drop me"}).json()["id"]
    other_goal_id = test_client.post("/goals", json={"user_id": str(user_id), "title": "Keep me"}).json()["id"]
    doomed = test_client.post(
        "/tasks", json={"user_id": str(user_id), "goal_id": goal_id, "title": "Doomed"}
    ).json()["id"]
    kept = test_client.post(
        "/tasks", json={"user_id": str(user_id), "goal_id": other_goal_id, "title": "Kept"}
    ).json()["id"]
    logged = test_client.post(
        "/focus/sessions",
        json={
            "user_id": str(user_id),
            "task_id": doomed,
            "started_at": "2026-03-10T09:00:00+00:00",
            "ended_at": "2026-03-10T09:25:00+00:00",
        },
    )
    assert logged.status_code == 201

    resp = test_client.delete(f"/goals/{goal_id}", params={"user_id": str(user_id)})

    assert resp.status_code == 204
    with session_factory() as db:
        assert db.get(Goal, UUID(goal_id)) is None
        assert db.get(Task, UUID(doomed)) is None
        assert db.get(Task, UUID(kept)) is not None
        assert db.query(FocusSession).count() == 0
    listed = test_client.get("/goals", params={"user_id": str(user_id)}).json()
    assert [goal["title"] for goal in listed] == ["Keep me"]


def test_delete_goal_checks_ownership(client):
    test_client, _ = client
    goal_id = test_client.post("/goals", json={"user_id": str(uuid4()), "title": "Mine"}).json()["id"]

    forbidden = test_client.delete(f"/goals/{goal_id}", params={"user_id": str(uuid4())})
    missing = test_client.delete(f"/goals/{uuid4()}", params={"user_id": str(uuid4())})

    assert forbidden.status_code == 403
    assert missing.status_code == 404
