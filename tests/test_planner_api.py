from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.deps import get_db
from app.db.models.agent_action_log import AgentActionLog
from app.db.models.goal import Goal
from app.db.models.task import Task
from app.db.models.user import User
from app.main import app
from app.scheduling.clock import ensure_utc

TODAY = datetime(2026, 3, 10, tzinfo=timezone.utc)


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    Goal.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)
    AgentActionLog.__table__.create(bind=engine)

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


def _seed(session_factory, tasks):
    """Create a user and goal, then one task per (title, priority, minutes, due) tuple."""
    with session_factory() as db:
        user_id = uuid4()
        db.add(User(id=user_id))
        db.flush()
        goal = Goal(user_id=user_id, title="Finals")
        db.add(goal)
        db.flush()
        ids = {}
        for title, priority, minutes, due in tasks:
            task = Task(
                user_id=user_id,
                goal_id=goal.id,
                title=title,
                priority=priority,
                estimated_time=minutes,
                due_date=due,
            )
            db.add(task)
            db.flush()
            ids[title] = task.id
        db.commit()
        return user_id, ids


def _suggest(test_client, user_id, minutes):
    return test_client.get(
        "/planner/suggestion",
        params={
            "user_id": str(user_id),
            "available_minutes": minutes,
            "today_start": TODAY.isoformat(),
        },
    )


def test_suggestion_buckets_today_and_overdue(client):
    test_client, session_factory = client
    user_id, _ = _seed(
        session_factory,
        [
            ("A", "high", 60, TODAY + timedelta(hours=8)),
            ("B", "high", 90, TODAY + timedelta(hours=9)),
            ("C", "low", 30, TODAY - timedelta(days=2)),
            ("Later", "high", 15, TODAY + timedelta(days=3)),
        ],
    )

    resp = _suggest(test_client, user_id, 120)

    assert resp.status_code == 200
    body = resp.json()
    assert [task["title"] for task in body["planned"]] == ["A", "C"]
    assert [task["title"] for task in body["overflow"]] == ["B"]
    assert body["stats"] == {
        "total_tasks": 3,
        "total_minutes": 180,
        "planned_minutes": 90,
        "overflow_minutes": 90,
    }
    assert body["request_id"]


def test_suggestion_is_read_only(client):
    test_client, session_factory = client
    due = TODAY + timedelta(hours=10)
    user_id, ids = _seed(session_factory, [("A", "medium", 30, due)])

    _suggest(test_client, user_id, 0)

    with session_factory() as db:
        assert ensure_utc(db.get(Task, ids["A"]).due_date) == due
        assert db.query(AgentActionLog).count() == 0


def test_suggestion_rejects_negative_minutes(client):
    test_client, _ = client

    resp = _suggest(test_client, uuid4(), -5)

    assert resp.status_code == 422


def test_commit_writes_dates_and_logs(client):
    test_client, session_factory = client
    user_id, ids = _seed(
        session_factory,
        [
            ("A", "high", 60, TODAY - timedelta(days=1)),
            ("B", "medium", 30, TODAY + timedelta(hours=9)),
        ],
    )
    today_date = TODAY + timedelta(hours=12)
    tomorrow_date = TODAY + timedelta(days=1, hours=12)

    resp = test_client.post(
        "/planner/commit",
        json={
            "user_id": str(user_id),
            "today_ids": [str(ids["A"])],
            "tomorrow_ids": [str(ids["B"])],
            "today_date": today_date.isoformat(),
            "tomorrow_date": tomorrow_date.isoformat(),
        },
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["today_count"] == 1
    assert body["tomorrow_count"] == 1
    assert body["log_id"]

    with session_factory() as db:
        assert ensure_utc(db.get(Task, ids["A"]).due_date) == today_date
        assert ensure_utc(db.get(Task, ids["B"]).due_date) == tomorrow_date
        log = db.get(AgentActionLog, UUID(body["log_id"]))
        assert log.action_type == "day_plan_committed"
        assert log.action_payload["tomorrow_ids"] == [str(ids["B"])]


def test_commit_with_empty_lists_is_a_no_op(client):
    test_client, session_factory = client
    user_id, _ = _seed(session_factory, [])

    resp = test_client.post(
        "/planner/commit",
        json={
            "user_id": str(user_id),
            "today_ids": [],
            "tomorrow_ids": [],
            "today_date": TODAY.isoformat(),
            "tomorrow_date": (TODAY + timedelta(days=1)).isoformat(),
        },
    )

    assert resp.status_code == 200
    assert resp.json()["log_id"] is None


def test_commit_with_stale_id_returns_404_and_writes_nothing(client):
    test_client, session_factory = client
    original_due = TODAY + timedelta(hours=9)
    user_id, ids = _seed(session_factory, [("A", "high", 60, original_due)])

    resp = test_client.post(
        "/planner/commit",
        json={
            "user_id": str(user_id),
            "today_ids": [str(ids["A"])],
            "tomorrow_ids": [str(uuid4())],
            "today_date": (TODAY + timedelta(hours=15)).isoformat(),
            "tomorrow_date": (TODAY + timedelta(days=1)).isoformat(),
        },
    )

    assert resp.status_code == 404
    with session_factory() as db:
        assert ensure_utc(db.get(Task, ids["A"]).due_date) == original_due
        assert db.query(AgentActionLog).count() == 0


def test_commit_rejects_tasks_owned_by_another_user(client):
    test_client, session_factory = client
    _, ids = _seed(session_factory, [("A", "high", 60, TODAY)])
    intruder, _ = _seed(session_factory, [])

    resp = test_client.post(
        "/planner/commit",
        json={
            "user_id": str(intruder),
            "today_ids": [str(ids["A"])],
            "tomorrow_ids": [],
            "today_date": TODAY.isoformat(),
            "tomorrow_date": (TODAY + timedelta(days=1)).isoformat(),
        },
    )

    assert resp.status_code == 404


def test_move_tasks_to_one_date(client):
    test_client, session_factory = client
    user_id, ids = _seed(
        session_factory,
        [
            ("A", "low", 30, TODAY - timedelta(days=3)),
            ("B", "low", 30, TODAY - timedelta(days=2)),
        ],
    )
    target = TODAY + timedelta(days=4, hours=9)

    resp = test_client.post(
        "/planner/move",
        json={
            "user_id": str(user_id),
            "task_ids": [str(ids["A"]), str(ids["B"])],
            "target_date": target.isoformat(),
        },
    )

    assert resp.status_code == 200
    assert resp.json()["moved"] == 2
    with session_factory() as db:
        assert all(ensure_utc(db.get(Task, task_id).due_date) == target for task_id in ids.values())
        log = db.query(AgentActionLog).one()
        assert log.action_type == "tasks_moved"
