from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.db.deps import get_db
from app.db.models.agent_action_log import AgentActionLog
from app.db.models.goal import Goal
from app.db.models.task import Task
from app.db.models.user import User
from app.main import app


@pytest.fixture()
def client(monkeypatch):
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

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal, monkeypatch
    app.dependency_overrides.clear()


def _seed_overdue(session_factory):
    with session_factory() as db:
        user_id = uuid4()
        db.add(User(id=user_id))
        db.flush()
        goal = Goal(user_id=user_id, title="Focus")
        db.add(goal)
        db.flush()
        db.add(
            Task(
                user_id=user_id,
                goal_id=goal.id,
                title="Old",
                estimated_time=30,
                due_date=datetime.now(timezone.utc) - timedelta(days=3),
            )
        )
        db.commit()
        return user_id


def test_jobs_config_lists_schedule_and_recovery(client):
    test_client, _, _ = client

    resp = test_client.get("/jobs")

    assert resp.status_code == 200
    body = resp.json()
    assert body["schedule"]["drift_scan_time"] == f"{settings.drift_job_hour:02d}:{settings.drift_job_minute:02d}"
    assert body["recovery"]["max_daily_minutes"] == settings.max_daily_minutes
    assert body["recovery"]["window_days"] == 7
    assert body["request_id"]


def test_run_now_requires_debug(client):
    test_client, _, monkeypatch = client
    monkeypatch.setattr(settings, "debug", False)

    resp = test_client.post("/jobs/run-now", json={"job": "drift_scan"})

    assert resp.status_code == 403


def test_run_now_scans_drift_in_debug(client):
    test_client, session_factory, monkeypatch = client
    monkeypatch.setattr(settings, "debug", True)
    user_id = _seed_overdue(session_factory)

    resp = test_client.post("/jobs/run-now", json={"job": "drift_scan"})
    again = test_client.post("/jobs/run-now", json={"job": "drift_scan", "user_id": str(user_id), "force": True})

    assert resp.status_code == 200
    assert resp.json()["users_processed"] == 1
    assert resp.json()["snapshots_written"] == 1
    assert again.json()["snapshots_written"] == 1
    with session_factory() as db:
        assert db.query(AgentActionLog).filter(AgentActionLog.action_type == "drift_detected").count() == 2


def test_run_now_rejects_unknown_job(client):
    test_client, _, monkeypatch = client
    monkeypatch.setattr(settings, "debug", True)

    resp = test_client.post("/jobs/run-now", json={"job": "weekly_digest"})

    assert resp.status_code == 422
