from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.models.agent_action_log import AgentActionLog
from app.db.models.goal import Goal
from app.db.models.task import Task
from app.db.models.user import User
from app.services.job_runner import run_drift_scan_for_all_users, run_drift_scan_for_user

TODAY = datetime(2026, 3, 10, tzinfo=timezone.utc)


def _session():
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

    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    Goal.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)
    AgentActionLog.__table__.create(bind=engine)
    return TestingSession


def _seed_user_with_tasks(db_session, dues):
    session = db_session()
    try:
        user_id = uuid4()
        session.add(User(id=user_id))
        session.flush()
        goal = Goal(user_id=user_id, title="Focus")
        session.add(goal)
        session.flush()
        for idx, due in enumerate(dues):
            session.add(Task(user_id=user_id, goal_id=goal.id, title=f"T{idx}", estimated_time=45, due_date=due))
        session.commit()
        return user_id
    finally:
        session.close()


def test_drift_scan_writes_one_snapshot_per_day():
    Session = _session()
    user_id = _seed_user_with_tasks(Session, [TODAY - timedelta(days=1), TODAY - timedelta(days=2)])

    session = Session()
    first = run_drift_scan_for_all_users(session, today_start=TODAY)
    assert first.users_processed == 1
    assert first.snapshots_written == 1
    second = run_drift_scan_for_all_users(session, today_start=TODAY)
    assert second.snapshots_written == 0
    assert run_drift_scan_for_user(session, user_id, today_start=TODAY, force=True) is True

    logs = session.query(AgentActionLog).filter(AgentActionLog.action_type == "drift_detected").all()
    assert len(logs) == 2
    assert logs[0].action_payload["day"] == "2026-03-10"
    assert logs[0].action_payload["overdue_count"] == 2
    assert logs[0].action_payload["drift_minutes"] == 90
    session.close()


def test_drift_scan_next_day_writes_again():
    Session = _session()
    user_id = _seed_user_with_tasks(Session, [TODAY - timedelta(days=1)])

    session = Session()
    assert run_drift_scan_for_user(session, user_id, today_start=TODAY) is True
    assert run_drift_scan_for_user(session, user_id, today_start=TODAY + timedelta(days=1)) is True
    session.close()


def test_drift_scan_skips_healthy_users():
    Session = _session()
    _seed_user_with_tasks(Session, [TODAY + timedelta(hours=9), TODAY + timedelta(days=2)])

    session = Session()
    result = run_drift_scan_for_all_users(session, today_start=TODAY)
    assert result.users_processed == 1
    assert result.snapshots_written == 0
    assert session.query(AgentActionLog).count() == 0
    session.close()


def test_drift_scan_accepts_explicit_user_ids():
    Session = _session()
    late = _seed_user_with_tasks(Session, [TODAY - timedelta(days=3)])
    _seed_user_with_tasks(Session, [TODAY - timedelta(days=3)])

    session = Session()
    result = run_drift_scan_for_all_users(session, user_ids=[late, late], today_start=TODAY)
    assert result.users_processed == 1
    assert result.snapshots_written == 1
    session.close()
