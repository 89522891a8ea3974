"""Focus timer sessions and the time they add to tasks."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.models.focus_session import FocusSession
from app.db.models.task import Task
from app.scheduling.clock import ensure_utc

logger = logging.getLogger(__name__)

SESSION_STATUSES = ("completed", "interrupted")


@dataclass
class FocusStats:
    total_minutes: int = 0
    sessions_completed: int = 0
    sessions: List[FocusSession] = field(default_factory=list)


def session_minutes(started_at: datetime, ended_at: datetime) -> int:
    """Whole minutes between two instants, never less than one."""
    seconds = (ensure_utc(ended_at) - ensure_utc(started_at)).total_seconds()
    return max(1, round(seconds / 60))


def log_focus_session(
    db: Session,
    user_id: UUID,
    task: Task,
    started_at: datetime,
    ended_at: datetime,
    status: str,
    duration_minutes: Optional[int] = None,
) -> FocusSession:
    """
    Record a session and add its minutes to the task's ``actual_time``.

    The duration is derived from the timestamps unless the timer already
    measured it. The caller owns the commit.
    """
    if status not in SESSION_STATUSES:
        raise ValueError(f"Unknown focus session status: {status}")
    if ensure_utc(ended_at) < ensure_utc(started_at):
        raise ValueError("Focus session ends before it starts")

    minutes = duration_minutes if duration_minutes is not None else session_minutes(started_at, ended_at)
    session = FocusSession(
        user_id=user_id,
        task_id=task.id,
        started_at=ensure_utc(started_at),
        ended_at=ensure_utc(ended_at),
        duration_minutes=minutes,
        status=status,
    )
    db.add(session)
    task.actual_time = (task.actual_time or 0) + minutes
    db.add(task)
    logger.debug("Logged %s focus minutes on task %s", minutes, task.id)
    return session


def today_focus_stats(db: Session, user_id: UUID, today_start: datetime) -> FocusStats:
    sessions = (
        db.query(FocusSession)
        .filter(FocusSession.user_id == user_id, FocusSession.started_at >= ensure_utc(today_start))
        .order_by(FocusSession.started_at.asc())
        .all()
    )
    return FocusStats(
        total_minutes=sum(session.duration_minutes for session in sessions),
        sessions_completed=sum(1 for session in sessions if session.status == "completed"),
        sessions=sessions,
    )
