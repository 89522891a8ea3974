"""Batch job runners for the daily drift scan."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models.agent_action_log import AgentActionLog
from app.db.models.task import Task
from app.scheduling.clock import start_of_day
from app.services.recovery_service import get_drift_metrics

logger = logging.getLogger(__name__)


@dataclass
class JobRunResult:
    users_processed: int
    snapshots_written: int


def _users_with_open_tasks(db: Session) -> List[UUID]:
    rows = (
        db.query(Task.user_id)
        .filter(Task.completed.is_(False), Task.is_archived.is_(False))
        .distinct()
        .all()
    )
    return [row[0] for row in rows]


def run_drift_scan_for_user(
    db: Session,
    user_id: UUID,
    *,
    today_start: Optional[datetime] = None,
    force: bool = False,
) -> bool:
    """
    Record a ``drift_detected`` snapshot when the user has overdue work.

    At most one snapshot per user per day unless ``force`` is set. Returns True
    when a snapshot was written.
    """
    midnight = today_start or start_of_day(datetime.now(timezone.utc), settings.scheduler_timezone)
    report = get_drift_metrics(db, user_id, midnight)
    if not report.has_drift:
        return False

    day_iso = midnight.date().isoformat()
    if not force and _find_existing_snapshot(db, user_id=user_id, day=day_iso):
        return False

    db.add(
        AgentActionLog(
            user_id=user_id,
            action_type="drift_detected",
            action_payload={
                "day": day_iso,
                "overdue_count": report.overdue_count,
                "drift_minutes": report.drift_minutes,
                "is_critical": report.is_critical,
                "task_ids": [str(task.id) for task in report.overdue_tasks],
            },
            reason="Critical drift detected" if report.is_critical else "Drift detected",
        )
    )
    db.commit()
    return True


def run_drift_scan_for_all_users(
    db: Session,
    *,
    user_ids: Optional[Iterable[UUID]] = None,
    today_start: Optional[datetime] = None,
    force: bool = False,
) -> JobRunResult:
    ids = list(dict.fromkeys(user_ids)) if user_ids is not None else _users_with_open_tasks(db)
    users_processed = 0
    snapshots_written = 0
    for uid in ids:
        try:
            created = run_drift_scan_for_user(db, uid, today_start=today_start, force=force)
        except Exception:  # pragma: no cover - defensive guard
            db.rollback()
            logger.exception("Drift scan failed for user %s", uid)
            continue
        users_processed += 1
        if created:
            snapshots_written += 1
    return JobRunResult(users_processed=users_processed, snapshots_written=snapshots_written)


def _find_existing_snapshot(db: Session, *, user_id: UUID, day: str) -> AgentActionLog | None:
    logs = (
        db.query(AgentActionLog)
        .filter(AgentActionLog.user_id == user_id, AgentActionLog.action_type == "drift_detected")
        .order_by(AgentActionLog.created_at.desc())
        .limit(30)
        .all()
    )
    for log in logs:
        if (log.action_payload or {}).get("day") == day:
            return log
    return None
