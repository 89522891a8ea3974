"""Drift metrics and the schedule recovery agent."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models.agent_action_log import AgentActionLog
from app.observability.tracing import trace
from app.scheduling.drift import detect_drift
from app.scheduling.models import CalendarDay, DriftReport, Reassignment
from app.scheduling.recovery import build_calendar, to_reassignments
from app.services.plan_proposers import (
    PlanParseError,
    PlanProposer,
    ProposerUnavailableError,
    get_plan_proposer,
)
from app.services.task_store import list_incomplete_tasks_for_user, patch_many

logger = logging.getLogger(__name__)

HEALTHY_MESSAGE = "Schedule is healthy."
PARSE_FAILURE_MESSAGE = "The recovery agent couldn't format the recovery schedule. Please try again."
SYSTEM_FAILURE_MESSAGE = "The recovery agent is unavailable right now due to a system error."


@dataclass
class RecoveryResult:
    success: bool
    message: str
    plan: List[Reassignment] = field(default_factory=list)
    proposer: Optional[str] = None


def get_drift_metrics(db: Session, user_id: UUID, today_start: datetime) -> DriftReport:
    tasks = list_incomplete_tasks_for_user(db, user_id)
    return detect_drift(tasks, today_start)


def get_schedule_context(db: Session, user_id: UUID, today_start: datetime) -> List[CalendarDay]:
    """Committed load for the recovery window, built fresh from the live task set."""
    tasks = list_incomplete_tasks_for_user(db, user_id)
    return build_calendar(tasks, today_start, settings.recovery_window_days)


def recover_schedule(
    db: Session,
    user_id: UUID,
    today_start: datetime,
    *,
    proposer: PlanProposer | None = None,
    request_id: str | None = None,
) -> RecoveryResult:
    """
    Rebalance overdue work across the recovery window and persist the new due dates.

    Proposer failures come back as ``success=False`` with a message the UI can show;
    they are never raised.
    """
    tasks = list_incomplete_tasks_for_user(db, user_id)
    drift = detect_drift(tasks, today_start)
    if not drift.has_drift:
        return RecoveryResult(success=True, message=HEALTHY_MESSAGE)

    proposer = proposer or get_plan_proposer()
    calendar = build_calendar(tasks, today_start, settings.recovery_window_days)

    with trace(
        "recovery.plan",
        metadata={
            "proposer": proposer.name,
            "overdue_count": drift.overdue_count,
            "drift_minutes": drift.drift_minutes,
            "day0_load": calendar[0].load_minutes,
        },
        user_id=str(user_id),
        request_id=request_id,
    ) as plan_trace:
        try:
            assignments = proposer.propose(
                drift.overdue_tasks,
                calendar,
                max_daily_minutes=settings.max_daily_minutes,
            )
        except PlanParseError as exc:
            logger.warning("Recovery plan for user %s could not be parsed: %s", user_id, exc)
            return RecoveryResult(success=False, message=PARSE_FAILURE_MESSAGE, proposer=proposer.name)
        except ProposerUnavailableError as exc:
            logger.error("Recovery proposer %s failed for user %s: %s", proposer.name, user_id, exc)
            return RecoveryResult(success=False, message=SYSTEM_FAILURE_MESSAGE, proposer=proposer.name)

        updates = to_reassignments(assignments, today_start, settings.recovery_anchor_hour)
        if plan_trace:
            plan_trace.update(metadata={"updates": len(updates)})

    patch_many(db, updates, user_id=user_id)
    db.add(
        AgentActionLog(
            user_id=user_id,
            action_type="schedule_recovered",
            action_payload={
                "proposer": proposer.name,
                "overdue_count": drift.overdue_count,
                "drift_minutes": drift.drift_minutes,
                "updates": [
                    {"task_id": str(update.task_id), "new_date": update.new_date.isoformat()}
                    for update in updates
                ],
                "request_id": request_id or "",
            },
            reason="Overdue tasks rebalanced",
        )
    )
    db.commit()
    logger.info("Recovered schedule for user %s: %s tasks updated", user_id, len(updates))
    return RecoveryResult(
        success=True,
        message=f"Re-optimized schedule. {len(updates)} tasks updated.",
        plan=updates,
        proposer=proposer.name,
    )
