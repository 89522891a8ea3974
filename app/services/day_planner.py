"""Plan-my-day service: suggest today's bucket and commit the user's final split."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.models.agent_action_log import AgentActionLog
from app.observability.tracing import trace
from app.scheduling.bucket import suggest_day_plan
from app.scheduling.models import DayPlan, Reassignment
from app.services.task_store import list_incomplete_tasks_for_user, patch_many

logger = logging.getLogger(__name__)


@dataclass
class CommitResult:
    log: AgentActionLog | None
    today_count: int
    tomorrow_count: int


def get_suggestion(
    db: Session,
    user_id: UUID,
    available_minutes: int,
    today_start: datetime,
    request_id: str | None = None,
) -> DayPlan:
    """Read-only: bucket today's actionable tasks against the available minutes."""
    tasks = list_incomplete_tasks_for_user(db, user_id)
    with trace(
        "planner.suggest",
        metadata={"available_minutes": available_minutes, "open_tasks": len(tasks)},
        user_id=str(user_id),
        request_id=request_id,
    ) as suggest_trace:
        plan = suggest_day_plan(tasks, available_minutes, today_start)
        if suggest_trace:
            suggest_trace.update(
                metadata={
                    "planned_count": len(plan.planned),
                    "overflow_count": len(plan.overflow),
                    "planned_minutes": plan.stats.planned_minutes,
                }
            )
    return plan


def commit_plan(
    db: Session,
    *,
    user_id: UUID,
    today_ids: Sequence[UUID],
    tomorrow_ids: Sequence[UUID],
    today_date: datetime,
    tomorrow_date: datetime,
    request_id: str | None = None,
) -> CommitResult:
    """Write the reviewed split: ``today_ids`` to ``today_date``, the rest to ``tomorrow_date``."""
    updates: List[Reassignment] = [Reassignment(task_id=task_id, new_date=today_date) for task_id in today_ids]
    updates.extend(Reassignment(task_id=task_id, new_date=tomorrow_date) for task_id in tomorrow_ids)
    if not updates:
        return CommitResult(log=None, today_count=0, tomorrow_count=0)

    patch_many(db, updates, user_id=user_id)
    log = AgentActionLog(
        user_id=user_id,
        action_type="day_plan_committed",
        action_payload={
            "today_ids": [str(task_id) for task_id in today_ids],
            "tomorrow_ids": [str(task_id) for task_id in tomorrow_ids],
            "today_date": today_date.isoformat(),
            "tomorrow_date": tomorrow_date.isoformat(),
            "request_id": request_id or "",
        },
        reason="Day plan committed",
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    logger.info(
        "Committed day plan for user %s (today=%s, tomorrow=%s)",
        user_id,
        len(today_ids),
        len(tomorrow_ids),
    )
    return CommitResult(log=log, today_count=len(today_ids), tomorrow_count=len(tomorrow_ids))


def move_tasks(
    db: Session,
    *,
    user_id: UUID,
    task_ids: Sequence[UUID],
    target_date: datetime,
    request_id: str | None = None,
) -> int:
    """Move a set of tasks to one date."""
    if not task_ids:
        return 0
    patch_many(db, [Reassignment(task_id=task_id, new_date=target_date) for task_id in task_ids], user_id=user_id)
    db.add(
        AgentActionLog(
            user_id=user_id,
            action_type="tasks_moved",
            action_payload={
                "task_ids": [str(task_id) for task_id in task_ids],
                "target_date": target_date.isoformat(),
                "request_id": request_id or "",
            },
            reason="Tasks moved",
        )
    )
    db.commit()
    return len(task_ids)
