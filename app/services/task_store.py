"""Task store helpers: the reads and due-date patches the planner relies on."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.models.task import Task
from app.scheduling.clock import ensure_utc
from app.scheduling.models import Reassignment, SchedulableTask

logger = logging.getLogger(__name__)


class TaskNotFoundError(LookupError):
    """Raised when a patch references a task id that no longer exists."""

    def __init__(self, task_ids: Sequence[UUID]):
        self.task_ids = list(task_ids)
        joined = ", ".join(str(task_id) for task_id in self.task_ids)
        super().__init__(f"Task not found: {joined}")


def to_schedulable(task: Task) -> SchedulableTask:
    return SchedulableTask(
        id=task.id,
        goal_id=task.goal_id,
        title=task.title,
        priority=task.priority or "medium",
        estimated_time=task.estimated_time,
        due_date=ensure_utc(task.due_date),
        completed=bool(task.completed),
    )


def list_incomplete_tasks_for_user(db: Session, user_id: UUID) -> List[SchedulableTask]:
    """Every open, non-archived task for the user, in creation order."""
    rows = (
        db.query(Task)
        .filter(
            Task.user_id == user_id,
            Task.completed.is_(False),
            Task.is_archived.is_(False),
        )
        .order_by(Task.created_at.asc(), Task.id.asc())
        .all()
    )
    return [to_schedulable(row) for row in rows]


def patch_task_due_date(db: Session, task_id: UUID, new_date: datetime) -> Task:
    """Move a single task. The caller owns the commit."""
    task = db.get(Task, task_id)
    if task is None:
        raise TaskNotFoundError([task_id])
    task.due_date = ensure_utc(new_date)
    db.add(task)
    return task


def patch_many(
    db: Session,
    updates: Iterable[Reassignment],
    *,
    user_id: UUID | None = None,
) -> List[Task]:
    """
    Apply a batch of due-date changes inside the caller's transaction.

    Every id is resolved before anything is written, so a stale id rejects the
    whole batch. When ``user_id`` is given, tasks owned by someone else are
    treated as missing.
    """
    updates = list(updates)
    if not updates:
        return []

    wanted = list(dict.fromkeys(update.task_id for update in updates))
    query = db.query(Task).filter(Task.id.in_(wanted))
    if user_id is not None:
        query = query.filter(Task.user_id == user_id)
    found: Dict[UUID, Task] = {task.id: task for task in query.all()}

    missing = [task_id for task_id in wanted if task_id not in found]
    if missing:
        raise TaskNotFoundError(missing)

    for update in updates:
        task = found[update.task_id]
        task.due_date = ensure_utc(update.new_date)
        db.add(task)

    logger.debug("Patched due dates for %s tasks", len(found))
    return list(found.values())
