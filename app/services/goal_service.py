"""Goal bookkeeping."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.db.models.goal import Goal
from app.db.models.task import Task

logger = logging.getLogger(__name__)


def recompute_progress(db: Session, goal: Goal) -> int:
    """Set progress to the rounded share of completed tasks (archived ones included)."""
    flags = [row[0] for row in db.query(Task.completed).filter(Task.goal_id == goal.id).all()]
    total = len(flags)
    completed = sum(1 for flag in flags if flag)
    progress = round((completed / total) * 100) if total else 0
    goal.progress = progress
    db.add(goal)
    logger.debug("Goal %s progress recomputed: %s%%", goal.id, progress)
    return progress


def delete_goal(db: Session, goal: Goal) -> int:
    """Remove the goal and every task under it. Returns the number of tasks removed."""
    tasks = db.query(Task).filter(Task.goal_id == goal.id).all()
    for task in tasks:
        db.delete(task)
    db.flush()
    db.delete(goal)
    logger.info("Deleted goal %s with %s tasks", goal.id, len(tasks))
    return len(tasks)
