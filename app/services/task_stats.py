"""Completion history and estimate-vs-actual figures for a user's tasks."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, List, Set
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.models.task import Task
from app.scheduling.clock import day_offset, ensure_utc

HISTORY_DAYS = 7


@dataclass
class DailyCompletion:
    day: date
    weekday: str
    completed: int


@dataclass
class CompletionStats:
    total_tasks: int = 0
    total_completed: int = 0
    total_pending: int = 0
    completed_this_week: int = 0
    current_streak: int = 0
    daily: List[DailyCompletion] = field(default_factory=list)
    active_days: List[date] = field(default_factory=list)


@dataclass
class EfficiencyPoint:
    task_id: UUID
    title: str
    estimated: int
    actual: int
    completed_at: datetime


def list_all_tasks_for_user(db: Session, user_id: UUID) -> List[Task]:
    """Archived tasks included; history outlives the task list."""
    return db.query(Task).filter(Task.user_id == user_id).order_by(Task.created_at.asc()).all()


def completion_stats(tasks: Iterable[Task], today_start: datetime) -> CompletionStats:
    tasks = list(tasks)
    stats = CompletionStats(
        total_tasks=sum(1 for task in tasks if not task.is_archived),
        total_completed=sum(1 for task in tasks if task.completed),
        total_pending=sum(1 for task in tasks if not task.completed and not task.is_archived),
    )

    # offsets are local days relative to today: 0 is today, -1 yesterday
    offsets: List[int] = [
        day_offset(task.completed_at, today_start)
        for task in tasks
        if task.completed and task.completed_at is not None
    ]
    week_start = ensure_utc(today_start) - timedelta(days=HISTORY_DAYS)
    stats.completed_this_week = sum(
        1
        for task in tasks
        if task.completed and task.completed_at is not None and ensure_utc(task.completed_at) >= week_start
    )

    today = today_start.date()
    for back in range(HISTORY_DAYS - 1, -1, -1):
        day = today - timedelta(days=back)
        stats.daily.append(
            DailyCompletion(
                day=day,
                weekday=day.strftime("%a"),
                completed=sum(1 for offset in offsets if offset == -back),
            )
        )

    seen: Set[int] = set(offsets)
    stats.current_streak = _streak(seen)
    stats.active_days = [today + timedelta(days=offset) for offset in sorted(seen, reverse=True)]
    return stats


def _streak(offsets: Set[int]) -> int:
    if 0 in offsets:
        cursor = 0
    elif -1 in offsets:
        cursor = -1
    else:
        return 0
    streak = 0
    while cursor in offsets:
        streak += 1
        cursor -= 1
    return streak


def efficiency_series(tasks: Iterable[Task]) -> List[EfficiencyPoint]:
    """Completed tasks with an estimate, oldest completion first."""
    points = [
        EfficiencyPoint(
            task_id=task.id,
            title=task.title,
            estimated=task.estimated_time,
            actual=task.actual_time or 0,
            completed_at=ensure_utc(task.completed_at),
        )
        for task in tasks
        if task.completed and task.completed_at is not None and (task.estimated_time or 0) > 0
    ]
    return sorted(points, key=lambda point: point.completed_at)


def due_between(db: Session, user_id: UUID, start: datetime, end: datetime) -> List[Task]:
    """Non-archived tasks due in ``[start, end)``, soonest first."""
    return (
        db.query(Task)
        .filter(
            Task.user_id == user_id,
            Task.is_archived.is_(False),
            Task.due_date.isnot(None),
            Task.due_date >= ensure_utc(start),
            Task.due_date < ensure_utc(end),
        )
        .order_by(Task.due_date.asc(), Task.created_at.asc())
        .all()
    )
