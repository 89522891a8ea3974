"""Drift detection over strictly overdue work."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List

from app.scheduling.clock import ensure_utc
from app.scheduling.durations import total_minutes
from app.scheduling.models import DriftReport, SchedulableTask

CRITICAL_DRIFT_MINUTES = 180
CRITICAL_OVERDUE_COUNT = 5


def is_overdue(task: SchedulableTask, today_start: datetime) -> bool:
    return not task.completed and task.due_date is not None and ensure_utc(task.due_date) < today_start


def overdue_tasks(tasks: Iterable[SchedulableTask], today_start: datetime) -> List[SchedulableTask]:
    """Tasks due strictly before today. Work due today is not drift."""
    return [task for task in tasks if is_overdue(task, today_start)]


def detect_drift(tasks: Iterable[SchedulableTask], today_start: datetime) -> DriftReport:
    overdue = overdue_tasks(tasks, today_start)
    drift_minutes = total_minutes(overdue)
    overdue_count = len(overdue)
    return DriftReport(
        has_drift=overdue_count > 0,
        drift_minutes=drift_minutes,
        overdue_count=overdue_count,
        is_critical=drift_minutes > CRITICAL_DRIFT_MINUTES or overdue_count > CRITICAL_OVERDUE_COUNT,
        overdue_tasks=overdue,
    )
