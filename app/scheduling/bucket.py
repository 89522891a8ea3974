"""Greedy daily bucket: fit today's actionable tasks into the available minutes."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List

from app.scheduling.clock import DAY, ensure_utc
from app.scheduling.durations import sort_for_schedule, total_minutes
from app.scheduling.models import DayPlan, PlanStats, SchedulableTask


def select_candidates(tasks: Iterable[SchedulableTask], today_start: datetime) -> List[SchedulableTask]:
    """Incomplete tasks due today or earlier. Overdue work is always a candidate."""
    end_of_today = today_start + DAY
    return [
        task
        for task in tasks
        if not task.completed and task.due_date is not None and ensure_utc(task.due_date) < end_of_today
    ]


def suggest_day_plan(
    tasks: Iterable[SchedulableTask],
    available_minutes: int,
    today_start: datetime,
) -> DayPlan:
    """
    Split candidates into ``planned`` and ``overflow`` with one greedy pass.

    Candidates are walked in priority/due-date order. A task that does not fit is
    deferred and the walk continues, so a later, shorter task may still land in the
    remaining space at its own turn. Nothing is re-packed afterwards.
    """
    if available_minutes < 0:
        raise ValueError("available_minutes must be non-negative")

    candidates = select_candidates(tasks, today_start)
    planned: List[SchedulableTask] = []
    overflow: List[SchedulableTask] = []
    running = 0

    for task in sort_for_schedule(candidates):
        duration = task.minutes
        if running + duration <= available_minutes:
            planned.append(task)
            running += duration
        else:
            overflow.append(task)

    planned_minutes = total_minutes(planned)
    overflow_minutes = total_minutes(overflow)
    stats = PlanStats(
        total_tasks=len(candidates),
        total_minutes=planned_minutes + overflow_minutes,
        planned_minutes=planned_minutes,
        overflow_minutes=overflow_minutes,
    )
    return DayPlan(planned=planned, overflow=overflow, stats=stats)
