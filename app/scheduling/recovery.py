"""Multi-day recovery: move overdue tasks into capacity-bounded calendar days."""
from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set
from uuid import UUID

from app.scheduling.clock import anchored, day_offset
from app.scheduling.durations import sort_for_schedule
from app.scheduling.models import (
    CalendarDay,
    CalendarEntry,
    DayAssignment,
    Reassignment,
    SchedulableTask,
)

logger = logging.getLogger(__name__)

MAX_DAILY_MINUTES = 720
RECOVERY_WINDOW_DAYS = 7
RECOVERY_ANCHOR_HOUR = 9


def build_calendar(
    tasks: Iterable[SchedulableTask],
    today_start: datetime,
    days: int = RECOVERY_WINDOW_DAYS,
) -> List[CalendarDay]:
    """Committed load for today plus the following ``days - 1`` days."""
    if days < 2:
        raise ValueError("Recovery calendar needs today and at least one later day")

    calendar = [
        CalendarDay(day_offset=offset, date=anchored(today_start, offset, 0))
        for offset in range(days)
    ]
    for task in tasks:
        if task.completed or task.due_date is None:
            continue
        offset = day_offset(task.due_date, today_start)
        if 0 <= offset < days:
            day = calendar[offset]
            minutes = task.minutes
            day.tasks.append(CalendarEntry(task_id=task.id, goal_id=task.goal_id, estimated_time=minutes))
            day.load_minutes += minutes
    return calendar


def plan_recovery(
    overdue: Sequence[SchedulableTask],
    calendar: Sequence[CalendarDay],
    *,
    max_daily_minutes: int = MAX_DAILY_MINUTES,
    preserve_input_order: bool = False,
) -> List[DayAssignment]:
    """
    Place every overdue task on a calendar day.

    Tasks are handled one at a time and each placement updates the running load
    seen by the next task. Today is tried first. A full today still accepts the
    task when it already holds a task of the same goal; that task is displaced to
    the first later day with room. Otherwise the task goes to the first later day
    with room. When no later day has room the least-loaded later day is used.

    The caller's calendar is not modified.
    """
    if len(calendar) < 2:
        raise ValueError("Recovery calendar needs today and at least one later day")

    days = copy.deepcopy(list(calendar))
    ordered = list(overdue) if preserve_input_order else sort_for_schedule(overdue)
    overdue_ids: Set[UUID] = {task.id for task in ordered}
    today, later_days = days[0], days[1:]
    assignments: List[DayAssignment] = []

    for task in ordered:
        entry = CalendarEntry(task_id=task.id, goal_id=task.goal_id, estimated_time=task.minutes)

        if today.load_minutes + entry.estimated_time <= max_daily_minutes:
            _place(today, entry)
            assignments.append(DayAssignment(task_id=task.id, day_offset=0))
            continue

        partner = _find_swap_partner(today, task.goal_id, overdue_ids)
        if partner is not None:
            today.tasks.remove(partner)
            today.load_minutes -= partner.estimated_time
            _place(today, entry)
            target = _first_open_day(later_days, partner.estimated_time, max_daily_minutes)
            _place(target, partner)
            assignments.append(DayAssignment(task_id=task.id, day_offset=0))
            assignments.append(DayAssignment(task_id=partner.task_id, day_offset=target.day_offset))
            logger.debug(
                "Swapped task %s into today, displaced %s to day %s",
                task.id,
                partner.task_id,
                target.day_offset,
            )
            continue

        target = _first_open_day(later_days, entry.estimated_time, max_daily_minutes)
        _place(target, entry)
        assignments.append(DayAssignment(task_id=task.id, day_offset=target.day_offset))

    return assignments


def to_reassignments(
    assignments: Iterable[DayAssignment],
    today_start: datetime,
    anchor_hour: int = RECOVERY_ANCHOR_HOUR,
) -> List[Reassignment]:
    """Convert day offsets to absolute due dates at a fixed local hour."""
    return [
        Reassignment(task_id=item.task_id, new_date=anchored(today_start, item.day_offset, anchor_hour))
        for item in assignments
    ]


def _place(day: CalendarDay, entry: CalendarEntry) -> None:
    day.tasks.append(entry)
    day.load_minutes += entry.estimated_time


def _find_swap_partner(day: CalendarDay, goal_id: UUID, overdue_ids: Set[UUID]) -> Optional[CalendarEntry]:
    # Overdue tasks placed earlier in this run stay put.
    for entry in day.tasks:
        if entry.goal_id == goal_id and entry.task_id not in overdue_ids:
            return entry
    return None


def _first_open_day(days: Sequence[CalendarDay], minutes: int, max_daily_minutes: int) -> CalendarDay:
    for day in days:
        if day.load_minutes + minutes <= max_daily_minutes:
            return day
    fallback = min(days, key=lambda day: (day.load_minutes, day.day_offset))
    logger.info(
        "No day in the recovery window has room for %s minutes; using least-loaded day %s",
        minutes,
        fallback.day_offset,
    )
    return fallback
