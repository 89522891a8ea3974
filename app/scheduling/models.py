"""Plain data containers shared by the scheduling algorithms."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID

from app.scheduling.durations import parse_duration

EstimatedTime = Union[int, float, str, None]


@dataclass(frozen=True)
class SchedulableTask:
    """Read-only view of a task row as the scheduler sees it."""

    id: UUID
    goal_id: UUID
    title: str
    priority: str
    estimated_time: EstimatedTime = None
    due_date: Optional[datetime] = None
    completed: bool = False

    @property
    def minutes(self) -> int:
        return parse_duration(self.estimated_time)


@dataclass
class PlanStats:
    total_tasks: int = 0
    total_minutes: int = 0
    planned_minutes: int = 0
    overflow_minutes: int = 0


@dataclass
class DayPlan:
    planned: List[SchedulableTask]
    overflow: List[SchedulableTask]
    stats: PlanStats


@dataclass
class DriftReport:
    has_drift: bool
    drift_minutes: int
    overdue_count: int
    is_critical: bool
    overdue_tasks: List[SchedulableTask]


@dataclass
class CalendarEntry:
    task_id: UUID
    goal_id: UUID
    estimated_time: int


@dataclass
class CalendarDay:
    day_offset: int
    date: datetime
    load_minutes: int = 0
    tasks: List[CalendarEntry] = field(default_factory=list)


@dataclass(frozen=True)
class DayAssignment:
    """A task placed on a calendar day offset (0 = today)."""

    task_id: UUID
    day_offset: int


@dataclass(frozen=True)
class Reassignment:
    task_id: UUID
    new_date: datetime
