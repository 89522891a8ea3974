"""Duration and priority helpers used by every scheduling path."""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterable, List, Tuple

from app.scheduling.clock import ensure_utc

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from app.scheduling.models import SchedulableTask

DEFAULT_TASK_MINUTES = 30

PRIORITY_RANK = {"low": 1, "medium": 2, "high": 3}

_LEADING_NUMBER = re.compile(r"^(\d+(?:\.\d+)?)")


def parse_duration(value: object) -> int:
    """
    Convert an estimated-time value to whole minutes.

    Numbers are minutes. Text such as "2h", "1.5 hours" or "45m" uses the leading
    number, scaled by 60 when the text mentions hours. Anything without a leading
    number, or a non-positive result, falls back to DEFAULT_TASK_MINUTES.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_TASK_MINUTES

    if isinstance(value, (int, float)):
        minutes = round(value)
        return minutes if minutes > 0 else DEFAULT_TASK_MINUTES

    text = str(value).strip().lower()
    match = _LEADING_NUMBER.match(text)
    if not match:
        return DEFAULT_TASK_MINUTES

    number = float(match.group(1))
    if "h" in text:
        minutes = round(number * 60)
    else:
        # "45m", "45 min" and a bare "45" are all minutes
        minutes = round(number)
    return minutes if minutes > 0 else DEFAULT_TASK_MINUTES


def priority_rank(priority: str | None) -> int:
    return PRIORITY_RANK.get((priority or "").lower(), PRIORITY_RANK["low"])


def schedule_sort_key(task: "SchedulableTask") -> Tuple[int, float]:
    """Sort key placing high priority first, then the oldest due date."""
    due = ensure_utc(task.due_date).timestamp() if task.due_date else 0.0
    return (-priority_rank(task.priority), due)


def sort_for_schedule(tasks: Iterable["SchedulableTask"]) -> List["SchedulableTask"]:
    # sorted() is stable, so ties beyond priority/due date keep their input order
    return sorted(tasks, key=schedule_sort_key)


def total_minutes(tasks: Iterable["SchedulableTask"]) -> int:
    return sum(task.minutes for task in tasks)
