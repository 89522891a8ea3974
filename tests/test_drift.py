from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from app.scheduling import detect_drift
from app.scheduling.models import SchedulableTask

TODAY = datetime(2026, 3, 10, tzinfo=timezone.utc)


def _task(minutes=30, due=TODAY - timedelta(days=1), completed=False):
    return SchedulableTask(
        id=uuid4(),
        goal_id=uuid4(),
        title="Task",
        priority="medium",
        estimated_time=minutes,
        due_date=due,
        completed=completed,
    )


def test_three_long_overdue_tasks_are_critical() -> None:
    tasks = [_task(60), _task(70), _task(70)]

    report = detect_drift(tasks, TODAY)

    assert report.has_drift is True
    assert report.overdue_count == 3
    assert report.drift_minutes == 200
    assert report.is_critical is True


def test_minutes_threshold_is_strict() -> None:
    report = detect_drift([_task(90), _task(90)], TODAY)

    assert report.drift_minutes == 180
    assert report.is_critical is False


def test_count_threshold_triggers_without_minutes() -> None:
    report = detect_drift([_task(10) for _ in range(6)], TODAY)

    assert report.drift_minutes == 60
    assert report.is_critical is True


def test_tasks_due_today_are_not_drift() -> None:
    tasks = [
        _task(due=TODAY),
        _task(due=TODAY + timedelta(hours=5)),
        _task(completed=True),
        _task(due=None),
    ]

    report = detect_drift(tasks, TODAY)

    assert report.has_drift is False
    assert report.overdue_count == 0
    assert report.overdue_tasks == []


def test_no_tasks_is_healthy() -> None:
    report = detect_drift([], TODAY)

    assert report.has_drift is False
    assert report.is_critical is False
