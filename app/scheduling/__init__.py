"""Deterministic day-planning and overdue-recovery algorithms."""

from app.scheduling.bucket import suggest_day_plan
from app.scheduling.drift import detect_drift
from app.scheduling.durations import DEFAULT_TASK_MINUTES, parse_duration
from app.scheduling.recovery import MAX_DAILY_MINUTES, build_calendar, plan_recovery, to_reassignments

__all__ = [
    "DEFAULT_TASK_MINUTES",
    "MAX_DAILY_MINUTES",
    "build_calendar",
    "detect_drift",
    "parse_duration",
    "plan_recovery",
    "suggest_day_plan",
    "to_reassignments",
]
