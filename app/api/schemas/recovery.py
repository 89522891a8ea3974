"""Schemas for drift metrics and schedule recovery."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class OverdueTaskPayload(BaseModel):
    id: UUID
    title: str
    goal_id: UUID
    priority: str
    estimated_time: int


class DriftMetricsResponse(BaseModel):
    user_id: UUID
    has_drift: bool
    drift_minutes: int
    overdue_count: int
    is_critical: bool
    overdue_tasks: List[OverdueTaskPayload]
    request_id: str


class CalendarTaskPayload(BaseModel):
    task_id: UUID
    goal_id: UUID
    estimated_time: int


class CalendarDayPayload(BaseModel):
    day_offset: int
    date: datetime
    load_minutes: int
    tasks: List[CalendarTaskPayload]


class ScheduleContextResponse(BaseModel):
    user_id: UUID
    max_daily_minutes: int
    calendar: List[CalendarDayPayload]
    request_id: str


class RecoveryRunRequest(BaseModel):
    user_id: UUID
    today_start: Optional[datetime] = None
    timezone: Optional[str] = None


class ReassignmentPayload(BaseModel):
    task_id: UUID
    new_date: datetime


class RecoveryRunResponse(BaseModel):
    success: bool
    message: str
    plan: Optional[List[ReassignmentPayload]] = None
    request_id: str
