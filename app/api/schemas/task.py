"""Schemas for task endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.scheduling.durations import parse_duration

Priority = Literal["low", "medium", "high"]


def _normalize_estimate(value: Union[int, str, None]) -> Optional[int]:
    if value is None:
        return None
    return parse_duration(value)


class TaskSummary(BaseModel):
    id: UUID
    goal_id: UUID
    title: str
    description: Optional[str]
    priority: Priority
    estimated_time: Optional[int]
    actual_time: int
    due_date: Optional[datetime]
    completed: bool
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class TaskCreateRequest(BaseModel):
    user_id: UUID
    goal_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Priority = "medium"
    # Accepts minutes or free text such as "1.5h" / "45m"
    estimated_time: Optional[Union[int, str]] = None
    due_date: Optional[datetime] = None

    @field_validator("estimated_time")
    @classmethod
    def _parse_estimate(cls, value: Union[int, str, None]) -> Optional[int]:
        return _normalize_estimate(value)


class TaskUpdateRequest(BaseModel):
    user_id: UUID
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    estimated_time: Optional[Union[int, str]] = None
    due_date: Optional[datetime] = None
    completed: Optional[bool] = None

    @field_validator("estimated_time")
    @classmethod
    def _parse_estimate(cls, value: Union[int, str, None]) -> Optional[int]:
        return _normalize_estimate(value)


class TaskToggleRequest(BaseModel):
    user_id: UUID


class TaskToggleResponse(BaseModel):
    id: UUID
    completed: bool
    completed_at: Optional[datetime]
    request_id: str


class DailyCompletionPayload(BaseModel):
    day: date
    weekday: str
    completed: int


class TaskStatsResponse(BaseModel):
    user_id: UUID
    total_tasks: int
    total_completed: int
    total_pending: int
    completed_this_week: int
    current_streak: int
    daily: List[DailyCompletionPayload]
    active_days: List[date]
    request_id: str


class EfficiencyPointPayload(BaseModel):
    task_id: UUID
    title: str
    estimated: int
    actual: int
    completed_at: datetime
