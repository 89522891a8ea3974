"""Schemas for the plan-my-day endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class PlannedTask(BaseModel):
    id: UUID
    goal_id: UUID
    title: str
    priority: str
    estimated_time: int
    due_date: Optional[datetime]


class PlanStatsPayload(BaseModel):
    total_tasks: int
    total_minutes: int
    planned_minutes: int
    overflow_minutes: int


class DayPlanResponse(BaseModel):
    user_id: UUID
    available_minutes: int
    today_start: datetime
    planned: List[PlannedTask]
    overflow: List[PlannedTask]
    stats: PlanStatsPayload
    request_id: str


class CommitPlanRequest(BaseModel):
    user_id: UUID
    today_ids: List[UUID]
    tomorrow_ids: List[UUID]
    today_date: datetime
    tomorrow_date: datetime


class CommitPlanResponse(BaseModel):
    today_count: int
    tomorrow_count: int
    log_id: Optional[UUID]
    request_id: str


class MoveTasksRequest(BaseModel):
    user_id: UUID
    task_ids: List[UUID]
    target_date: datetime


class MoveTasksResponse(BaseModel):
    moved: int
    request_id: str
