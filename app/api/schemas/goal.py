"""Schemas for goal endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class GoalCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    category: str = "Other"
    color: str = "#6366f1"
    target_date: Optional[datetime] = None


class GoalSummary(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    description: Optional[str]
    category: str
    color: str
    target_date: Optional[datetime]
    progress: int
    status: Literal["active", "completed", "paused"]
    created_at: datetime
    updated_at: datetime


class GoalProgressResponse(BaseModel):
    id: UUID
    progress: int
    request_id: str


class GoalUpdateRequest(BaseModel):
    user_id: UUID
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    category: Optional[str] = None
    color: Optional[str] = None
    target_date: Optional[datetime] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    status: Optional[Literal["active", "completed", "paused"]] = None
