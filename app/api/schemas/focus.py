"""Schemas for focus timer sessions."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.scheduling.clock import ensure_utc

SessionStatus = Literal["completed", "interrupted"]


class FocusSessionCreateRequest(BaseModel):
    user_id: UUID
    task_id: UUID
    started_at: datetime
    ended_at: datetime
    status: SessionStatus = "completed"
    # Minutes measured by the timer; derived from the timestamps when absent
    duration_minutes: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_order(self) -> "FocusSessionCreateRequest":
        if ensure_utc(self.ended_at) < ensure_utc(self.started_at):
            raise ValueError("ended_at must not be earlier than started_at")
        return self


class FocusSessionSummary(BaseModel):
    id: UUID
    task_id: UUID
    started_at: datetime
    ended_at: datetime
    duration_minutes: int
    status: SessionStatus


class FocusSessionCreateResponse(BaseModel):
    session: FocusSessionSummary
    task_actual_time: int
    request_id: str


class FocusTodayResponse(BaseModel):
    user_id: UUID
    today_start: datetime
    total_minutes: int
    sessions_completed: int
    sessions: List[FocusSessionSummary]
    request_id: str
