"""Schemas for job operations endpoints."""
from __future__ import annotations

from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["drift_scan"] = "drift_scan"
    user_id: Optional[UUID] = None
    force: bool = False


class JobRunResponse(BaseModel):
    job: str
    users_processed: int
    snapshots_written: int
    request_id: str
