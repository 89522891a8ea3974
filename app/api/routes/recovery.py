"""Drift metrics and schedule recovery routes."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.params import resolve_today_start
from app.api.schemas.recovery import (
    CalendarDayPayload,
    CalendarTaskPayload,
    DriftMetricsResponse,
    OverdueTaskPayload,
    ReassignmentPayload,
    RecoveryRunRequest,
    RecoveryRunResponse,
    ScheduleContextResponse,
)
from app.core.config import settings
from app.db.deps import get_db
from app.observability.metrics import log_metric, timed
from app.observability.tracing import trace
from app.services.recovery_service import get_drift_metrics, get_schedule_context, recover_schedule

router = APIRouter()


@router.get("/recovery/drift", response_model=DriftMetricsResponse, tags=["recovery"])
def recovery_drift(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    today_start: Optional[datetime] = Query(default=None, description="Caller's local midnight"),
    tz: Optional[str] = Query(default=None, description="IANA timezone of the caller"),
    db: Session = Depends(get_db),
) -> DriftMetricsResponse:
    request_id = getattr(request.state, "request_id", None)
    midnight = resolve_today_start(today_start, tz)
    with trace(
        "recovery.drift",
        metadata={"route": "/recovery/drift"},
        user_id=str(user_id),
        request_id=request_id,
    ):
        report = get_drift_metrics(db, user_id, midnight)

    log_metric("recovery.drift.overdue_count", report.overdue_count, metadata={"user_id": str(user_id)})
    log_metric("recovery.drift.critical", 1 if report.is_critical else 0, metadata={"user_id": str(user_id)})

    return DriftMetricsResponse(
        user_id=user_id,
        has_drift=report.has_drift,
        drift_minutes=report.drift_minutes,
        overdue_count=report.overdue_count,
        is_critical=report.is_critical,
        overdue_tasks=[
            OverdueTaskPayload(
                id=task.id,
                title=task.title,
                goal_id=task.goal_id,
                priority=task.priority,
                estimated_time=task.minutes,
            )
            for task in report.overdue_tasks
        ],
        request_id=request_id or "",
    )


@router.get("/recovery/context", response_model=ScheduleContextResponse, tags=["recovery"])
def recovery_context(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    today_start: Optional[datetime] = Query(default=None, description="Caller's local midnight"),
    tz: Optional[str] = Query(default=None, description="IANA timezone of the caller"),
    db: Session = Depends(get_db),
) -> ScheduleContextResponse:
    """The per-day committed load the recovery agent plans against."""
    request_id = getattr(request.state, "request_id", None)
    midnight = resolve_today_start(today_start, tz)
    with trace(
        "recovery.context",
        metadata={"route": "/recovery/context"},
        user_id=str(user_id),
        request_id=request_id,
    ):
        calendar = get_schedule_context(db, user_id, midnight)

    return ScheduleContextResponse(
        user_id=user_id,
        max_daily_minutes=settings.max_daily_minutes,
        calendar=[
            CalendarDayPayload(
                day_offset=day.day_offset,
                date=day.date,
                load_minutes=day.load_minutes,
                tasks=[
                    CalendarTaskPayload(
                        task_id=entry.task_id,
                        goal_id=entry.goal_id,
                        estimated_time=entry.estimated_time,
                    )
                    for entry in day.tasks
                ],
            )
            for day in calendar
        ],
        request_id=request_id or "",
    )


@router.post("/recovery/run", response_model=RecoveryRunResponse, tags=["recovery"])
def recovery_run(
    request: Request,
    payload: RecoveryRunRequest,
    db: Session = Depends(get_db),
) -> RecoveryRunResponse:
    """Rebalance overdue tasks. Planning failures return ``success: false`` rather than an error status."""
    request_id = getattr(request.state, "request_id", None)
    midnight = resolve_today_start(payload.today_start, payload.timezone)
    try:
        with timed("recovery.run", metadata={"user_id": str(payload.user_id)}), trace(
            "recovery.run",
            metadata={"route": "/recovery/run"},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            result = recover_schedule(db, payload.user_id, midnight, request_id=request_id)
    except Exception:
        db.rollback()
        raise

    log_metric(
        "recovery.run.success" if result.success else "recovery.run.failure",
        1,
        metadata={"user_id": str(payload.user_id), "proposer": result.proposer},
    )
    log_metric("recovery.run.updates", len(result.plan), metadata={"user_id": str(payload.user_id)})

    plan = None
    if result.success and result.plan:
        plan = [ReassignmentPayload(task_id=item.task_id, new_date=item.new_date) for item in result.plan]
    return RecoveryRunResponse(
        success=result.success,
        message=result.message,
        plan=plan,
        request_id=request_id or "",
    )
