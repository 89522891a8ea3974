"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.schemas.jobs import JobRunRequest, JobRunResponse
from app.core.config import settings
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.job_runner import run_drift_scan_for_all_users, run_drift_scan_for_user

router = APIRouter()


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("jobs.config", metadata={"request_id": request_id}, request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "drift_scan_time": f"{settings.drift_job_hour:02d}:{settings.drift_job_minute:02d}",
            },
            "recovery": {
                "proposer": settings.recovery_proposer,
                "max_daily_minutes": settings.max_daily_minutes,
                "window_days": settings.recovery_window_days,
            },
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    db: Session = Depends(get_db),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    with trace("jobs.run_now", metadata={"job": payload.job, "request_id": request_id}, request_id=request_id):
        if payload.user_id:
            created = run_drift_scan_for_user(db, payload.user_id, force=payload.force)
            users_processed, snapshots_written = 1, 1 if created else 0
        else:
            result = run_drift_scan_for_all_users(db, force=payload.force)
            users_processed, snapshots_written = result.users_processed, result.snapshots_written

    latency_ms = (perf_counter() - start) * 1000
    log_metric("jobs.run_now.success", 1, metadata={"job": payload.job})
    log_metric("jobs.run_now.latency_ms", latency_ms, metadata={"job": payload.job})

    return JobRunResponse(
        job=payload.job,
        users_processed=users_processed,
        snapshots_written=snapshots_written,
        request_id=request_id or "",
    )
