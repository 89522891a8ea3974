"""Focus timer routes."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.api.params import resolve_today_start
from app.api.schemas.focus import (
    FocusSessionCreateRequest,
    FocusSessionCreateResponse,
    FocusSessionSummary,
    FocusTodayResponse,
)
from app.db.deps import get_db
from app.db.models.focus_session import FocusSession
from app.db.models.task import Task
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.scheduling.clock import ensure_utc
from app.services.focus_service import log_focus_session, today_focus_stats

router = APIRouter()


@router.post(
    "/focus/sessions",
    response_model=FocusSessionCreateResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["focus"],
)
def create_focus_session(
    payload: FocusSessionCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> FocusSessionCreateResponse:
    """Log a finished or interrupted timer run and add its minutes to the task."""
    task = db.get(Task, payload.task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    if task.user_id != payload.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task does not belong to user")

    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace(
            "focus.session.create",
            metadata={"route": "/focus/sessions", "status": payload.status},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            session = log_focus_session(
                db,
                payload.user_id,
                task,
                payload.started_at,
                payload.ended_at,
                payload.status,
                duration_minutes=payload.duration_minutes,
            )
            db.commit()
            db.refresh(session)
            db.refresh(task)
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except Exception:
        db.rollback()
        raise

    log_metric("focus.session.minutes", session.duration_minutes, metadata={"user_id": str(payload.user_id)})
    return FocusSessionCreateResponse(
        session=_serialize_session(session),
        task_actual_time=task.actual_time or 0,
        request_id=request_id or "",
    )


@router.get("/focus/today", response_model=FocusTodayResponse, tags=["focus"])
def focus_today(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID"),
    today_start: Optional[datetime] = Query(default=None, description="Caller's local midnight"),
    tz: Optional[str] = Query(default=None, description="IANA timezone of the caller"),
    db: Session = Depends(get_db),
) -> FocusTodayResponse:
    request_id = getattr(http_request.state, "request_id", None)
    midnight = resolve_today_start(today_start, tz)
    with trace("focus.today", metadata={"route": "/focus/today"}, user_id=str(user_id), request_id=request_id):
        stats = today_focus_stats(db, user_id, midnight)

    return FocusTodayResponse(
        user_id=user_id,
        today_start=midnight,
        total_minutes=stats.total_minutes,
        sessions_completed=stats.sessions_completed,
        sessions=[_serialize_session(session) for session in stats.sessions],
        request_id=request_id or "",
    )


def _serialize_session(session: FocusSession) -> FocusSessionSummary:
    return FocusSessionSummary(
        id=session.id,
        task_id=session.task_id,
        started_at=ensure_utc(session.started_at),
        ended_at=ensure_utc(session.ended_at),
        duration_minutes=session.duration_minutes,
        status=session.status,
    )
