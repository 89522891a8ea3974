"""Task API routes."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import asc, nulls_last
from sqlalchemy.orm import Session

from app.api.params import resolve_today_start
from app.api.schemas.task import (
    DailyCompletionPayload,
    EfficiencyPointPayload,
    TaskCreateRequest,
    TaskStatsResponse,
    TaskSummary,
    TaskToggleRequest,
    TaskToggleResponse,
    TaskUpdateRequest,
)
from app.db.deps import get_db
from app.db.models.goal import Goal
from app.db.models.task import Task
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.scheduling.clock import ensure_utc
from app.services.task_stats import completion_stats, due_between, efficiency_series, list_all_tasks_for_user

router = APIRouter()

_REQUIRED_FIELDS = {"title", "priority", "completed"}


@router.get("/tasks", response_model=List[TaskSummary], tags=["tasks"])
def list_tasks(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the tasks"),
    goal_id: UUID | None = Query(default=None, description="Restrict to one goal"),
    db: Session = Depends(get_db),
) -> List[TaskSummary]:
    """List non-archived tasks for a user, soonest due first."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/tasks",
        "user_id": str(user_id),
        "goal_id": str(goal_id) if goal_id else None,
        "request_id": request_id,
    }

    with trace("task.list", metadata=metadata, user_id=str(user_id), request_id=request_id):
        query = db.query(Task).filter(Task.user_id == user_id, Task.is_archived.is_(False))
        if goal_id:
            query = query.filter(Task.goal_id == goal_id)
        tasks = query.order_by(nulls_last(asc(Task.due_date)), asc(Task.created_at)).all()

    log_metric("task.list.count", len(tasks), metadata={"user_id": str(user_id)})
    return [_serialize_task(task) for task in tasks]


@router.get("/tasks/today", response_model=List[TaskSummary], tags=["tasks"])
def list_today_tasks(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the tasks"),
    today_start: Optional[datetime] = Query(default=None, description="Caller's local midnight"),
    tz: Optional[str] = Query(default=None, description="IANA timezone of the caller"),
    db: Session = Depends(get_db),
) -> List[TaskSummary]:
    """Non-archived tasks due today, completed ones included."""
    midnight = resolve_today_start(today_start, tz)
    return _due_window(http_request, db, user_id, midnight, 1, route="/tasks/today")


@router.get("/tasks/upcoming", response_model=List[TaskSummary], tags=["tasks"])
def list_upcoming_tasks(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the tasks"),
    days: int = Query(default=7, ge=1, le=60, description="Window length in days, today included"),
    today_start: Optional[datetime] = Query(default=None, description="Caller's local midnight"),
    tz: Optional[str] = Query(default=None, description="IANA timezone of the caller"),
    db: Session = Depends(get_db),
) -> List[TaskSummary]:
    midnight = resolve_today_start(today_start, tz)
    return _due_window(http_request, db, user_id, midnight, days, route="/tasks/upcoming")


@router.get("/tasks/stats", response_model=TaskStatsResponse, tags=["tasks"])
def task_stats(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the tasks"),
    today_start: Optional[datetime] = Query(default=None, description="Caller's local midnight"),
    tz: Optional[str] = Query(default=None, description="IANA timezone of the caller"),
    db: Session = Depends(get_db),
) -> TaskStatsResponse:
    """Completion totals, the last seven days and the current streak. Archived tasks count as history."""
    request_id = getattr(http_request.state, "request_id", None)
    midnight = resolve_today_start(today_start, tz)
    with trace("task.stats", metadata={"route": "/tasks/stats"}, user_id=str(user_id), request_id=request_id):
        stats = completion_stats(list_all_tasks_for_user(db, user_id), midnight)

    log_metric("task.stats.current_streak", stats.current_streak, metadata={"user_id": str(user_id)})
    return TaskStatsResponse(
        user_id=user_id,
        total_tasks=stats.total_tasks,
        total_completed=stats.total_completed,
        total_pending=stats.total_pending,
        completed_this_week=stats.completed_this_week,
        current_streak=stats.current_streak,
        daily=[
            DailyCompletionPayload(day=item.day, weekday=item.weekday, completed=item.completed)
            for item in stats.daily
        ],
        active_days=stats.active_days,
        request_id=request_id or "",
    )


@router.get("/tasks/efficiency", response_model=List[EfficiencyPointPayload], tags=["tasks"])
def task_efficiency(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the tasks"),
    db: Session = Depends(get_db),
) -> List[EfficiencyPointPayload]:
    """Estimated vs actual minutes for completed tasks, oldest completion first."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("task.efficiency", metadata={"route": "/tasks/efficiency"}, user_id=str(user_id), request_id=request_id):
        points = efficiency_series(list_all_tasks_for_user(db, user_id))
    return [
        EfficiencyPointPayload(
            task_id=point.task_id,
            title=point.title,
            estimated=point.estimated,
            actual=point.actual,
            completed_at=point.completed_at,
        )
        for point in points
    ]


@router.post("/tasks", response_model=TaskSummary, status_code=status.HTTP_201_CREATED, tags=["tasks"])
def create_task(
    payload: TaskCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskSummary:
    goal = db.get(Goal, payload.goal_id)
    if not goal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    if goal.user_id != payload.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Goal does not belong to user")

    request_id = getattr(http_request.state, "request_id", None)
    task = Task(
        user_id=payload.user_id,
        goal_id=payload.goal_id,
        title=payload.title.strip(),
        description=payload.description,
        priority=payload.priority,
        estimated_time=payload.estimated_time,
        due_date=ensure_utc(payload.due_date),
        completed=False,
        actual_time=0,
        is_archived=False,
    )
    try:
        with trace(
            "task.create",
            metadata={"route": "/tasks", "goal_id": str(payload.goal_id), "priority": payload.priority},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            db.add(task)
            db.commit()
            db.refresh(task)
    except Exception:
        db.rollback()
        raise

    log_metric("task.create.success", 1, metadata={"user_id": str(payload.user_id)})
    return _serialize_task(task)


@router.patch("/tasks/{task_id}", response_model=TaskSummary, tags=["tasks"])
def update_task(
    task_id: UUID,
    payload: TaskUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskSummary:
    """Partial update; only fields present in the body are written."""
    task = _owned_task(db, task_id, payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)
    changes = payload.model_dump(exclude_unset=True, exclude={"user_id"})

    try:
        with trace(
            "task.update",
            metadata={"route": f"/tasks/{task_id}", "fields": sorted(changes)},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            for name, value in changes.items():
                if value is None and name in _REQUIRED_FIELDS:
                    continue
                if name == "completed":
                    _set_completed(task, bool(value))
                elif name == "due_date":
                    task.due_date = ensure_utc(value)
                elif name == "title":
                    task.title = value.strip()
                else:
                    setattr(task, name, value)
            db.add(task)
            db.commit()
            db.refresh(task)
    except Exception:
        db.rollback()
        raise

    log_metric("task.update.success", 1, metadata={"user_id": str(payload.user_id), "task_id": str(task_id)})
    return _serialize_task(task)


@router.post("/tasks/{task_id}/toggle", response_model=TaskToggleResponse, tags=["tasks"])
def toggle_task(
    task_id: UUID,
    payload: TaskToggleRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskToggleResponse:
    task = _owned_task(db, task_id, payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)
    try:
        _set_completed(task, not task.completed)
        db.add(task)
        db.commit()
        db.refresh(task)
    except Exception:
        db.rollback()
        raise

    log_metric("task.toggle.completed", 1 if task.completed else 0, metadata={"task_id": str(task_id)})
    return TaskToggleResponse(
        id=task.id,
        completed=bool(task.completed),
        completed_at=task.completed_at,
        request_id=request_id or "",
    )


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["tasks"])
def archive_task(
    task_id: UUID,
    user_id: UUID = Query(..., description="User ID owning the task"),
    db: Session = Depends(get_db),
) -> None:
    """Soft delete: archived tasks leave lists and scheduling but keep their history."""
    task = _owned_task(db, task_id, user_id)
    try:
        task.is_archived = True
        db.add(task)
        db.commit()
    except Exception:
        db.rollback()
        raise


def _owned_task(db: Session, task_id: UUID, user_id: UUID) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    if task.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task does not belong to user")
    return task


def _set_completed(task: Task, completed: bool) -> None:
    task.completed = completed
    task.completed_at = datetime.now(timezone.utc) if completed else None


def _serialize_task(task: Task) -> TaskSummary:
    return TaskSummary(
        id=task.id,
        goal_id=task.goal_id,
        title=task.title,
        description=task.description,
        priority=task.priority,
        estimated_time=task.estimated_time,
        actual_time=task.actual_time or 0,
        due_date=ensure_utc(task.due_date),
        completed=bool(task.completed),
        completed_at=ensure_utc(task.completed_at),
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def _due_window(
    http_request: Request,
    db: Session,
    user_id: UUID,
    midnight: datetime,
    days: int,
    *,
    route: str,
) -> List[TaskSummary]:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "task.due_window",
        metadata={"route": route, "days": days},
        user_id=str(user_id),
        request_id=request_id,
    ):
        tasks = due_between(db, user_id, midnight, midnight + timedelta(days=days))
    log_metric("task.due_window.count", len(tasks), metadata={"user_id": str(user_id), "days": days})
    return [_serialize_task(task) for task in tasks]
