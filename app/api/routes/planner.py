"""Plan-my-day API routes."""
from __future__ import annotations

from datetime import datetime
from time import perf_counter
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.api.params import resolve_today_start
from app.api.schemas.planner import (
    CommitPlanRequest,
    CommitPlanResponse,
    DayPlanResponse,
    MoveTasksRequest,
    MoveTasksResponse,
    PlannedTask,
    PlanStatsPayload,
)
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.scheduling.models import SchedulableTask
from app.services.day_planner import commit_plan, get_suggestion, move_tasks
from app.services.task_store import TaskNotFoundError

router = APIRouter()


@router.get("/planner/suggestion", response_model=DayPlanResponse, tags=["planner"])
def planner_suggestion(
    request: Request,
    user_id: UUID = Query(..., description="User ID owning the tasks"),
    available_minutes: int = Query(..., ge=0, description="Minutes available today"),
    today_start: datetime = Query(..., description="Caller's local midnight for today"),
    tz: Optional[str] = Query(default=None, description="IANA timezone of the caller"),
    db: Session = Depends(get_db),
) -> DayPlanResponse:
    """Bucket today's and overdue tasks into planned vs overflow. Read-only."""
    request_id = getattr(request.state, "request_id", None)
    midnight = resolve_today_start(today_start, tz)
    start = perf_counter()
    with trace(
        "planner.suggestion",
        metadata={"route": "/planner/suggestion", "available_minutes": available_minutes},
        user_id=str(user_id),
        request_id=request_id,
    ):
        plan = get_suggestion(db, user_id, available_minutes, midnight, request_id=request_id)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("planner.suggestion.success", 1, metadata={"user_id": str(user_id)})
    log_metric("planner.suggestion.overflow_count", len(plan.overflow), metadata={"user_id": str(user_id)})
    log_metric("planner.suggestion.latency_ms", latency_ms, metadata={"user_id": str(user_id)})

    return DayPlanResponse(
        user_id=user_id,
        available_minutes=available_minutes,
        today_start=midnight,
        planned=[_serialize_task(task) for task in plan.planned],
        overflow=[_serialize_task(task) for task in plan.overflow],
        stats=PlanStatsPayload(
            total_tasks=plan.stats.total_tasks,
            total_minutes=plan.stats.total_minutes,
            planned_minutes=plan.stats.planned_minutes,
            overflow_minutes=plan.stats.overflow_minutes,
        ),
        request_id=request_id or "",
    )


@router.post("/planner/commit", response_model=CommitPlanResponse, tags=["planner"])
def planner_commit(
    request: Request,
    payload: CommitPlanRequest,
    db: Session = Depends(get_db),
) -> CommitPlanResponse:
    """Write the reviewed today/tomorrow split back to the task store."""
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    try:
        with trace(
            "planner.commit",
            metadata={
                "route": "/planner/commit",
                "today_count": len(payload.today_ids),
                "tomorrow_count": len(payload.tomorrow_ids),
            },
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            result = commit_plan(
                db,
                user_id=payload.user_id,
                today_ids=payload.today_ids,
                tomorrow_ids=payload.tomorrow_ids,
                today_date=payload.today_date,
                tomorrow_date=payload.tomorrow_date,
                request_id=request_id,
            )
    except TaskNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except Exception:
        db.rollback()
        raise

    latency_ms = (perf_counter() - start) * 1000
    log_metric("planner.commit.success", 1, metadata={"user_id": str(payload.user_id)})
    log_metric("planner.commit.latency_ms", latency_ms, metadata={"user_id": str(payload.user_id)})

    return CommitPlanResponse(
        today_count=result.today_count,
        tomorrow_count=result.tomorrow_count,
        log_id=result.log.id if result.log else None,
        request_id=request_id or "",
    )


@router.post("/planner/move", response_model=MoveTasksResponse, tags=["planner"])
def planner_move(
    request: Request,
    payload: MoveTasksRequest,
    db: Session = Depends(get_db),
) -> MoveTasksResponse:
    """Move a set of tasks to a single date."""
    request_id = getattr(request.state, "request_id", None)
    try:
        with trace(
            "planner.move",
            metadata={"route": "/planner/move", "task_count": len(payload.task_ids)},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            moved = move_tasks(
                db,
                user_id=payload.user_id,
                task_ids=payload.task_ids,
                target_date=payload.target_date,
                request_id=request_id,
            )
    except TaskNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except Exception:
        db.rollback()
        raise

    log_metric("planner.move.success", 1, metadata={"user_id": str(payload.user_id)})
    return MoveTasksResponse(moved=moved, request_id=request_id or "")


def _serialize_task(task: SchedulableTask) -> PlannedTask:
    return PlannedTask(
        id=task.id,
        goal_id=task.goal_id,
        title=task.title,
        priority=task.priority,
        estimated_time=task.minutes,
        due_date=task.due_date,
    )
