"""Goal API routes."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.api.schemas.goal import GoalCreateRequest, GoalProgressResponse, GoalSummary, GoalUpdateRequest
from app.db.deps import get_db
from app.db.models.goal import Goal
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.scheduling.clock import ensure_utc
from app.services.goal_service import delete_goal, recompute_progress
from app.services.user_service import ensure_user

router = APIRouter()

_REQUIRED_FIELDS = {"title", "category", "color", "progress", "status"}


@router.post("/goals", response_model=GoalSummary, status_code=status.HTTP_201_CREATED, tags=["goals"])
def create_goal(
    payload: GoalCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> GoalSummary:
    request_id = getattr(request.state, "request_id", None)
    try:
        with trace(
            "goal.create",
            metadata={"route": "/goals", "category": payload.category},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            ensure_user(db, payload.user_id)
            goal = Goal(
                user_id=payload.user_id,
                title=payload.title.strip(),
                description=payload.description,
                category=payload.category,
                color=payload.color,
                target_date=ensure_utc(payload.target_date),
                progress=0,
                status="active",
            )
            db.add(goal)
            db.commit()
            db.refresh(goal)
    except Exception:
        db.rollback()
        raise

    log_metric("goal.create.success", 1, metadata={"user_id": str(payload.user_id)})
    return _serialize_goal(goal)


@router.get("/goals", response_model=List[GoalSummary], tags=["goals"])
def list_goals(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> List[GoalSummary]:
    request_id = getattr(request.state, "request_id", None)
    with trace("goal.list", metadata={"route": "/goals"}, user_id=str(user_id), request_id=request_id):
        goals = db.query(Goal).filter(Goal.user_id == user_id).order_by(desc(Goal.created_at)).all()
    return [_serialize_goal(goal) for goal in goals]


@router.patch("/goals/{goal_id}", response_model=GoalSummary, tags=["goals"])
def update_goal(
    goal_id: UUID,
    payload: GoalUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> GoalSummary:
    """Partial update; fields left out of the body keep their value."""
    goal = _owned_goal(db, goal_id, payload.user_id)
    request_id = getattr(request.state, "request_id", None)
    changes = {
        name: value
        for name, value in payload.model_dump(exclude_unset=True, exclude={"user_id"}).items()
        if value is not None or name not in _REQUIRED_FIELDS
    }

    try:
        with trace(
            "goal.update",
            metadata={"route": f"/goals/{goal_id}", "fields": sorted(changes)},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            for name, value in changes.items():
                if name == "target_date":
                    value = ensure_utc(value)
                elif name == "title":
                    value = value.strip()
                setattr(goal, name, value)
            goal.updated_at = datetime.now(timezone.utc)
            db.add(goal)
            db.commit()
            db.refresh(goal)
    except Exception:
        db.rollback()
        raise

    log_metric("goal.update.success", 1, metadata={"user_id": str(payload.user_id), "goal_id": str(goal_id)})
    return _serialize_goal(goal)


@router.delete("/goals/{goal_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["goals"])
def remove_goal(
    goal_id: UUID,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> None:
    """Hard delete: the goal's tasks and their focus sessions go with it."""
    goal = _owned_goal(db, goal_id, user_id)
    request_id = getattr(request.state, "request_id", None)
    try:
        with trace("goal.delete", metadata={"route": f"/goals/{goal_id}"}, user_id=str(user_id), request_id=request_id):
            removed = delete_goal(db, goal)
            db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("goal.delete.tasks_removed", removed, metadata={"user_id": str(user_id)})


@router.post("/goals/{goal_id}/progress", response_model=GoalProgressResponse, tags=["goals"])
def refresh_goal_progress(
    goal_id: UUID,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> GoalProgressResponse:
    goal = _owned_goal(db, goal_id, user_id)
    request_id = getattr(request.state, "request_id", None)
    try:
        progress = recompute_progress(db, goal)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return GoalProgressResponse(id=goal.id, progress=progress, request_id=request_id or "")


def _owned_goal(db: Session, goal_id: UUID, user_id: UUID) -> Goal:
    goal = db.get(Goal, goal_id)
    if not goal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    if goal.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Goal does not belong to user")
    return goal


def _serialize_goal(goal: Goal) -> GoalSummary:
    return GoalSummary(
        id=goal.id,
        user_id=goal.user_id,
        title=goal.title,
        description=goal.description,
        category=goal.category,
        color=goal.color,
        target_date=ensure_utc(goal.target_date),
        progress=goal.progress or 0,
        status=goal.status,
        created_at=goal.created_at,
        updated_at=goal.updated_at,
    )
