"""Task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_id", "user_id"),
        Index("ix_tasks_goal_id", "goal_id"),
        Index("ix_tasks_user_id_due_date", "user_id", "due_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    goal_id = Column(UUID(as_uuid=True), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(length=10), nullable=False, server_default=sa_text("'medium'"))
    # Whole minutes; NULL means "no estimate" and is scheduled as the default duration.
    estimated_time = Column(Integer, nullable=True)
    actual_time = Column(Integer, nullable=False, server_default=sa_text("0"))
    due_date = Column(DateTime(timezone=True), nullable=True)
    completed = Column(Boolean, nullable=False, server_default=sa_text("false"))
    completed_at = Column(DateTime(timezone=True), nullable=True)
    is_archived = Column(Boolean, nullable=False, server_default=sa_text("false"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
