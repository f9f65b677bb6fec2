"""Task model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, Index
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("status IN ('todo', 'in_progress', 'done')", name="valid_status"),
        CheckConstraint("priority IN ('low', 'medium', 'high')", name="valid_priority"),
        CheckConstraint("blocked_by_task_id IS NULL OR blocked_by_task_id != id", name="no_self_block"),
        Index("idx_tasks_household", "household_id"),
        Index("idx_tasks_status", "household_id", "status"),
        Index("idx_tasks_due_date", "household_id", "due_date"),
        Index("idx_tasks_blocked_by", "blocked_by_task_id"),
    )

    household_id: uuid.UUID = Field(foreign_key="households.id", nullable=False)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    status: str = Field(nullable=False, default="todo")  # todo | in_progress | done
    priority: str = Field(nullable=False, default="medium")  # low | medium | high
    due_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    completed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    assignee_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    category_id: Optional[uuid.UUID] = Field(default=None, foreign_key="categories.id")
    # Same-household reference, cleared (not cascaded) when the blocker is deleted
    blocked_by_task_id: Optional[uuid.UUID] = None
