"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import UUID4

from .common import TaskPriority, TaskStatus


def _strip(value):
    if isinstance(value, str):
        return value.strip()
    return value


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

class TaskSummary(BaseModel):
    """Minimal task view used for blocked-by / blocking relationships."""
    id: UUID4
    title: str
    status: TaskStatus


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskBase(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    assignee_id: Optional[UUID4] = None
    category_id: Optional[UUID4] = None
    blocked_by_task_id: Optional[UUID4] = None

    _strip_title = field_validator("title", mode="before")(_strip)


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    """Partial update. Fields left out are untouched; an explicit null clears."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    assignee_id: Optional[UUID4] = None
    category_id: Optional[UUID4] = None
    blocked_by_task_id: Optional[UUID4] = None

    _strip_title = field_validator("title", mode="before")(_strip)

    @field_validator("title", "status", "priority")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class TaskFilter(BaseModel):
    status: Optional[TaskStatus] = None
    assignee_id: Optional[UUID4] = None
    category_id: Optional[UUID4] = None
    priority: Optional[TaskPriority] = None
    due_before: Optional[datetime] = None
    search: Optional[str] = Field(default=None, max_length=200)


class TaskRead(BaseModel):
    id: UUID4
    household_id: UUID4
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    assignee_id: Optional[UUID4] = None
    category_id: Optional[UUID4] = None
    blocked_by_task_id: Optional[UUID4] = None
    blocked_by: Optional[TaskSummary] = None
    blocking: List[TaskSummary] = Field(default_factory=list)
    blocking_chain: List[TaskSummary] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
