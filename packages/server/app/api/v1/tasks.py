"""
Task endpoints: CRUD, blocked-by dependencies, today view.

Statuses: todo ⇄ in_progress → done (reopen allowed)
- Completion gate: a task cannot be marked done while its blocker is not done.
- Blocked-by: one blocker per task, same household, never circular.
- Delete clears blocked-by references to the task before removing it.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, require_member
from app.core.database import get_session
from app.services.tasks import (
    create_task,
    delete_task,
    dependents_by_task,
    enrich_task,
    enrich_tasks,
    get_task_or_404,
    list_available_blockers,
    list_tasks,
    list_today_tasks,
    update_task,
)
from household_tasks_shared.schemas.common import APIResponse, TaskPriority, TaskStatus
from household_tasks_shared.schemas.tasks import (
    TaskCreate,
    TaskFilter,
    TaskRead,
    TaskSummary,
    TaskUpdate,
)

router = APIRouter()

# Rejections render as APIResponse envelopes with ``error`` set
NOT_FOUND = {404: {"model": APIResponse}}
REJECTIONS = {404: {"model": APIResponse}, 409: {"model": APIResponse}, 422: {"model": APIResponse}}


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[TaskRead])
async def list_tasks_endpoint(
    household_id: uuid.UUID,
    status: Optional[TaskStatus] = None,
    assignee_id: Optional[uuid.UUID] = None,
    category_id: Optional[uuid.UUID] = None,
    priority: Optional[TaskPriority] = None,
    due_before: Optional[datetime] = None,
    search: Optional[str] = Query(None, max_length=200),
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List tasks with optional filters by status, assignee, category, priority, due date, text."""
    task_filter = TaskFilter(
        status=status,
        assignee_id=assignee_id,
        category_id=category_id,
        priority=priority,
        due_before=due_before,
        search=search,
    )
    tasks = await list_tasks(session, auth.household_id, task_filter)
    return await enrich_tasks(session, tasks)


@router.get("/today", response_model=List[TaskRead])
async def today_tasks_endpoint(
    household_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Open tasks due today or overdue."""
    tasks = await list_today_tasks(session, auth.household_id)
    return await enrich_tasks(session, tasks)


@router.get("/available-blockers", response_model=List[TaskSummary])
async def available_blockers_endpoint(
    household_id: uuid.UUID,
    exclude_task_id: Optional[uuid.UUID] = None,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Open tasks that can be picked as a blocker."""
    return await list_available_blockers(session, auth.household_id, exclude_task_id)


@router.get("/dependents", response_model=Dict[uuid.UUID, List[TaskSummary]])
async def dependents_endpoint(
    household_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Map each blocking task id to the tasks it blocks."""
    return await dependents_by_task(session, auth.household_id)


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------


@router.post("/", response_model=TaskRead, status_code=201, responses=REJECTIONS)
async def create_task_endpoint(
    household_id: uuid.UUID,
    task_in: TaskCreate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Create a new task in the todo state."""
    task = await create_task(session, task_in, auth.household_id)
    return await enrich_task(session, task)


@router.get("/{task_id}", response_model=TaskRead, responses=NOT_FOUND)
async def get_task_endpoint(
    household_id: uuid.UUID,
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Get a single task with its blocker, blocking chain and dependents."""
    task = await get_task_or_404(session, task_id, auth.household_id)
    return await enrich_task(session, task)


@router.patch("/{task_id}", response_model=TaskRead, responses=REJECTIONS)
async def update_task_endpoint(
    household_id: uuid.UUID,
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Update task fields, including status and blocker."""
    task = await update_task(session, task_id, task_in, auth.household_id)
    return await enrich_task(session, task)


@router.delete("/{task_id}", responses=NOT_FOUND)
async def delete_task_endpoint(
    household_id: uuid.UUID,
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Delete a task. Tasks it was blocking lose their blocker."""
    await delete_task(session, task_id, auth.household_id)
    return {"ok": True}
