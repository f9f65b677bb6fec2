"""
Task service layer: business logic for household tasks.

Handles:
- Task CRUD with assignee/category membership checks
- Blocked-by assignment through the dependency graph manager
- Status changes gated on blocker completion, with completed_at bookkeeping
- Cascade clear of blocked-by references on delete
- Enrichment of task data for API responses

Every write runs under the household lock and commits before the lock is
released, so chain reads in the next writer see this writer's result.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, time, timezone
from typing import Any, AsyncIterator, Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, SystemClock
from app.core.errors import TaskActionError
from app.core.locks import household_locks
from app.models.task import Task
from app.models.user import User
from app.services.dependency_graph import GraphResult, TaskDependencyGraphManager
from app.services.membership import SqlMembershipChecker
from app.services.task_store import SqlTaskStore
from household_tasks_shared.schemas.common import RejectionReason, TaskStatus
from household_tasks_shared.schemas.tasks import (
    TaskCreate,
    TaskFilter,
    TaskRead,
    TaskSummary,
    TaskUpdate,
)

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _manager(session: AsyncSession, clock: Optional[Clock] = None) -> TaskDependencyGraphManager:
    return TaskDependencyGraphManager(SqlTaskStore(session), clock or SystemClock())


def _raise_if_rejected(result: GraphResult, **context: Any) -> None:
    if not result.ok:
        log.info("task.rejected", reason=result.reason.value, **context)
        raise TaskActionError(result.reason)


@asynccontextmanager
async def _household_write(session: AsyncSession, household_id: uuid.UUID) -> AsyncIterator[None]:
    async with household_locks.hold(household_id, session):
        try:
            yield
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_task_or_404(
    session: AsyncSession, task_id: uuid.UUID, household_id: uuid.UUID
) -> Task:
    task = await SqlTaskStore(session).get_task(task_id, household_id)
    if task is None:
        raise TaskActionError(RejectionReason.TASK_NOT_FOUND_OR_ACCESS_DENIED)
    return task


async def _check_membership(
    session: AsyncSession,
    household_id: uuid.UUID,
    assignee_id: Optional[uuid.UUID],
    category_id: Optional[uuid.UUID],
) -> None:
    checker = SqlMembershipChecker(session)
    if assignee_id and not await checker.is_user_in_household(assignee_id, household_id):
        raise TaskActionError(RejectionReason.ASSIGNEE_NOT_IN_HOUSEHOLD)
    if category_id and not await checker.is_category_in_household(category_id, household_id):
        raise TaskActionError(RejectionReason.CATEGORY_NOT_IN_HOUSEHOLD)


def _summary(task: Task) -> TaskSummary:
    return TaskSummary(id=task.id, title=task.title, status=task.status)


def _to_read(
    task: Task,
    blocked_by: Optional[Task] = None,
    blocking: Sequence[Task] = (),
    chain: Sequence[Task] = (),
) -> TaskRead:
    return TaskRead(
        id=task.id,
        household_id=task.household_id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        due_date=task.due_date,
        completed_at=task.completed_at,
        assignee_id=task.assignee_id,
        category_id=task.category_id,
        blocked_by_task_id=task.blocked_by_task_id,
        blocked_by=_summary(blocked_by) if blocked_by else None,
        blocking=[_summary(t) for t in blocking],
        blocking_chain=[_summary(t) for t in chain],
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


async def enrich_task(session: AsyncSession, task: Task) -> TaskRead:
    """Convert a Task ORM object to a TaskRead with its blocker, dependents and chain."""
    manager = _manager(session)
    store = manager.store
    chain = await manager.blocking_chain(task)
    blocking = await store.list_blocked_by([task.id], task.household_id)
    return _to_read(
        task,
        blocked_by=chain[0] if chain else None,
        blocking=blocking,
        chain=chain,
    )


async def enrich_tasks(session: AsyncSession, tasks: Sequence[Task]) -> list[TaskRead]:
    """Enrich a page of tasks with two batched queries (blockers, dependents)."""
    if not tasks:
        return []
    household_id = tasks[0].household_id
    store = SqlTaskStore(session)

    blocker_ids = list({t.blocked_by_task_id for t in tasks if t.blocked_by_task_id})
    blockers = {b.id: b for b in await store.list_tasks_by_ids(blocker_ids, household_id)}
    dependents = TaskDependencyGraphManager.list_dependents(
        await store.list_blocked_by([t.id for t in tasks], household_id)
    )

    return [
        _to_read(
            t,
            blocked_by=blockers.get(t.blocked_by_task_id),
            blocking=dependents.get(t.id, []),
        )
        for t in tasks
    ]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_tasks(
    session: AsyncSession, household_id: uuid.UUID, task_filter: Optional[TaskFilter] = None
) -> list[Task]:
    return await SqlTaskStore(session).list_tasks(household_id, task_filter)


def end_of_day(now: datetime) -> datetime:
    """Last instant of ``now``'s UTC calendar day."""
    now = now.astimezone(timezone.utc) if now.tzinfo else now.replace(tzinfo=timezone.utc)
    return datetime.combine(now.date(), time.max, tzinfo=timezone.utc)


async def list_today_tasks(
    session: AsyncSession, household_id: uuid.UUID, clock: Optional[Clock] = None
) -> list[Task]:
    """Open tasks due today or overdue."""
    cutoff = end_of_day((clock or SystemClock()).now())
    return await SqlTaskStore(session).list_open_tasks_due_by(household_id, cutoff)


async def list_available_blockers(
    session: AsyncSession, household_id: uuid.UUID, exclude_task_id: Optional[uuid.UUID] = None
) -> list[TaskSummary]:
    return await _manager(session).list_available_blockers(household_id, exclude_task_id)


async def dependents_by_task(
    session: AsyncSession, household_id: uuid.UUID
) -> dict[uuid.UUID, list[TaskSummary]]:
    """For every task that blocks others, the tasks it blocks."""
    tasks = await SqlTaskStore(session).list_tasks(household_id)
    grouped = TaskDependencyGraphManager.list_dependents(tasks)
    return {
        blocker_id: sorted((_summary(t) for t in dependents), key=lambda s: s.title)
        for blocker_id, dependents in grouped.items()
    }


async def list_members(session: AsyncSession, household_id: uuid.UUID) -> list[User]:
    return await SqlMembershipChecker(session).list_members(household_id)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_task(
    session: AsyncSession,
    task_in: TaskCreate,
    household_id: uuid.UUID,
    *,
    clock: Optional[Clock] = None,
) -> Task:
    await _check_membership(session, household_id, task_in.assignee_id, task_in.category_id)

    manager = _manager(session, clock)
    async with _household_write(session, household_id):
        result = await manager.validate_blocking_assignment(
            None, task_in.blocked_by_task_id, household_id
        )
        _raise_if_rejected(result, action="create", household_id=str(household_id))

        task = await manager.store.create_task(
            {
                "household_id": household_id,
                "title": task_in.title,
                "description": task_in.description,
                "priority": task_in.priority.value,
                "due_date": task_in.due_date,
                "assignee_id": task_in.assignee_id,
                "category_id": task_in.category_id,
                "blocked_by_task_id": task_in.blocked_by_task_id,
                "status": TaskStatus.TODO.value,
            }
        )

    log.info(
        "task.created",
        task_id=str(task.id),
        household_id=str(household_id),
        blocked_by=str(task.blocked_by_task_id) if task.blocked_by_task_id else None,
    )
    return task


async def update_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    household_id: uuid.UUID,
    *,
    clock: Optional[Clock] = None,
) -> Task:
    data = task_in.model_dump(exclude_unset=True)
    await _check_membership(
        session, household_id, data.get("assignee_id"), data.get("category_id")
    )

    manager = _manager(session, clock)
    context = {"action": "update", "task_id": str(task_id), "household_id": str(household_id)}

    async with _household_write(session, household_id):
        task = await get_task_or_404(session, task_id, household_id)

        blocker_changed = (
            "blocked_by_task_id" in data
            and data["blocked_by_task_id"] != task.blocked_by_task_id
        )
        if blocker_changed:
            result = await manager.validate_blocking_assignment(
                task_id, data["blocked_by_task_id"], household_id
            )
            _raise_if_rejected(result, **context)

        if "status" in data:
            # Gate on the blocker the task will have after this update
            effective_blocker_id = data.get("blocked_by_task_id", task.blocked_by_task_id)
            blocker = None
            if effective_blocker_id is not None:
                blocker = await manager.store.get_task(effective_blocker_id, household_id)
            decision = await manager.validate_status_transition(
                task, TaskStatus(data["status"]), blocker, resolve_blocker=False
            )
            _raise_if_rejected(decision, **context)
            decision.value.apply(data)
            data["status"] = TaskStatus(data["status"]).value

        if "priority" in data:
            data["priority"] = data["priority"].value

        task = await manager.store.update_task(task_id, household_id, data)
        if task is None:
            raise TaskActionError(RejectionReason.TASK_NOT_FOUND_OR_ACCESS_DENIED)

        # Re-check after the write: another process may have changed the chain
        if blocker_changed and task.blocked_by_task_id is not None:
            if await manager.would_create_cycle(task.id, task.blocked_by_task_id, household_id):
                log.warning("task.dependency.cycle_after_write", **context)
                raise TaskActionError(RejectionReason.CYCLIC_DEPENDENCY)

    log.info("task.updated", fields=sorted(data), **context)
    return task


async def delete_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    household_id: uuid.UUID,
) -> None:
    """Clear references to the task, then delete it, in one transaction."""
    manager = _manager(session)
    context = {"task_id": str(task_id), "household_id": str(household_id)}

    try:
        async with _household_write(session, household_id):
            await get_task_or_404(session, task_id, household_id)
            instruction = await manager.prepare_deletion(task_id, household_id)
            deleted = await instruction.apply(manager.store)
            if deleted is None:
                raise TaskActionError(RejectionReason.TASK_NOT_FOUND_OR_ACCESS_DENIED)
    except TaskActionError:
        raise
    except Exception as exc:
        log.error("task.delete_failed", error=str(exc), **context)
        raise

    log.info("task.deleted", cleared=len(instruction.dependent_ids), **context)
