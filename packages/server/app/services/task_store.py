"""
Task persistence, scoped by household.

``TaskStore`` is the interface the dependency graph manager depends on;
``SqlTaskStore`` implements it on an async SQLModel session. The store only
flushes: committing (and rolling back) belongs to the caller so that several
store calls can form one transaction.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

import sqlalchemy as sa
from sqlalchemy import func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.task import Task
from household_tasks_shared.schemas.common import TaskStatus
from household_tasks_shared.schemas.tasks import TaskFilter


class TaskStore(Protocol):
    async def get_task(self, task_id: uuid.UUID, household_id: uuid.UUID) -> Optional[Task]: ...

    async def list_tasks(
        self, household_id: uuid.UUID, task_filter: Optional[TaskFilter] = None
    ) -> Sequence[Task]: ...

    async def count_tasks(self, household_id: uuid.UUID) -> int: ...

    async def create_task(self, fields: dict[str, Any]) -> Task: ...

    async def update_task(
        self, task_id: uuid.UUID, household_id: uuid.UUID, fields: dict[str, Any]
    ) -> Optional[Task]: ...

    async def delete_task(self, task_id: uuid.UUID, household_id: uuid.UUID) -> Optional[Task]: ...

    async def clear_blocker_references(
        self, blocker_id: uuid.UUID, household_id: uuid.UUID
    ) -> int: ...


# Listing order: open work first, most urgent first, earliest due first
_STATUS_ORDER = sa.case(
    {TaskStatus.TODO.value: 0, TaskStatus.IN_PROGRESS.value: 1, TaskStatus.DONE.value: 2},
    value=Task.status,
    else_=3,
)
_PRIORITY_ORDER = sa.case(
    {"high": 0, "medium": 1, "low": 2},
    value=Task.priority,
    else_=3,
)


class SqlTaskStore:
    """TaskStore backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_task(self, task_id: uuid.UUID, household_id: uuid.UUID) -> Optional[Task]:
        result = await self.session.execute(
            select(Task).where(Task.id == task_id, Task.household_id == household_id)
        )
        return result.scalar_one_or_none()

    async def list_tasks(
        self, household_id: uuid.UUID, task_filter: Optional[TaskFilter] = None
    ) -> list[Task]:
        stmt = select(Task).where(Task.household_id == household_id)

        if task_filter:
            if task_filter.status:
                stmt = stmt.where(Task.status == task_filter.status.value)
            if task_filter.assignee_id:
                stmt = stmt.where(Task.assignee_id == task_filter.assignee_id)
            if task_filter.category_id:
                stmt = stmt.where(Task.category_id == task_filter.category_id)
            if task_filter.priority:
                stmt = stmt.where(Task.priority == task_filter.priority.value)
            if task_filter.due_before:
                stmt = stmt.where(Task.due_date <= task_filter.due_before)
            if task_filter.search:
                pattern = f"%{task_filter.search}%"
                stmt = stmt.where(
                    or_(Task.title.ilike(pattern), Task.description.ilike(pattern))
                )

        stmt = stmt.order_by(
            _STATUS_ORDER,
            _PRIORITY_ORDER,
            Task.due_date.is_(None),
            Task.due_date,
            Task.created_at,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_open_tasks_due_by(
        self, household_id: uuid.UUID, cutoff: datetime
    ) -> list[Task]:
        """Non-done tasks due at or before ``cutoff``, earliest due first."""
        result = await self.session.execute(
            select(Task)
            .where(
                Task.household_id == household_id,
                Task.status != TaskStatus.DONE.value,
                Task.due_date <= cutoff,
            )
            .order_by(Task.due_date, _PRIORITY_ORDER)
        )
        return list(result.scalars().all())

    async def list_tasks_by_ids(
        self, task_ids: Sequence[uuid.UUID], household_id: uuid.UUID
    ) -> list[Task]:
        if not task_ids:
            return []
        result = await self.session.execute(
            select(Task).where(Task.household_id == household_id, Task.id.in_(task_ids))
        )
        return list(result.scalars().all())

    async def list_blocked_by(
        self, blocker_ids: Sequence[uuid.UUID], household_id: uuid.UUID
    ) -> list[Task]:
        """Tasks whose blocker is one of ``blocker_ids``, ordered by title."""
        if not blocker_ids:
            return []
        result = await self.session.execute(
            select(Task)
            .where(
                Task.household_id == household_id,
                Task.blocked_by_task_id.in_(blocker_ids),
            )
            .order_by(Task.title)
        )
        return list(result.scalars().all())

    async def count_tasks(self, household_id: uuid.UUID) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Task).where(Task.household_id == household_id)
        )
        return result.scalar_one()

    async def create_task(self, fields: dict[str, Any]) -> Task:
        task = Task(**fields)
        self.session.add(task)
        await self.session.flush()
        return task

    async def update_task(
        self, task_id: uuid.UUID, household_id: uuid.UUID, fields: dict[str, Any]
    ) -> Optional[Task]:
        task = await self.get_task(task_id, household_id)
        if task is None:
            return None
        for key, value in fields.items():
            if hasattr(task, key):
                setattr(task, key, value)
        self.session.add(task)
        await self.session.flush()
        return task

    async def delete_task(self, task_id: uuid.UUID, household_id: uuid.UUID) -> Optional[Task]:
        task = await self.get_task(task_id, household_id)
        if task is None:
            return None
        await self.session.delete(task)
        await self.session.flush()
        return task

    async def clear_blocker_references(
        self, blocker_id: uuid.UUID, household_id: uuid.UUID
    ) -> int:
        result = await self.session.execute(
            update(Task)
            .where(
                Task.blocked_by_task_id == blocker_id,
                Task.household_id == household_id,
            )
            .values(blocked_by_task_id=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
