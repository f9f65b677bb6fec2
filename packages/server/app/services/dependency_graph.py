"""
Task dependency graph: the single blocked-by relation between tasks.

Each task names at most one blocker, so the graph is a forest of chains and
cycle detection is a walk along ``blocked_by_task_id`` links rather than a
general traversal. Rules enforced here:

- a blocker exists in the same household as the task
- a task never blocks itself
- the relation stays acyclic
- a task only becomes done once its blocker is done
- deleting a task first clears every reference to it

Expected rejections come back as ``GraphResult`` values; only store failures
raise.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Iterable, Optional, TypeVar

import structlog

from app.core.clock import Clock, SystemClock
from app.models.task import Task
from app.services.task_store import TaskStore
from household_tasks_shared.schemas.common import (
    REJECTION_MESSAGES,
    RejectionReason,
    TaskStatus,
)
from household_tasks_shared.schemas.tasks import TaskSummary

log = structlog.get_logger()

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GraphResult(Generic[T]):
    """Outcome of a validation: ``ok`` with an optional value, or a rejection."""

    ok: bool
    value: Optional[T] = None
    reason: Optional[RejectionReason] = None

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self.reason] if self.reason else ""

    @classmethod
    def success(cls, value: Optional[T] = None) -> "GraphResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def reject(cls, reason: RejectionReason) -> "GraphResult[T]":
        return cls(ok=False, reason=reason)


class TimestampAction(str, Enum):
    SET = "set"
    CLEAR = "clear"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class TimestampDecision:
    """What a status change does to ``completed_at``."""

    action: TimestampAction
    completed_at: Optional[datetime] = None

    def apply(self, fields: dict[str, Any]) -> None:
        if self.action == TimestampAction.SET:
            fields["completed_at"] = self.completed_at
        elif self.action == TimestampAction.CLEAR:
            fields["completed_at"] = None


UNCHANGED = TimestampDecision(TimestampAction.UNCHANGED)
CLEAR = TimestampDecision(TimestampAction.CLEAR)


@dataclass(frozen=True)
class CascadeInstruction:
    """Clear references to a task, then delete it. Order is fixed."""

    task_id: uuid.UUID
    household_id: uuid.UUID
    dependent_ids: tuple[uuid.UUID, ...] = field(default_factory=tuple)

    async def apply(self, store: TaskStore) -> Optional[Task]:
        """Run both steps against ``store``; returns the deleted task or None.

        Callers run this inside one transaction and roll back when the result
        is None or a step raises.
        """
        cleared = await store.clear_blocker_references(self.task_id, self.household_id)
        deleted = await store.delete_task(self.task_id, self.household_id)
        log.debug(
            "dependency_graph.cascade_applied",
            task_id=str(self.task_id),
            cleared=cleared,
            deleted=deleted is not None,
        )
        return deleted


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class TaskDependencyGraphManager:
    """Gatekeeper for writes touching ``blocked_by_task_id`` or ``status``."""

    def __init__(self, store: TaskStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or SystemClock()

    # -- chain walking ------------------------------------------------------

    async def would_create_cycle(
        self,
        task_id: Optional[uuid.UUID],
        blocker_id: uuid.UUID,
        household_id: uuid.UUID,
    ) -> bool:
        """True if ``task_id`` is reachable from ``blocker_id`` via blocked-by links.

        Setting ``task.blocked_by_task_id = blocker_id`` would then close a loop.
        """
        if task_id is None:
            return False

        # Each hop visits a new task, so the household size bounds the walk
        limit = await self.store.count_tasks(household_id) + 1
        visited: set[uuid.UUID] = set()
        current: Optional[uuid.UUID] = blocker_id
        for _ in range(limit):
            if current == task_id:
                return True
            if current is None or current in visited:
                return False
            visited.add(current)
            node = await self.store.get_task(current, household_id)
            if node is None:
                return False
            current = node.blocked_by_task_id

        # Only reachable when count_tasks is stale, e.g. a task inserted after the
        # count by a writer outside the household lock. Treated as a cycle.
        log.warning(
            "dependency_graph.walk_limit_reached",
            task_id=str(task_id),
            blocker_id=str(blocker_id),
            household_id=str(household_id),
            limit=limit,
        )
        return True

    async def blocking_chain(self, task: Task) -> list[Task]:
        """Upstream blockers of ``task``, nearest first. Stops on any revisit."""
        chain: list[Task] = []
        seen = {task.id}
        current = task.blocked_by_task_id
        while current is not None and current not in seen:
            seen.add(current)
            node = await self.store.get_task(current, task.household_id)
            if node is None:
                break
            chain.append(node)
            current = node.blocked_by_task_id
        return chain

    # -- validation ---------------------------------------------------------

    async def validate_blocking_assignment(
        self,
        task_id: Optional[uuid.UUID],
        proposed_blocker_id: Optional[uuid.UUID],
        household_id: uuid.UUID,
    ) -> GraphResult[None]:
        if proposed_blocker_id is None:
            return GraphResult.success()

        if proposed_blocker_id == task_id:
            return GraphResult.reject(RejectionReason.SELF_BLOCK)

        blocker = await self.store.get_task(proposed_blocker_id, household_id)
        if blocker is None:
            return GraphResult.reject(RejectionReason.BLOCKER_NOT_FOUND)

        if await self.would_create_cycle(task_id, proposed_blocker_id, household_id):
            log.info(
                "task.dependency.cycle_detected",
                task_id=str(task_id),
                blocker_id=str(proposed_blocker_id),
                household_id=str(household_id),
            )
            return GraphResult.reject(RejectionReason.CYCLIC_DEPENDENCY)

        return GraphResult.success()

    async def validate_status_transition(
        self,
        task: Task,
        proposed_status: TaskStatus,
        blocker: Optional[Task] = None,
        *,
        resolve_blocker: bool = True,
    ) -> GraphResult[TimestampDecision]:
        """Gate a status change and decide what happens to ``completed_at``.

        ``blocker`` is looked up from ``task.blocked_by_task_id`` when not given,
        unless ``resolve_blocker`` is False (the caller already resolved it,
        possibly to None). A reference to a task that no longer exists does not
        block completion.
        """
        current = TaskStatus(task.status)

        if proposed_status != TaskStatus.DONE:
            if current == TaskStatus.DONE:
                return GraphResult.success(CLEAR)
            return GraphResult.success(UNCHANGED)

        if current == TaskStatus.DONE:
            return GraphResult.success(UNCHANGED)

        if resolve_blocker and blocker is None and task.blocked_by_task_id is not None:
            blocker = await self.store.get_task(task.blocked_by_task_id, task.household_id)
        if blocker is not None and blocker.status != TaskStatus.DONE.value:
            return GraphResult.reject(RejectionReason.BLOCKED_BY_INCOMPLETE_TASK)

        return GraphResult.success(
            TimestampDecision(TimestampAction.SET, completed_at=self.clock.now())
        )

    # -- deletion -----------------------------------------------------------

    async def prepare_deletion(
        self, task_id: uuid.UUID, household_id: uuid.UUID
    ) -> CascadeInstruction:
        tasks = await self.store.list_tasks(household_id)
        dependent_ids = tuple(t.id for t in tasks if t.blocked_by_task_id == task_id)
        return CascadeInstruction(
            task_id=task_id, household_id=household_id, dependent_ids=dependent_ids
        )

    # -- queries ------------------------------------------------------------

    async def list_available_blockers(
        self, household_id: uuid.UUID, exclude_task_id: Optional[uuid.UUID] = None
    ) -> list[TaskSummary]:
        """Open tasks that could be offered as a blocker, by title.

        Presentation only: an assignment is re-checked for cycles when written.
        """
        tasks = await self.store.list_tasks(household_id)
        candidates = [
            t
            for t in tasks
            if t.status != TaskStatus.DONE.value and t.id != exclude_task_id
        ]
        candidates.sort(key=lambda t: (t.title.lower(), t.title, str(t.id)))
        return [TaskSummary(id=t.id, title=t.title, status=t.status) for t in candidates]

    @staticmethod
    def list_dependents(tasks: Iterable[Task]) -> dict[uuid.UUID, list[Task]]:
        """Group a batch of tasks by the blocker they name."""
        dependents: dict[uuid.UUID, list[Task]] = defaultdict(list)
        for task in tasks:
            if task.blocked_by_task_id is not None and task.blocked_by_task_id != task.id:
                dependents[task.blocked_by_task_id].append(task)
        return dict(dependents)
