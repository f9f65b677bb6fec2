"""
Shared fixtures: in-memory SQLite database, API client, and a fake task store.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

os.environ.setdefault("HT_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("HT_SECRET_KEY", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import create_jwt
from app.core.clock import FrozenClock
from app.core.database import get_session, session_scope
from app.main import app
from app.models import Category, Household, Task, User


# ---------------------------------------------------------------------------
# Fake store for manager unit tests
# ---------------------------------------------------------------------------


class FakeTaskStore:
    """Dict-backed TaskStore. Records call order; can yield to the loop on reads."""

    def __init__(self, *, yield_on_read: bool = False):
        self.tasks: dict[uuid.UUID, Task] = {}
        self.calls: list[str] = []
        self.yield_on_read = yield_on_read

    def add(self, task: Task) -> Task:
        self.tasks[task.id] = task
        return task

    async def _pause(self) -> None:
        if self.yield_on_read:
            await asyncio.sleep(0)

    async def get_task(self, task_id, household_id) -> Optional[Task]:
        self.calls.append("get_task")
        await self._pause()
        task = self.tasks.get(task_id)
        if task is None or task.household_id != household_id:
            return None
        return task

    async def list_tasks(self, household_id, task_filter=None) -> list[Task]:
        self.calls.append("list_tasks")
        await self._pause()
        return [t for t in self.tasks.values() if t.household_id == household_id]

    async def count_tasks(self, household_id) -> int:
        return len([t for t in self.tasks.values() if t.household_id == household_id])

    async def create_task(self, fields: dict[str, Any]) -> Task:
        self.calls.append("create_task")
        return self.add(Task(**fields))

    async def update_task(self, task_id, household_id, fields) -> Optional[Task]:
        self.calls.append("update_task")
        task = await self.get_task(task_id, household_id)
        if task is None:
            return None
        for key, value in fields.items():
            setattr(task, key, value)
        return task

    async def delete_task(self, task_id, household_id) -> Optional[Task]:
        self.calls.append("delete_task")
        task = self.tasks.get(task_id)
        if task is None or task.household_id != household_id:
            return None
        return self.tasks.pop(task_id)

    async def clear_blocker_references(self, blocker_id, household_id) -> int:
        self.calls.append("clear_blocker_references")
        count = 0
        for task in self.tasks.values():
            if task.household_id == household_id and task.blocked_by_task_id == blocker_id:
                task.blocked_by_task_id = None
                count += 1
        return count


def make_task(
    household_id: uuid.UUID,
    title: str = "Task",
    *,
    status: str = "todo",
    blocked_by: Optional[Task] = None,
    completed_at: Optional[datetime] = None,
) -> Task:
    return Task(
        household_id=household_id,
        title=title,
        status=status,
        blocked_by_task_id=blocked_by.id if blocked_by else None,
        completed_at=completed_at,
    )


@pytest.fixture
def household_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def store() -> FakeTaskStore:
    return FakeTaskStore()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def household(session) -> Household:
    h = Household(name="The Smiths")
    session.add(h)
    await session.commit()
    return h


@pytest.fixture
async def other_household(session) -> Household:
    h = Household(name="The Joneses")
    session.add(h)
    await session.commit()
    return h


@pytest.fixture
async def member(session, household) -> User:
    u = User(name="Alice", email="alice@example.com", household_id=household.id)
    session.add(u)
    await session.commit()
    return u


@pytest.fixture
async def outsider(session, other_household) -> User:
    u = User(name="Olga", email="olga@example.com", household_id=other_household.id)
    session.add(u)
    await session.commit()
    return u


@pytest.fixture
async def category(session, household) -> Category:
    c = Category(name="Kitchen", household_id=household.id)
    session.add(c)
    await session.commit()
    return c


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


@pytest.fixture
async def client(session_factory):
    async def _get_session():
        async with session_scope(session_factory) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(member) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_jwt(member.id)}"}
