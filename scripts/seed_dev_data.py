#!/usr/bin/env python3
"""Seed a development database with a demo household, members, categories and tasks.

Usage:
    python scripts/seed_dev_data.py

Requires HT_DATABASE_URL (or defaults to localhost). Tables are created if
missing. Tasks go through the task service, so blocked-by rules apply.
"""

import asyncio
import uuid

import structlog

from app.core.auth import create_jwt
from app.core.database import get_session_context, init_db
from app.core.logging_config import configure_logging
from app.models import Category, Household, User
from app.services.tasks import create_task, update_task
from household_tasks_shared.schemas.common import TaskPriority, TaskStatus
from household_tasks_shared.schemas.tasks import TaskCreate, TaskUpdate

# Deterministic UUIDs for reproducibility (version 4 layout)
HOUSEHOLD_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
ALICE_ID = uuid.UUID("00000000-0000-4000-8000-000000000010")
BOB_ID = uuid.UUID("00000000-0000-4000-8000-000000000011")
CATEGORY_IDS = [uuid.UUID(f"00000000-0000-4000-8000-0000000001{i:02d}") for i in range(2)]

log = structlog.get_logger()


async def seed():
    await init_db()

    async with get_session_context() as session:
        if await session.get(Household, HOUSEHOLD_ID):
            log.info("seed.skipped", reason="household already exists")
            return

        session.add(Household(id=HOUSEHOLD_ID, name="The Smiths"))
        await session.flush()
        session.add(User(id=ALICE_ID, name="Alice", email="alice@example.com", household_id=HOUSEHOLD_ID))
        session.add(User(id=BOB_ID, name="Bob", email="bob@example.com", household_id=HOUSEHOLD_ID))
        for cid, (name, color) in zip(CATEGORY_IDS, [("Kitchen", "#f59e0b"), ("Garden", "#10b981")]):
            session.add(Category(id=cid, name=name, color=color, household_id=HOUSEHOLD_ID))
        await session.commit()

        # A small chain: shopping -> cooking -> washing up
        shop = await create_task(
            session,
            TaskCreate(title="Buy groceries", priority=TaskPriority.HIGH, assignee_id=ALICE_ID,
                       category_id=CATEGORY_IDS[0]),
            HOUSEHOLD_ID,
        )
        cook = await create_task(
            session,
            TaskCreate(title="Cook dinner", assignee_id=BOB_ID, category_id=CATEGORY_IDS[0],
                       blocked_by_task_id=shop.id),
            HOUSEHOLD_ID,
        )
        await create_task(
            session,
            TaskCreate(title="Wash up", priority=TaskPriority.LOW, blocked_by_task_id=cook.id),
            HOUSEHOLD_ID,
        )
        mow = await create_task(
            session,
            TaskCreate(title="Mow the lawn", category_id=CATEGORY_IDS[1]),
            HOUSEHOLD_ID,
        )
        await update_task(session, mow.id, TaskUpdate(status=TaskStatus.DONE), HOUSEHOLD_ID)

    log.info(
        "seed.complete",
        household_id=str(HOUSEHOLD_ID),
        alice_token=create_jwt(ALICE_ID),
    )


if __name__ == "__main__":
    configure_logging(fmt="text")
    asyncio.run(seed())
