"""
Per-household serialisation of blocked-by mutations.

Cycle detection reads the chain and then writes; two concurrent writers could
each pass the check and jointly close a loop. Every write that touches
``blocked_by_task_id`` therefore runs under the household's lock:

- an asyncio.Lock shared by all requests in this process, and
- on PostgreSQL, a transaction-scoped advisory lock so that other server
  processes queue behind the same household as well.
"""

from __future__ import annotations

import asyncio
import uuid
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

log = structlog.get_logger()


def advisory_key(household_id: uuid.UUID) -> int:
    """Map a household id onto the signed 64-bit key space of pg advisory locks."""
    return int.from_bytes(household_id.bytes[:8], "big", signed=True)


class HouseholdLocks:
    """Registry of in-process locks, one per household, dropped when unused."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def get(self, household_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(household_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[household_id] = lock
        return lock

    @asynccontextmanager
    async def hold(
        self, household_id: uuid.UUID, session: Optional[AsyncSession] = None
    ) -> AsyncIterator[None]:
        lock = self.get(household_id)
        async with lock:
            if session is not None and session.get_bind().dialect.name == "postgresql":
                # Released automatically at commit/rollback
                await session.execute(
                    text("SELECT pg_advisory_xact_lock(:key)"),
                    {"key": advisory_key(household_id)},
                )
            log.debug("household_lock.acquired", household_id=str(household_id))
            yield


household_locks = HouseholdLocks()
