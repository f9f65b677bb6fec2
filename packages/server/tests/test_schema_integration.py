"""Schema tests: the initial migration against the SQLModel metadata.

The migration runs through alembic's ``Operations`` on a fresh in-memory
SQLite database, so no server is needed. The database is inspected after
``upgrade`` and again after ``downgrade``.
"""

import importlib.util
from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic.runtime.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.models import Task

MIGRATION = Path(__file__).resolve().parent.parent / "alembic" / "versions" / "0001_initial_schema.py"
TABLES = {"households", "users", "categories", "tasks"}


def _load_migration():
    spec = importlib.util.spec_from_file_location("initial_schema", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _run(step):
    def _apply(sync_conn):
        with Operations.context(MigrationContext.configure(sync_conn)):
            step()

    return _apply


def _snapshot(sync_conn) -> dict:
    inspector = sa.inspect(sync_conn)
    snapshot = {}
    for name in inspector.get_table_names():
        snapshot[name] = {
            "columns": {c["name"] for c in inspector.get_columns(name)},
            "checks": {c["name"] for c in inspector.get_check_constraints(name)},
            "indexes": {i["name"] for i in inspector.get_indexes(name)},
            "references": {fk["referred_table"] for fk in inspector.get_foreign_keys(name)},
        }
    return snapshot


def _metadata_snapshot(name: str) -> dict:
    table = SQLModel.metadata.tables[name]
    return {
        "columns": set(table.columns.keys()),
        "checks": {
            c.name for c in table.constraints if isinstance(c, sa.CheckConstraint) and c.name
        },
        "indexes": {i.name for i in table.indexes},
        "references": {fk.column.table.name for fk in table.foreign_keys},
    }


@pytest.fixture
async def bare_engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield eng
    await eng.dispose()


@pytest.fixture
def migration():
    return _load_migration()


# ---------------------------------------------------------------------------
# Migration
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_upgrade_creates_every_model_table(bare_engine, migration):
    async with bare_engine.begin() as conn:
        await conn.run_sync(_run(migration.upgrade))
        snapshot = await conn.run_sync(_snapshot)

    assert set(snapshot) == TABLES
    assert TABLES == set(SQLModel.metadata.tables)


@pytest.mark.asyncio
@pytest.mark.parametrize("table", sorted(TABLES))
async def test_upgrade_matches_metadata(bare_engine, migration, table):
    async with bare_engine.begin() as conn:
        await conn.run_sync(_run(migration.upgrade))
        snapshot = await conn.run_sync(_snapshot)

    assert snapshot[table] == _metadata_snapshot(table)


@pytest.mark.asyncio
async def test_task_checks_and_indexes_present(bare_engine, migration):
    async with bare_engine.begin() as conn:
        await conn.run_sync(_run(migration.upgrade))
        snapshot = await conn.run_sync(_snapshot)

    assert snapshot["tasks"]["checks"] == {"valid_status", "valid_priority", "no_self_block"}
    assert {"idx_tasks_status", "idx_tasks_due_date"} <= snapshot["tasks"]["indexes"]


@pytest.mark.asyncio
async def test_downgrade_drops_everything(bare_engine, migration):
    async with bare_engine.begin() as conn:
        await conn.run_sync(_run(migration.upgrade))
        await conn.run_sync(_run(migration.downgrade))
        snapshot = await conn.run_sync(_snapshot)

    assert snapshot == {}


# ---------------------------------------------------------------------------
# Model-level constraints
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unknown_status_rejected_by_database(session, household):
    session.add(Task(household_id=household.id, title="Mop", status="bogus"))
    with pytest.raises(IntegrityError, match="valid_status"):
        await session.flush()
    await session.rollback()


@pytest.mark.asyncio
async def test_unknown_priority_rejected_by_database(session, household):
    session.add(Task(household_id=household.id, title="Mop", priority="urgent"))
    with pytest.raises(IntegrityError, match="valid_priority"):
        await session.flush()
    await session.rollback()
