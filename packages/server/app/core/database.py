"""
Database connection and session management.

Sessions handed out here never commit. Writes go through the task
services, which commit while still holding the household lock, so a commit
after the request would land outside that lock. Anything left uncommitted
when a scope ends is rolled back.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Create all tables (development only; use migrations in production)."""
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def session_scope(factory=async_session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Open a session from ``factory``; the caller owns the commit."""
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with session_scope() as session:
        yield session


def get_session_context():
    """Context manager for use outside of FastAPI request lifecycle."""
    return session_scope()
