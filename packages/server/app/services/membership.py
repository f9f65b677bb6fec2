"""
Household membership checks for users and categories.
"""

from __future__ import annotations

import uuid
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.category import Category
from app.models.user import User


class MembershipChecker(Protocol):
    async def is_user_in_household(self, user_id: uuid.UUID, household_id: uuid.UUID) -> bool: ...

    async def is_category_in_household(
        self, category_id: uuid.UUID, household_id: uuid.UUID
    ) -> bool: ...


class SqlMembershipChecker:
    """MembershipChecker backed by the users and categories tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def is_user_in_household(self, user_id: uuid.UUID, household_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            select(User.id).where(User.id == user_id, User.household_id == household_id)
        )
        return result.first() is not None

    async def is_category_in_household(
        self, category_id: uuid.UUID, household_id: uuid.UUID
    ) -> bool:
        result = await self.session.execute(
            select(Category.id).where(
                Category.id == category_id, Category.household_id == household_id
            )
        )
        return result.first() is not None

    async def list_members(self, household_id: uuid.UUID) -> list[User]:
        """Household members ordered by name, for assignee pickers."""
        result = await self.session.execute(
            select(User).where(User.household_id == household_id).order_by(User.name)
        )
        return list(result.scalars().all())
