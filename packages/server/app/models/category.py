"""Category model (household-scoped)."""

import uuid

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class Category(UUIDMixin, SQLModel, table=True):
    __tablename__ = "categories"
    __table_args__ = (Index("idx_categories_household", "household_id"),)

    name: str = Field(nullable=False)
    color: str = Field(nullable=False, default="#6b7280")
    household_id: uuid.UUID = Field(foreign_key="households.id", nullable=False)
