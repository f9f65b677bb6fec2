"""User model."""

from typing import Optional
import uuid

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_email", "email", unique=True),
        Index("idx_users_household", "household_id"),
    )

    name: str = Field(nullable=False)
    email: str = Field(unique=True, nullable=False)
    image: Optional[str] = None
    # Null until the user joins a household
    household_id: Optional[uuid.UUID] = Field(default=None, foreign_key="households.id")
