"""Base mixins for SQLModel tables.

Index names live on each table's ``__table_args__`` so the metadata matches
the migrations one to one; the mixins declare no indexes of their own.
"""

from datetime import datetime, timezone
import sqlalchemy as sa
from sqlmodel import Field, SQLModel
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin(SQLModel):
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
    # Bumped by the ORM on every flush that touches the row
    updated_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": _utcnow},
        sa_type=sa.DateTime(timezone=True),
    )


class UUIDMixin(SQLModel):
    # Primary key is indexed by the database already
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
