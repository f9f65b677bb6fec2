# SQLModel definitions, imported here so metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .household import Household  # noqa: F401
from .user import User  # noqa: F401
from .category import Category  # noqa: F401
from .task import Task  # noqa: F401
