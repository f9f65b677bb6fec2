"""Household member schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, UUID4


class HouseholdMember(BaseModel):
    """A user who belongs to the household, as shown in assignee pickers."""
    id: UUID4
    name: str
    email: str
    image: Optional[str] = None
