"""
Household endpoints (read-only; membership is managed elsewhere).
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, require_member
from app.core.database import get_session
from app.services.tasks import list_members
from household_tasks_shared.schemas.members import HouseholdMember

router = APIRouter()


@router.get("/members", response_model=List[HouseholdMember])
async def list_members_endpoint(
    household_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Household members, ordered by name, for assignee pickers."""
    members = await list_members(session, auth.household_id)
    return [
        HouseholdMember(id=m.id, name=m.name, email=m.email, image=m.image)
        for m in members
    ]
