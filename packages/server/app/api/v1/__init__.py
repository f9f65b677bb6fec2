"""
API v1 Router

All household-scoped endpoints are prefixed with /households/{household_id}.
"""

from fastapi import APIRouter
from . import households, tasks

router = APIRouter()

router.include_router(tasks.router, prefix="/households/{household_id}/tasks", tags=["Tasks"])
router.include_router(households.router, prefix="/households/{household_id}", tags=["Households"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/households/{household_id}/tasks",
            "/households/{household_id}/tasks/today",
            "/households/{household_id}/tasks/available-blockers",
            "/households/{household_id}/tasks/dependents",
            "/households/{household_id}/members",
        ],
    }
