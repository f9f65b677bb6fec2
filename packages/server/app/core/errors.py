"""
Error types and exception handlers.

Rejections from task actions render as an ``APIResponse`` envelope,
``{"data": null, "error": {"code", "message", "status"}}``. Database failures
render as a generic OPERATION_FAILED without claiming anything about partial
state.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from starlette.requests import Request
from starlette.responses import JSONResponse

from household_tasks_shared.schemas.common import (
    REJECTION_MESSAGES,
    APIResponse,
    ErrorDetail,
    RejectionReason,
)

log = structlog.get_logger()

REJECTION_STATUS: dict[RejectionReason, int] = {
    RejectionReason.SELF_BLOCK: 422,
    RejectionReason.BLOCKER_NOT_FOUND: 422,
    RejectionReason.CYCLIC_DEPENDENCY: 409,
    RejectionReason.BLOCKED_BY_INCOMPLETE_TASK: 409,
    RejectionReason.TASK_NOT_FOUND_OR_ACCESS_DENIED: 404,
    RejectionReason.ASSIGNEE_NOT_IN_HOUSEHOLD: 422,
    RejectionReason.CATEGORY_NOT_IN_HOUSEHOLD: 422,
}


class TaskActionError(HTTPException):
    """A task mutation or lookup was refused for an expected reason."""

    def __init__(self, reason: RejectionReason):
        super().__init__(status_code=REJECTION_STATUS[reason], detail=REJECTION_MESSAGES[reason])
        self.reason = reason


def _envelope(code: str, message: str, status: int) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=APIResponse(error=ErrorDetail(code=code, message=message, status=status)).model_dump(),
    )


async def task_action_error_handler(request: Request, exc: TaskActionError) -> JSONResponse:
    return _envelope(exc.reason.value, exc.detail, exc.status_code)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error(
        "request.operation_failed",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return _envelope("OPERATION_FAILED", "The operation failed. Please try again.", 500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskActionError, task_action_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
