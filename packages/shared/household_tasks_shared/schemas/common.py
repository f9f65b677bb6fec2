from enum import Enum
from typing import Optional
from pydantic import BaseModel

class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class RejectionReason(str, Enum):
    SELF_BLOCK = "SELF_BLOCK"
    BLOCKER_NOT_FOUND = "BLOCKER_NOT_FOUND"
    CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"
    BLOCKED_BY_INCOMPLETE_TASK = "BLOCKED_BY_INCOMPLETE_TASK"
    TASK_NOT_FOUND_OR_ACCESS_DENIED = "TASK_NOT_FOUND_OR_ACCESS_DENIED"
    ASSIGNEE_NOT_IN_HOUSEHOLD = "ASSIGNEE_NOT_IN_HOUSEHOLD"
    CATEGORY_NOT_IN_HOUSEHOLD = "CATEGORY_NOT_IN_HOUSEHOLD"

# One human-readable sentence per rejection, shown as-is by clients
REJECTION_MESSAGES: dict["RejectionReason", str] = {
    RejectionReason.SELF_BLOCK: "A task cannot block itself",
    RejectionReason.BLOCKER_NOT_FOUND: "Blocking task not found or does not belong to this household",
    RejectionReason.CYCLIC_DEPENDENCY: "Cannot create circular dependency",
    RejectionReason.BLOCKED_BY_INCOMPLETE_TASK: "Cannot complete task: blocked by an incomplete task",
    RejectionReason.TASK_NOT_FOUND_OR_ACCESS_DENIED: "Task not found or access denied",
    RejectionReason.ASSIGNEE_NOT_IN_HOUSEHOLD: "Assignee must be a member of the household",
    RejectionReason.CATEGORY_NOT_IN_HOUSEHOLD: "Category does not belong to this household",
}

class ErrorDetail(BaseModel):
    code: str
    message: str
    status: int

class APIResponse(BaseModel):
    data: Optional[object] = None
    error: Optional[ErrorDetail] = None
