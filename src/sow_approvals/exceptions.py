# src/sow_approvals/exceptions.py
"""
Workflow Exceptions

Every failure the approval workflow reports to its callers is a WorkflowError
carrying an ErrorCode. The API layer turns them into the standard error
envelope; services and repositories only raise them.
"""

from typing import Optional

from .api.responses import ErrorCode


class WorkflowError(Exception):
    """Base class for approval workflow failures."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {
            "code": self.error_code.value,
            "message": self.message,
            "detail": self.detail,
        }


class NotFoundError(WorkflowError):
    """SOW, stage or approval record does not exist."""
    error_code = ErrorCode.NOT_FOUND


class InvalidStateError(WorkflowError):
    """Operation is not legal in the SOW's or approval's current state."""
    error_code = ErrorCode.INVALID_STATE


class ConflictError(WorkflowError):
    """A concurrent writer changed the record between read and write."""
    error_code = ErrorCode.CONFLICT


class ValidationError(WorkflowError):
    """Caller supplied invalid input (unknown decision, missing comment)."""
    error_code = ErrorCode.INVALID_INPUT


class PermissionDeniedError(WorkflowError):
    """Actor is not allowed to decide the stage."""
    error_code = ErrorCode.PERMISSION_DENIED


class CollaboratorUnavailableError(WorkflowError):
    """An external collaborator could not be reached."""
    error_code = ErrorCode.SERVICE_UNAVAILABLE


class StoreUnavailableError(CollaboratorUnavailableError):
    """The approval record store failed; the operation cannot proceed."""
