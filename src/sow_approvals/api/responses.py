# src/sow_approvals/api/responses.py
"""
Standardized API Response Models

Provides consistent response envelopes for the approval endpoints:
- Standard success/error structure
- Error code standards and their HTTP status mapping
- Response helpers for common patterns

All API endpoints should use these models for consistency.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, TypeVar, Generic
from datetime import datetime, timezone
from enum import Enum

from fastapi.responses import JSONResponse


# -------------------------
# Error Codes
# -------------------------

class ErrorCode(str, Enum):
    """
    Standardized error codes for API responses.
    Format: {CATEGORY}_{SPECIFIC_ERROR}
    """
    # Validation errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    # Authorization (403)
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Resource errors (404/409)
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_STATE = "INVALID_STATE"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


# -------------------------
# HTTP Status Mappings
# -------------------------

ERROR_CODE_TO_HTTP_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.INVALID_INPUT: 400,

    ErrorCode.PERMISSION_DENIED: 403,

    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.INVALID_STATE: 409,

    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.SERVICE_UNAVAILABLE: 503,
}


def get_http_status(error_code: ErrorCode) -> int:
    """Get HTTP status code for an error code."""
    return ERROR_CODE_TO_HTTP_STATUS.get(error_code, 500)


# -------------------------
# Response Metadata
# -------------------------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResponseMeta(BaseModel):
    """Metadata included in all API responses."""
    timestamp: datetime = Field(default_factory=_utcnow)
    request_id: Optional[str] = None
    version: str = "1.0"


# -------------------------
# Error Details
# -------------------------

class ErrorDetail(BaseModel):
    """Detailed error information."""
    code: ErrorCode
    message: str
    detail: Optional[str] = None


# -------------------------
# Generic Response Models
# -------------------------

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """
    Standard API response envelope.

    All successful responses use this structure:
    {
        "success": true,
        "data": { ... },
        "meta": { "timestamp": "...", "version": "1.0" }
    }
    """
    success: bool = True
    data: Optional[T] = None
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class APIErrorResponse(BaseModel):
    """
    Standard error response envelope.

    {
        "success": false,
        "error": {
            "code": "INVALID_STATE",
            "message": "SOW is not under review",
            "detail": "Current status: rejected"
        },
        "meta": { "timestamp": "...", "version": "1.0" }
    }
    """
    success: bool = False
    error: ErrorDetail
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


# -------------------------
# Response Helpers
# -------------------------

def success_response(
    data: Any = None,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """Create a standard success response dict."""
    return APIResponse(
        data=data,
        meta=ResponseMeta(request_id=request_id)
    ).model_dump(mode="json")


def error_response(
    code: ErrorCode,
    message: str,
    detail: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a standard error response dict."""
    return APIErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            detail=detail,
        )
    ).model_dump(mode="json")


def error_json_response(
    code: ErrorCode,
    message: str,
    detail: Optional[str] = None,
) -> JSONResponse:
    """Create a JSONResponse carrying the error envelope and matching status."""
    return JSONResponse(
        status_code=get_http_status(code),
        content=error_response(code=code, message=message, detail=detail),
    )
