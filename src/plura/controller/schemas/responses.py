"""Response schemas for the Plura API.

Consistent envelopes for error responses and offset-paginated listings.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    field: Optional[str] = Field(None, description="Field name if validation error")
    details: Optional[Dict[str, Any]] = Field(
        None, description="Additional error context"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "code": "BAD_REQUEST",
                "message": "Subaccount ID is required",
                "field": "subaccountId",
            }
        }


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = Field(False, description="Always false for errors")
    error: ErrorDetail = Field(..., description="Error details")
    errors: Optional[List[ErrorDetail]] = Field(
        None, description="Multiple errors (e.g., validation)"
    )
    timestamp: datetime = Field(
        default_factory=_utc_now, description="Error timestamp (UTC)"
    )
    request_id: Optional[str] = Field(None, description="Request ID for tracing")
    path: Optional[str] = Field(None, description="API path that caused the error")
    method: Optional[str] = Field(None, description="HTTP method")

    stack_trace: Optional[str] = Field(
        None, description="Stack trace (development only)"
    )
    debug_info: Optional[Dict[str, Any]] = Field(
        None, description="Debug information (development only)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": {
                    "code": "RESOURCE_NOT_FOUND",
                    "message": "Funnel not found: 2f1c...",
                    "details": {"resource": "Funnel", "resource_id": "2f1c..."},
                },
                "timestamp": "2026-02-18T00:00:00Z",
                "request_id": "req_abc123",
                "path": "/api/funnels/2f1c.../pages",
                "method": "GET",
            }
        }


class OffsetPagination(BaseModel):
    """Offset/limit pagination metadata used by listing endpoints."""

    total: int = Field(..., ge=0, description="Total number of matching items")
    limit: int = Field(..., ge=1, description="Requested page size")
    offset: int = Field(..., ge=0, description="Requested offset")
    hasMore: bool = Field(..., description="Whether more items exist past this page")


def error_response(
    code: str,
    message: str,
    field: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    errors: Optional[List[ErrorDetail]] = None,
    request_id: Optional[str] = None,
    path: Optional[str] = None,
    method: Optional[str] = None,
    stack_trace: Optional[str] = None,
    debug_info: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Create an error response."""
    return ErrorResponse(
        error=ErrorDetail(code=code, message=message, field=field, details=details),
        errors=errors,
        request_id=request_id,
        path=path,
        method=method,
        stack_trace=stack_trace,
        debug_info=debug_info,
    ).model_dump(mode="json", exclude_none=True)


def offset_pagination(total: int, limit: int, offset: int) -> Dict[str, Any]:
    """Build pagination metadata for an offset/limit listing."""
    return OffsetPagination(
        total=total,
        limit=limit,
        offset=offset,
        hasMore=offset + limit < total,
    ).model_dump()
