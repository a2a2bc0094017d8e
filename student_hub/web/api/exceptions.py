"""Common exception utilities for API endpoints.

This module provides utilities for consistent error handling across all API
endpoints: building the standard error body and mapping error kinds to HTTP
status codes.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from student_hub.shared.errors import ErrorKind
from student_hub.web.api.schemas import ErrorResponse

STATUS_BY_KIND = {
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PERSISTENCE_UNAVAILABLE: 500,
    ErrorKind.TRANSPORT_CLOSED: 503,
}


def get_request_id(request: Optional[Request]) -> str:
    """Request ID assigned by the middleware, or a fresh one."""
    if request is None:
        return str(uuid.uuid4())
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def build_error_response(
    detail: str,
    kind: ErrorKind,
    request: Optional[Request] = None
) -> ErrorResponse:
    """Create the standard error body.

    Args:
        detail: Error message
        kind: Error kind, reported as the body's ``type``
        request: Optional request object for request ID

    Returns:
        ErrorResponse: Error body ready for serialization
    """
    return ErrorResponse(
        detail=detail,
        type=ErrorKind(kind).value,
        timestamp=datetime.now(timezone.utc),
        request_id=get_request_id(request),
    )


def error_json_response(
    detail: str,
    kind: ErrorKind,
    request: Optional[Request] = None,
    status_code: Optional[int] = None
) -> JSONResponse:
    """Create a JSONResponse carrying the standard error body."""
    body = build_error_response(detail, kind, request)
    return JSONResponse(
        status_code=status_code or STATUS_BY_KIND[ErrorKind(kind)],
        content=body.to_content()
    )


def create_http_exception(
    status_code: int,
    detail: str,
    kind: ErrorKind,
    request: Optional[Request] = None
) -> HTTPException:
    """Create a standardized HTTPException with proper error format.

    Args:
        status_code: HTTP status code
        detail: Error message
        kind: Error kind
        request: Optional request object for request ID

    Returns:
        HTTPException: Formatted exception
    """
    error_response = build_error_response(detail, kind, request)

    return HTTPException(
        status_code=status_code,
        detail=error_response.to_content()
    )


def create_validation_error(
    detail: str,
    request: Optional[Request] = None
) -> HTTPException:
    """Create a 400 validation error."""
    return create_http_exception(
        status_code=400,
        detail=detail,
        kind=ErrorKind.VALIDATION_FAILED,
        request=request
    )
