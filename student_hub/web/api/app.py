"""FastAPI application setup for the Student Hub API.

This module creates and configures the FastAPI application with lifespan
management, error handling and routing setup.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from student_hub.shared.config import get_settings
from student_hub.shared.database import init_database, close_database
from student_hub.shared.errors import ErrorKind
from student_hub.web.api.exceptions import error_json_response, get_request_id
from student_hub.web.api.routers.chat import router as chat_router
from student_hub.web.api.routers.discussions import router as discussions_router
from student_hub.web.api.routers.replies import router as replies_router
from student_hub.web.api.routers.tools import router as tools_router
from student_hub.web.api.routers.usernames import router as usernames_router
from student_hub.web.api.schemas import ErrorDetail, HealthResponse, ValidationErrorResponse
from student_hub.web.crud import DatabaseOperationError, NotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage FastAPI application lifespan when the API is served on its own.

    Args:
        app: FastAPI application instance

    Yields:
        None: Control to the application
    """
    settings = get_settings()

    try:
        await init_database()
        app.state.settings = settings
        yield
    finally:
        await close_database()


settings = get_settings()

api = FastAPI(
    title="Student Hub API",
    description="REST API for the student forum, chat history and academic calculators",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.api_docs_enabled else None,
    redoc_url="/redoc" if settings.api_docs_enabled else None,
    openapi_url="/openapi.json" if settings.api_docs_enabled else None,
)


@api.middleware("http")
async def add_request_id_middleware(request: Request, call_next):
    """Add request ID to request state for tracking."""
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["x-request-id"] = request_id
    return response


api.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else settings.cors_origins,
    allow_credentials=not settings.is_development,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _log_extra(request: Request, **extra) -> dict:
    return {
        "request_id": get_request_id(request),
        "url": str(request.url),
        "method": request.method,
        **extra,
    }


def _hide_internal(detail: str, fallback: str) -> str:
    current = get_settings()
    if current.is_development or (current.verbose_errors_enabled and not current.is_production):
        return detail
    return fallback


@api.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors.

    Args:
        request: FastAPI request object
        exc: Validation exception

    Returns:
        JSONResponse: 422 response listing every invalid field
    """
    errors = []
    for error in exc.errors():
        field_path = " -> ".join(str(loc) for loc in error["loc"])
        errors.append(ErrorDetail(
            code=error["type"],
            message=error["msg"],
            field=field_path
        ))

    logger.warning(
        "Validation error",
        extra=_log_extra(request, errors=[error.model_dump() for error in errors])
    )

    response = ValidationErrorResponse(
        detail="Request validation failed",
        errors=errors,
        timestamp=datetime.now(timezone.utc),
        request_id=get_request_id(request)
    )

    return JSONResponse(
        status_code=422,
        content=response.to_content()
    )


@api.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.info("Resource not found", extra=_log_extra(request, error=str(exc)))
    return error_json_response(str(exc), ErrorKind.NOT_FOUND, request)


@api.exception_handler(ValidationFailedError)
async def validation_failed_exception_handler(
    request: Request, exc: ValidationFailedError
) -> JSONResponse:
    logger.warning("Validation failed", extra=_log_extra(request, error=str(exc)))
    return error_json_response(str(exc), ErrorKind.VALIDATION_FAILED, request)


@api.exception_handler(DatabaseOperationError)
async def database_exception_handler(request: Request, exc: DatabaseOperationError) -> JSONResponse:
    """Handle DatabaseOperationError exceptions.

    Args:
        request: FastAPI request object
        exc: DatabaseOperationError exception

    Returns:
        JSONResponse: 500 error response
    """
    logger.error(f"Database operation error: {exc}", extra=_log_extra(request, error=str(exc)))

    detail = _hide_internal(f"Database error: {exc}", "A database error occurred")
    return error_json_response(detail, ErrorKind.PERSISTENCE_UNAVAILABLE, request)


@api.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions globally.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        JSONResponse: 500 error response
    """
    logger.exception(
        "Unhandled exception",
        extra=_log_extra(request, exception_type=type(exc).__name__)
    )

    detail = _hide_internal(f"Internal server error: {exc}", "Internal server error")
    return error_json_response(detail, ErrorKind.PERSISTENCE_UNAVAILABLE, request, status_code=500)


api.include_router(
    chat_router,
    prefix="/chat",
    tags=["Chat"]
)

api.include_router(
    usernames_router,
    prefix="/usernames",
    tags=["Usernames"]
)

api.include_router(
    discussions_router,
    prefix="/discussions",
    tags=["Discussions"]
)

api.include_router(
    replies_router,
    prefix="/replies",
    tags=["Replies"]
)

api.include_router(
    tools_router,
    prefix="/tools",
    tags=["Academic Tools"]
)


@api.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint for monitoring."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        timestamp=datetime.now(timezone.utc)
    )
