"""FastAPI dependencies for database access and request context."""

from __future__ import annotations

import logging
from typing import Annotated, AsyncGenerator, Dict

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from student_hub.shared.config import Settings, get_settings
from student_hub.shared.database import get_db_session

logger = logging.getLogger(__name__)


async def get_database_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting database session.

    Routers commit explicitly after a successful write; an exception raised
    inside the request rolls the session back.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_db_session():
        yield session


def get_app_settings(request: Request) -> Settings:
    """Settings stored on the application at startup, or the global ones."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_request_metadata(request: Request) -> Dict[str, str]:
    """Collect request details for structured logging.

    Args:
        request: FastAPI request object

    Returns:
        Dict[str, str]: Request id, method, path and client address
    """
    return {
        "request_id": getattr(request.state, "request_id", ""),
        "method": request.method,
        "path": request.url.path,
        "client": request.client.host if request.client else "",
    }


DatabaseSession = Annotated[AsyncSession, Depends(get_database_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
RequestMetadata = Annotated[Dict[str, str], Depends(get_request_metadata)]
