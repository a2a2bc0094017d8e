"""Authentication for the admin panel.

A single shared password, configured as ``ADMIN_PASSWORD``, unlocks the
panel. A successful login marks the signed cookie session as admin; the
cookie lifetime is set by the session middleware.
"""

from __future__ import annotations

import hmac
import json
import logging
from functools import wraps
from typing import Any, Callable, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse

from student_hub.shared.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def is_admin_authenticated(request: Request) -> bool:
    """Check if the current request is from an authenticated admin.

    Args:
        request: The Starlette request object

    Returns:
        True if admin is authenticated, False otherwise
    """
    return bool(request.session.get("is_admin"))


def _settings_for(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def check_password(candidate: str, settings: Optional[Settings] = None) -> bool:
    """Compare a candidate against the configured password in constant time.

    An empty configured password disables login entirely.
    """
    expected = (settings or get_settings()).admin_password
    if not expected or not isinstance(candidate, str):
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def admin_required(func: Callable) -> Callable:
    """Decorator to require admin authentication for view functions.

    Args:
        func: The view function to protect

    Returns:
        Wrapped function answering 401 JSON when not authenticated
    """
    @wraps(func)
    async def wrapper(request: Request) -> Any:
        if not is_admin_authenticated(request):
            return JSONResponse(
                {"detail": "Authentication required", "type": "unauthorized_error"},
                status_code=401,
            )

        return await func(request)
    return wrapper


async def login(request: Request) -> JSONResponse:
    """Admin login handler.

    POST ``{"password": ...}``. Sets ``is_admin`` in the session on success.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse(
            {"success": False, "message": "Request body must be JSON"},
            status_code=400,
        )

    password = payload.get("password") if isinstance(payload, dict) else None

    if not check_password(password, _settings_for(request)):
        logger.warning("Admin login failed", extra={"client": _client_host(request)})
        return JSONResponse(
            {"success": False, "message": "Invalid password"},
            status_code=401,
        )

    request.session["is_admin"] = True
    logger.info("Admin login successful", extra={"client": _client_host(request)})
    return JSONResponse({"success": True, "message": "Login successful"})


async def check(request: Request) -> JSONResponse:
    """Report whether the session belongs to a logged-in admin."""
    return JSONResponse({"loggedIn": is_admin_authenticated(request)})


async def logout(request: Request) -> JSONResponse:
    """Admin logout handler."""
    was_admin = is_admin_authenticated(request)
    request.session.clear()

    if was_admin:
        logger.info("Admin logout successful", extra={"client": _client_host(request)})

    return JSONResponse({"success": True, "message": "Logged out"})
