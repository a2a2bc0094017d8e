"""Admin interface package for Student Hub."""

from __future__ import annotations

__version__ = "1.0.0"

from .auth import admin_required, check, login, logout
from .views import dashboard
from .routes import admin_routes

__all__ = [
    "admin_required",
    "check",
    "login",
    "logout",
    "dashboard",
    "admin_routes"
]
