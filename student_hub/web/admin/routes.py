"""Admin interface routing configuration."""

from __future__ import annotations

from starlette.routing import Route

from student_hub.web.admin.auth import (
    admin_required,
    check,
    login,
    logout,
)
from student_hub.web.admin.views import dashboard


# Define admin routes
admin_routes = [
    # Authentication routes
    Route("/login", login, methods=["POST"], name="admin_login"),
    Route("/check", check, methods=["GET"], name="admin_check"),
    Route("/logout", logout, methods=["GET", "POST"], name="admin_logout"),
    # Dashboard
    Route("/", admin_required(dashboard), name="admin_dashboard"),
]
