import logging
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.routing import Mount, WebSocketRoute
import uvicorn

# Import FastAPI app
from student_hub.web.api.app import api
# Import admin routes
from student_hub.web.admin.routes import admin_routes
# Import chat components
from student_hub.web.chat.broadcast import ChatBroadcastEngine
from student_hub.web.chat.endpoint import chat_websocket
from student_hub.web.chat.registry import ConnectionRegistry
# Import settings and database lifecycle
from student_hub.shared.config import Settings, get_settings
from student_hub.shared.database import close_database, get_db_session_context, init_database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: Starlette):
    """Open the database for the whole process; mounted apps share it."""
    await init_database()
    logger.info("Student Hub started")
    try:
        yield
    finally:
        await close_database()
        logger.info("Student Hub stopped")


def create_app(settings: Settings | None = None, use_lifespan: bool = True) -> Starlette:
    """Build the ASGI application.

    Args:
        settings: Settings to use, defaults to the global ones
        use_lifespan: Connect to the database on startup; tests that manage
            their own engine pass False

    Returns:
        Starlette: Application with the API, admin panel and chat socket
    """
    settings = settings or get_settings()

    middleware = [
        Middleware(
            SessionMiddleware,
            secret_key=settings.web_session_secret,
            max_age=settings.admin_session_max_age,
            same_site="lax",
            https_only=settings.is_production,
        )
    ]

    routes = [
        WebSocketRoute("/ws", chat_websocket),
        # Mount the FastAPI application at /api
        Mount("/api", app=api),
        # Mount admin interface at /admin
        Mount("/admin", routes=admin_routes),
    ]

    app = Starlette(
        debug=settings.debug,
        routes=routes,
        middleware=middleware,
        lifespan=lifespan if use_lifespan else None,
    )

    registry = ConnectionRegistry()
    app.state.settings = settings
    api.state.settings = settings
    app.state.chat_registry = registry
    app.state.chat_engine = ChatBroadcastEngine(
        registry,
        session_factory=get_db_session_context,
        settings=settings,
    )
    return app


settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.web_host, port=settings.web_port, reload=settings.is_development)
