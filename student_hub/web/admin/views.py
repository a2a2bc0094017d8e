"""Admin panel views."""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from student_hub.shared.database import get_db_session_context
from student_hub.web.crud import (
    ChatMessageOperations,
    DatabaseOperationError,
    DiscussionOperations,
    ReplyOperations,
)

logger = logging.getLogger(__name__)


async def dashboard(request: Request) -> Response:
    """Admin dashboard with overall counts and live chat connections."""
    registry = getattr(request.app.state, "chat_registry", None)
    connections = len(registry) if registry is not None else 0

    try:
        async with get_db_session_context() as session:
            messages = await ChatMessageOperations().count_messages(session)
            discussions = await DiscussionOperations().count_discussions(session)
            replies = await ReplyOperations().count_replies(session)
    except DatabaseOperationError as e:
        logger.error(f"Failed to load dashboard statistics: {e}")
        return JSONResponse(
            {"detail": "Statistics are unavailable", "type": e.kind.value},
            status_code=500,
        )

    return JSONResponse({
        "messages": messages,
        "discussions": discussions,
        "replies": replies,
        "connections": connections,
    })
