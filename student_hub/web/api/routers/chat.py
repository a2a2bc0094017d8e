"""Chat history endpoints for the Student Hub API."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Query

from student_hub.web.api.dependencies import AppSettings, DatabaseSession
from student_hub.web.api.schemas import ChatMessageResponse
from student_hub.web.crud import ChatMessageOperations

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/messages", response_model=List[ChatMessageResponse])
async def list_recent_messages(
    db: DatabaseSession,
    settings: AppSettings,
    limit: Optional[int] = Query(None, ge=1, le=500, description="Maximum number of messages")
) -> List[ChatMessageResponse]:
    """List the most recent chat messages in chronological order.

    Args:
        db: Database session
        settings: Application settings
        limit: Maximum number of messages, defaults to the configured history size

    Returns:
        List[ChatMessageResponse]: Messages, oldest first
    """
    messages = await ChatMessageOperations().list_recent_messages(
        db, limit=limit or settings.chat_history_limit
    )
    return [ChatMessageResponse.model_validate(message) for message in messages]
