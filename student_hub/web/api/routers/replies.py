"""Reply vote endpoint for the Student Hub API."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Path

from student_hub.web.api.dependencies import DatabaseSession, RequestMetadata
from student_hub.web.api.schemas import ReplyResponse, ReplyVoteRequest
from student_hub.web.crud import ReplyOperations

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{reply_id}/like", response_model=ReplyResponse)
async def like_reply(
    payload: ReplyVoteRequest,
    db: DatabaseSession,
    metadata: RequestMetadata,
    reply_id: UUID = Path(description="Reply ID")
) -> ReplyResponse:
    """Apply a like, dislike or neutral event to a reply.

    The counter is shared by all guests; the client sends the event that
    moves it from its previous vote to its new one.
    """
    reply = await ReplyOperations().apply_vote_event(db, reply_id, payload.event)
    await db.commit()

    logger.debug(
        "Reply vote applied",
        extra={**metadata, "reply_id": str(reply_id), "event": payload.event}
    )
    return ReplyResponse.model_validate(reply)
