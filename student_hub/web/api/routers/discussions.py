"""Discussion forum endpoints for the Student Hub API.

This module provides REST API endpoints for starting discussions, reading
them with their reply trees, listing them per category and recording likes.
"""

from __future__ import annotations

import logging
from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Path, Query

from student_hub.shared.date_provider import get_date_provider
from student_hub.shared.reply_tree import ReplyNode, build_reply_tree
from student_hub.web.api.dependencies import AppSettings, DatabaseSession, RequestMetadata
from student_hub.web.api.schemas import (
    CategoryStats,
    DiscussionCreate,
    DiscussionCreateResponse,
    DiscussionLikeRequest,
    DiscussionResponse,
    DiscussionSummary,
    ReplyCreate,
    ReplyResponse,
    ReplyTreeNode,
)
from student_hub.web.crud import (
    DiscussionListing,
    DiscussionOperations,
    DiscussionThread,
    ReplyOperations,
)
from student_hub.web.models import DiscussionCategory, DiscussionSort, TimeRange

logger = logging.getLogger(__name__)

router = APIRouter()


def _tree_node(node: ReplyNode) -> ReplyTreeNode:
    return ReplyTreeNode.model_validate(node.reply).model_copy(
        update={"child_replies": [_tree_node(child) for child in node.child_replies]}
    )


def build_discussion_response(thread: DiscussionThread) -> DiscussionResponse:
    """Serialize a discussion with flat replies and the derived reply forest.

    Args:
        thread: Discussion and its replies in creation order

    Returns:
        DiscussionResponse: Response model with ``replies`` and ``replyTree``
    """
    replies = [ReplyResponse.model_validate(reply) for reply in thread.replies]
    reply_tree = [_tree_node(root) for root in build_reply_tree(thread.replies)]
    return DiscussionResponse.model_validate(thread.discussion).model_copy(
        update={
            "reply_count": len(replies),
            "replies": replies,
            "reply_tree": reply_tree,
        }
    )


def _summaries(listings: List[DiscussionListing]) -> List[DiscussionSummary]:
    return [
        DiscussionSummary.model_validate(listing.discussion).model_copy(
            update={"reply_count": listing.reply_count}
        )
        for listing in listings
    ]


@router.post("", response_model=DiscussionCreateResponse, status_code=201)
async def create_discussion(
    payload: DiscussionCreate,
    db: DatabaseSession,
    metadata: RequestMetadata
) -> DiscussionCreateResponse:
    """Start a new discussion.

    Args:
        payload: Title, content, category and author name
        db: Database session
        metadata: Request details for logging

    Returns:
        DiscussionCreateResponse: ID of the new discussion
    """
    discussion = await DiscussionOperations().create_discussion(
        db,
        title=payload.title,
        content=payload.content,
        category=payload.category,
        guest_name=payload.guest_name,
    )
    await db.commit()

    logger.info(
        "Discussion created",
        extra={**metadata, "discussion_id": str(discussion.id), "category": discussion.category}
    )
    return DiscussionCreateResponse(id=discussion.id)


@router.get("/recent", response_model=List[DiscussionSummary])
async def list_recent_discussions(
    db: DatabaseSession,
    settings: AppSettings
) -> List[DiscussionSummary]:
    """List the first discussions ever created, oldest first."""
    listings = await DiscussionOperations().list_recent(db, limit=settings.recent_discussions_limit)
    return _summaries(listings)


@router.get("/category-stats", response_model=Dict[str, CategoryStats])
async def category_stats(db: DatabaseSession) -> Dict[str, CategoryStats]:
    """Thread and reply counts for every category."""
    stats = await DiscussionOperations().category_stats(db)
    return {category: CategoryStats(**counts) for category, counts in stats.items()}


@router.get("/categories/{category}", response_model=List[DiscussionSummary])
async def list_discussions_by_category(
    db: DatabaseSession,
    settings: AppSettings,
    category: DiscussionCategory = Path(description="Forum category"),
    sort_by: DiscussionSort = Query(DiscussionSort.LATEST, alias="sortBy", description="Ordering"),
    time_range: TimeRange = Query(TimeRange.ALL_TIME, alias="timeRange", description="Creation window")
) -> List[DiscussionSummary]:
    """List discussions of one category.

    Args:
        db: Database session
        settings: Application settings
        category: Forum category
        sort_by: latest, popular or unanswered
        time_range: all-time, today, this-week or this-month

    Returns:
        List[DiscussionSummary]: One page of discussions with reply counts
    """
    listings = await DiscussionOperations().list_by_category(
        db,
        category=category,
        sort_by=sort_by,
        time_range=time_range,
        limit=settings.category_page_size,
        now=get_date_provider().utcnow(),
    )
    return _summaries(listings)


@router.get("/{discussion_id}", response_model=DiscussionResponse)
async def get_discussion(
    db: DatabaseSession,
    discussion_id: UUID = Path(description="Discussion ID")
) -> DiscussionResponse:
    """Return a discussion with all of its replies."""
    thread = await DiscussionOperations().get_discussion(db, discussion_id)
    return build_discussion_response(thread)


@router.post("/{discussion_id}/view", response_model=DiscussionResponse)
async def view_discussion(
    db: DatabaseSession,
    discussion_id: UUID = Path(description="Discussion ID")
) -> DiscussionResponse:
    """Count one view of a discussion and return it with all replies."""
    discussion_ops = DiscussionOperations()
    await discussion_ops.record_view(db, discussion_id)
    thread = await discussion_ops.get_discussion(db, discussion_id)
    await db.commit()
    return build_discussion_response(thread)


@router.post("/{discussion_id}/like", response_model=DiscussionResponse)
async def like_discussion(
    payload: DiscussionLikeRequest,
    db: DatabaseSession,
    metadata: RequestMetadata,
    discussion_id: UUID = Path(description="Discussion ID")
) -> DiscussionResponse:
    """Apply a like or unlike event and return the updated discussion."""
    thread = await DiscussionOperations().apply_like_event(db, discussion_id, payload.event)
    await db.commit()

    logger.debug(
        "Discussion like event applied",
        extra={**metadata, "discussion_id": str(discussion_id), "event": payload.event}
    )
    return build_discussion_response(thread)


@router.post("/{discussion_id}/touch", response_model=DiscussionResponse)
async def touch_discussion(
    db: DatabaseSession,
    discussion_id: UUID = Path(description="Discussion ID")
) -> DiscussionResponse:
    """Refresh the discussion's update time without changing it."""
    thread = await DiscussionOperations().touch(db, discussion_id)
    await db.commit()
    return build_discussion_response(thread)


@router.post("/{discussion_id}/replies", response_model=DiscussionResponse, status_code=201)
async def create_reply(
    payload: ReplyCreate,
    db: DatabaseSession,
    metadata: RequestMetadata,
    discussion_id: UUID = Path(description="Discussion ID")
) -> DiscussionResponse:
    """Reply to a discussion, or to one of its replies.

    Returns:
        DiscussionResponse: The discussion with the new reply included
    """
    reply = await ReplyOperations().create_reply(
        db,
        discussion_id=discussion_id,
        content=payload.content,
        guest_name=payload.guest_name,
        parent_reply_id=payload.parent_reply_id,
    )
    await db.commit()

    logger.info(
        "Reply created",
        extra={
            **metadata,
            "discussion_id": str(discussion_id),
            "reply_id": str(reply.id),
            "parent_reply_id": str(payload.parent_reply_id) if payload.parent_reply_id else None,
        }
    )

    thread = await DiscussionOperations().get_discussion(db, discussion_id)
    return build_discussion_response(thread)
