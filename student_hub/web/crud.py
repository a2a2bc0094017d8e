"""Database operations for the Student Hub application.

This module provides CRUD operations for chat messages, discussions and
replies. All operations are async, use SQLAlchemy 2.0 syntax and leave
transaction boundaries (commit/rollback) to the caller.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import select, update, func, desc, asc
from sqlalchemy.ext.asyncio import AsyncSession

from student_hub.shared.database import utcnow
from student_hub.shared.date_provider import get_date_provider
from student_hub.shared.errors import ErrorKind
from student_hub.web.models import (
    ChatMessage,
    Discussion,
    DiscussionCategory,
    DiscussionLikeEvent,
    DiscussionSort,
    Reply,
    ReplyVoteEvent,
    TimeRange,
)

DEFAULT_SENDER = "Guest"
DEFAULT_GUEST_NAME = "Anonymous"

_LIKE_DELTAS = {
    DiscussionLikeEvent.LIKE: 1,
    DiscussionLikeEvent.UNLIKE: -1,
}

_VOTE_DELTAS = {
    ReplyVoteEvent.LIKE: 1,
    ReplyVoteEvent.DISLIKE: -1,
    ReplyVoteEvent.NEUTRAL: 0,
}


class DatabaseOperationError(Exception):
    """Base exception for database operations."""

    kind: ErrorKind = ErrorKind.PERSISTENCE_UNAVAILABLE


class NotFoundError(DatabaseOperationError):
    """Raised when a requested resource is not found."""

    kind = ErrorKind.NOT_FOUND


class ValidationFailedError(DatabaseOperationError):
    """Raised when input violates a data model invariant."""

    kind = ErrorKind.VALIDATION_FAILED


@dataclass
class DiscussionThread:
    """A discussion with its replies in display order."""

    discussion: Discussion
    replies: List[Reply]


@dataclass
class DiscussionListing:
    """A discussion with the number of replies it has received."""

    discussion: Discussion
    reply_count: int


def _as_uuid(value: Union[UUID, str], resource: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as e:
        raise NotFoundError(f"{resource} not found: {value}") from e


def time_range_start(time_range: TimeRange, now: datetime) -> Optional[datetime]:
    """Earliest creation time included by a listing window.

    Args:
        time_range: Requested window
        now: Reference time; "today" starts at midnight in its timezone

    Returns:
        Optional[datetime]: Lower bound, or None for all-time
    """
    time_range = TimeRange(time_range)
    if time_range is TimeRange.TODAY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if time_range is TimeRange.THIS_WEEK:
        return now - timedelta(days=7)
    if time_range is TimeRange.THIS_MONTH:
        year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
        day = min(now.day, calendar.monthrange(year, month)[1])
        return now.replace(year=year, month=month, day=day)
    return None


class ChatMessageOperations:
    """Database operations for the shared chat room."""

    async def create_message(
        self,
        session: AsyncSession,
        content: Optional[str],
        sender: Optional[str] = None,
        max_length: Optional[int] = None
    ) -> ChatMessage:
        """Persist a new chat message.

        Args:
            session: Database session
            content: Message text; surrounding whitespace is removed
            sender: Display name, "Guest" when empty or missing
            max_length: Optional upper bound on content length

        Returns:
            ChatMessage: Created message with id and timestamp assigned

        Raises:
            ValidationFailedError: If content is empty or too long
            DatabaseOperationError: If the write fails
        """
        text = (content or "").strip()
        if not text:
            raise ValidationFailedError("Message content cannot be empty")
        if max_length is not None and len(text) > max_length:
            raise ValidationFailedError(f"Message content exceeds {max_length} characters")

        name = (sender or "").strip()[:100] or DEFAULT_SENDER

        try:
            message = ChatMessage(content=text, sender=name)
            session.add(message)
            await session.flush()
            return message
        except Exception as e:
            raise DatabaseOperationError(f"Failed to create chat message: {e}") from e

    async def list_recent_messages(
        self,
        session: AsyncSession,
        limit: int = 300
    ) -> List[ChatMessage]:
        """Get the most recent messages, oldest first.

        Args:
            session: Database session
            limit: Maximum number of messages

        Returns:
            List[ChatMessage]: Messages in chronological order

        Raises:
            DatabaseOperationError: If query fails
        """
        try:
            stmt = (
                select(ChatMessage)
                .order_by(desc(ChatMessage.created_at), desc(ChatMessage.id))
                .limit(limit)
            )
            result = await session.execute(stmt)
            messages = list(result.scalars().all())
            messages.reverse()
            return messages
        except Exception as e:
            raise DatabaseOperationError(f"Failed to list chat messages: {e}") from e

    async def count_messages(self, session: AsyncSession) -> int:
        try:
            result = await session.execute(select(func.count(ChatMessage.id)))
            return int(result.scalar_one())
        except Exception as e:
            raise DatabaseOperationError(f"Failed to count chat messages: {e}") from e


class DiscussionOperations:
    """Database operations for forum discussions."""

    async def create_discussion(
        self,
        session: AsyncSession,
        title: str,
        content: str,
        category: Union[DiscussionCategory, str],
        guest_name: Optional[str] = None
    ) -> Discussion:
        """Create a new discussion.

        Raises:
            ValidationFailedError: If title, content or category is invalid
            DatabaseOperationError: If creation fails
        """
        title = (title or "").strip()
        content = (content or "").strip()
        if not title:
            raise ValidationFailedError("Discussion title cannot be empty")
        if not content:
            raise ValidationFailedError("Discussion content cannot be empty")
        try:
            category = DiscussionCategory(category)
        except ValueError as e:
            raise ValidationFailedError(f"Unknown category: {category}") from e

        try:
            discussion = Discussion(
                title=title,
                content=content,
                category=category.value,
                guest_name=(guest_name or "").strip() or DEFAULT_GUEST_NAME,
            )
            session.add(discussion)
            await session.flush()
            return discussion
        except Exception as e:
            raise DatabaseOperationError(f"Failed to create discussion: {e}") from e

    async def get_discussion(
        self,
        session: AsyncSession,
        discussion_id: Union[UUID, str],
        with_replies: bool = True
    ) -> DiscussionThread:
        """Get a discussion with all of its replies.

        Args:
            session: Database session
            discussion_id: Discussion UUID
            with_replies: Load replies; when False the thread has none

        Returns:
            DiscussionThread: Discussion and flat replies ordered by creation

        Raises:
            NotFoundError: If discussion doesn't exist
            DatabaseOperationError: If query fails
        """
        discussion_id = _as_uuid(discussion_id, "Discussion")
        try:
            stmt = (
                select(Discussion)
                .where(Discussion.id == discussion_id)
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            discussion = result.scalar_one_or_none()

            if discussion is None:
                raise NotFoundError(f"Discussion not found: {discussion_id}")

            if not with_replies:
                return DiscussionThread(discussion=discussion, replies=[])

            replies_stmt = (
                select(Reply)
                .where(Reply.discussion_id == discussion_id)
                .order_by(asc(Reply.created_at), asc(Reply.id))
                .execution_options(populate_existing=True)
            )
            replies = list((await session.execute(replies_stmt)).scalars().all())
            return DiscussionThread(discussion=discussion, replies=replies)

        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseOperationError(f"Failed to get discussion: {e}") from e

    async def _ensure_exists(self, session: AsyncSession, discussion_id: UUID) -> None:
        result = await session.execute(
            select(Discussion.id).where(Discussion.id == discussion_id)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError(f"Discussion not found: {discussion_id}")

    async def record_view(
        self,
        session: AsyncSession,
        discussion_id: Union[UUID, str]
    ) -> None:
        """Increment the view counter without touching ``updated_at``."""
        discussion_id = _as_uuid(discussion_id, "Discussion")
        try:
            stmt = (
                update(Discussion)
                .where(Discussion.id == discussion_id)
                .values(views=Discussion.views + 1, updated_at=Discussion.updated_at)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFoundError(f"Discussion not found: {discussion_id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseOperationError(f"Failed to record view: {e}") from e

    async def apply_like_event(
        self,
        session: AsyncSession,
        discussion_id: Union[UUID, str],
        event: Union[DiscussionLikeEvent, str]
    ) -> DiscussionThread:
        """Apply a like or unlike to a discussion.

        The counter is adjusted in a single UPDATE so concurrent events do not
        overwrite each other. No floor is applied.

        Raises:
            ValidationFailedError: If the event is unknown
            NotFoundError: If discussion doesn't exist
            DatabaseOperationError: If update fails
        """
        discussion_id = _as_uuid(discussion_id, "Discussion")
        try:
            delta = _LIKE_DELTAS[DiscussionLikeEvent(event)]
        except ValueError as e:
            raise ValidationFailedError(f"Unknown like event: {event}") from e

        try:
            stmt = (
                update(Discussion)
                .where(Discussion.id == discussion_id)
                .values(likes=Discussion.likes + delta)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFoundError(f"Discussion not found: {discussion_id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseOperationError(f"Failed to update discussion likes: {e}") from e

        return await self.get_discussion(session, discussion_id)

    async def touch(
        self,
        session: AsyncSession,
        discussion_id: Union[UUID, str]
    ) -> DiscussionThread:
        """Refresh ``updated_at`` without changing content."""
        discussion_id = _as_uuid(discussion_id, "Discussion")
        try:
            stmt = (
                update(Discussion)
                .where(Discussion.id == discussion_id)
                .values(updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFoundError(f"Discussion not found: {discussion_id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseOperationError(f"Failed to touch discussion: {e}") from e

        return await self.get_discussion(session, discussion_id)

    def _listing_statement(self):
        reply_counts = (
            select(Reply.discussion_id, func.count(Reply.id).label("reply_count"))
            .group_by(Reply.discussion_id)
            .subquery()
        )
        reply_count = func.coalesce(reply_counts.c.reply_count, 0)
        stmt = (
            select(Discussion, reply_count.label("reply_count"))
            .outerjoin(reply_counts, reply_counts.c.discussion_id == Discussion.id)
        )
        return stmt, reply_count

    async def list_recent(
        self,
        session: AsyncSession,
        limit: int = 6
    ) -> List[DiscussionListing]:
        """List the first ``limit`` discussions by creation time, oldest first."""
        try:
            stmt, _ = self._listing_statement()
            stmt = stmt.order_by(asc(Discussion.created_at), asc(Discussion.id)).limit(limit)
            result = await session.execute(stmt)
            return [DiscussionListing(discussion=row[0], reply_count=int(row[1])) for row in result.all()]
        except Exception as e:
            raise DatabaseOperationError(f"Failed to list recent discussions: {e}") from e

    async def list_by_category(
        self,
        session: AsyncSession,
        category: Union[DiscussionCategory, str],
        sort_by: Union[DiscussionSort, str] = DiscussionSort.LATEST,
        time_range: Union[TimeRange, str] = TimeRange.ALL_TIME,
        limit: int = 10,
        now: Optional[datetime] = None
    ) -> List[DiscussionListing]:
        """List discussions of one category.

        Args:
            session: Database session
            category: Category to list
            sort_by: latest (newest first), popular (most viewed, then most
                liked) or unanswered (fewest replies, then newest)
            time_range: Creation-time window relative to ``now``
            limit: Maximum number of discussions
            now: Reference time, defaults to the current UTC time

        Returns:
            List[DiscussionListing]: Matching discussions with reply counts

        Raises:
            ValidationFailedError: If category, sort or range is unknown
            DatabaseOperationError: If query fails
        """
        try:
            category = DiscussionCategory(category)
            sort_by = DiscussionSort(sort_by)
            time_range = TimeRange(time_range)
        except ValueError as e:
            raise ValidationFailedError(str(e)) from e

        try:
            stmt, reply_count = self._listing_statement()
            stmt = stmt.where(Discussion.category == category.value)

            start = time_range_start(time_range, now or get_date_provider().utcnow())
            if start is not None:
                stmt = stmt.where(Discussion.created_at >= start)

            if sort_by is DiscussionSort.POPULAR:
                stmt = stmt.order_by(desc(Discussion.views), desc(Discussion.likes), desc(Discussion.created_at))
            elif sort_by is DiscussionSort.UNANSWERED:
                stmt = stmt.order_by(asc(reply_count), desc(Discussion.created_at))
            else:
                stmt = stmt.order_by(desc(Discussion.created_at))

            result = await session.execute(stmt.limit(limit))
            return [DiscussionListing(discussion=row[0], reply_count=int(row[1])) for row in result.all()]
        except Exception as e:
            raise DatabaseOperationError(f"Failed to list discussions: {e}") from e

    async def category_stats(self, session: AsyncSession) -> Dict[str, Dict[str, int]]:
        """Count threads and replies per category.

        Returns:
            Dict[str, Dict[str, int]]: ``{category: {"threads": n, "messages": m}}``
            with every category present
        """
        stats = {category.value: {"threads": 0, "messages": 0} for category in DiscussionCategory}
        try:
            threads = await session.execute(
                select(Discussion.category, func.count(Discussion.id))
                .group_by(Discussion.category)
            )
            for category, count in threads.all():
                stats.setdefault(category, {"threads": 0, "messages": 0})["threads"] = int(count)

            messages = await session.execute(
                select(Discussion.category, func.count(Reply.id))
                .join(Reply, Reply.discussion_id == Discussion.id)
                .group_by(Discussion.category)
            )
            for category, count in messages.all():
                stats.setdefault(category, {"threads": 0, "messages": 0})["messages"] = int(count)

            return stats
        except Exception as e:
            raise DatabaseOperationError(f"Failed to compute category stats: {e}") from e

    async def count_discussions(self, session: AsyncSession) -> int:
        try:
            result = await session.execute(select(func.count(Discussion.id)))
            return int(result.scalar_one())
        except Exception as e:
            raise DatabaseOperationError(f"Failed to count discussions: {e}") from e


class ReplyOperations:
    """Database operations for discussion replies."""

    async def create_reply(
        self,
        session: AsyncSession,
        discussion_id: Union[UUID, str],
        content: str,
        guest_name: Optional[str] = None,
        parent_reply_id: Optional[Union[UUID, str]] = None
    ) -> Reply:
        """Create a reply, optionally nested under another reply.

        The parent reply must exist but is not required to belong to the
        same discussion.

        Raises:
            ValidationFailedError: If content is empty
            NotFoundError: If the discussion or parent reply doesn't exist
            DatabaseOperationError: If creation fails
        """
        discussion_id = _as_uuid(discussion_id, "Discussion")
        content = (content or "").strip()
        if not content:
            raise ValidationFailedError("Reply content cannot be empty")

        try:
            await DiscussionOperations()._ensure_exists(session, discussion_id)

            parent_id = None
            if parent_reply_id:
                parent = await self.get_reply(session, parent_reply_id)
                parent_id = parent.id

            reply = Reply(
                discussion_id=discussion_id,
                content=content,
                guest_name=(guest_name or "").strip() or DEFAULT_GUEST_NAME,
                parent_reply_id=parent_id,
            )
            session.add(reply)
            await session.flush()
            return reply

        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseOperationError(f"Failed to create reply: {e}") from e

    async def get_reply(
        self,
        session: AsyncSession,
        reply_id: Union[UUID, str]
    ) -> Reply:
        """Get reply by ID.

        Raises:
            NotFoundError: If reply doesn't exist
            DatabaseOperationError: If query fails
        """
        reply_id = _as_uuid(reply_id, "Reply")
        try:
            stmt = (
                select(Reply)
                .where(Reply.id == reply_id)
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            reply = result.scalar_one_or_none()

            if reply is None:
                raise NotFoundError(f"Reply not found: {reply_id}")

            return reply

        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseOperationError(f"Failed to get reply: {e}") from e

    async def apply_vote_event(
        self,
        session: AsyncSession,
        reply_id: Union[UUID, str],
        event: Union[ReplyVoteEvent, str]
    ) -> Reply:
        """Apply a like, dislike or neutral event to a reply's counter.

        Raises:
            ValidationFailedError: If the event is unknown
            NotFoundError: If reply doesn't exist
            DatabaseOperationError: If update fails
        """
        reply_id = _as_uuid(reply_id, "Reply")
        try:
            delta = _VOTE_DELTAS[ReplyVoteEvent(event)]
        except ValueError as e:
            raise ValidationFailedError(f"Unknown vote event: {event}") from e

        try:
            stmt = (
                update(Reply)
                .where(Reply.id == reply_id)
                .values(likes=Reply.likes + delta)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFoundError(f"Reply not found: {reply_id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseOperationError(f"Failed to update reply likes: {e}") from e

        return await self.get_reply(session, reply_id)

    async def count_replies(self, session: AsyncSession) -> int:
        try:
            result = await session.execute(select(func.count(Reply.id)))
            return int(result.scalar_one())
        except Exception as e:
            raise DatabaseOperationError(f"Failed to count replies: {e}") from e
