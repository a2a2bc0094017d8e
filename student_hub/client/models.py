"""Client-side data models.

Immutable dataclasses for the records exchanged with the server, each with
a ``from_api`` constructor that reads the camelCase wire format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif not isinstance(value, datetime):
        raise TypeError(f"Not a timestamp: {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class ChatMessage:
    """A persisted chat message as delivered to clients."""

    id: str
    sender: str
    content: str
    created_at: datetime

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ChatMessage:
        """Build a message from its wire form.

        Raises:
            KeyError: If ``id`` or ``content`` is missing
            ValueError: If ``createdAt`` is missing or not a timestamp
        """
        created_at = parse_timestamp(data.get("createdAt"))
        if created_at is None:
            raise ValueError("Chat message has no createdAt")
        return cls(
            id=str(data["id"]),
            sender=data.get("sender") or "Guest",
            content=data["content"],
            created_at=created_at,
        )


@dataclass(frozen=True)
class Reply:
    """A reply to a discussion."""

    id: str
    content: str
    guest_name: str
    likes: int
    discussion_id: str
    parent_reply_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Reply:
        parent = data.get("parentReplyId")
        return cls(
            id=str(data["id"]),
            content=data["content"],
            guest_name=data["guestName"],
            likes=int(data.get("likes", 0)),
            discussion_id=str(data["discussionId"]),
            parent_reply_id=str(parent) if parent else None,
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass(frozen=True)
class DiscussionSummary:
    """A discussion as shown in listings."""

    id: str
    title: str
    content: str
    category: str
    guest_name: str
    likes: int
    views: int = 0
    reply_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> DiscussionSummary:
        return cls(
            id=str(data["id"]),
            title=data["title"],
            content=data["content"],
            category=data["category"],
            guest_name=data["guestName"],
            likes=int(data.get("likes", 0)),
            views=int(data.get("views", 0)),
            reply_count=int(data.get("replyCount", 0)),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass(frozen=True)
class Discussion(DiscussionSummary):
    """A discussion with its flat replies in creation order.

    The reply forest is rebuilt on the client from ``replies``; the
    server's nested copy is not trusted to be current.
    """

    replies: tuple[Reply, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Discussion:
        summary = DiscussionSummary.from_api(data)
        replies = tuple(Reply.from_api(reply) for reply in data.get("replies", []))
        return cls(
            **{name: getattr(summary, name) for name in summary.__dataclass_fields__},
            replies=replies,
        )


@dataclass(frozen=True)
class CategoryStats:
    threads: int
    messages: int
