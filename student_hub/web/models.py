"""Database models for the Student Hub application."""

from __future__ import annotations

from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint
from sqlalchemy import ForeignKey
from sqlalchemy import Index
from sqlalchemy import Integer
from sqlalchemy import String
from sqlalchemy import Text
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from sqlalchemy.orm import Mapped
from sqlalchemy.orm import mapped_column

from student_hub.shared.database import Base


class DiscussionCategory(str, Enum):
    """Fixed set of forum categories."""

    ACADEMIC = "academic"
    GENERAL = "general"
    HELP = "help"


class DiscussionSort(str, Enum):
    """Orderings offered by the category listing."""

    LATEST = "latest"
    POPULAR = "popular"
    UNANSWERED = "unanswered"


class TimeRange(str, Enum):
    """Creation-time windows offered by the category listing."""

    ALL_TIME = "all-time"
    TODAY = "today"
    THIS_WEEK = "this-week"
    THIS_MONTH = "this-month"


class DiscussionLikeEvent(str, Enum):
    LIKE = "like"
    UNLIKE = "unlike"


class ReplyVoteEvent(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    NEUTRAL = "neutral"


class ChatMessage(Base):
    """A message posted to the shared chat room.

    Messages are immutable once written. ``created_at`` is assigned when the
    row is flushed and defines display order.
    """

    __tablename__ = "chat_messages"

    id: Mapped[UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
        doc="Unique message identifier"
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Message text, never empty after trimming"
    )
    sender: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="Guest",
        doc="Display name of the guest who sent the message"
    )

    __table_args__ = (
        Index("ix_chat_messages_created_at", "created_at"),
    )

    def __init__(self, **kwargs):
        """Initialize ChatMessage with auto-generated ID if not provided."""
        kwargs.setdefault('id', uuid4())
        kwargs.setdefault('sender', "Guest")
        super().__init__(**kwargs)


class Discussion(Base):
    """A forum thread started by a guest.

    Like counts are a plain signed counter: there is no per-guest vote ledger,
    so concurrent unlikes may take the value below zero.
    """

    __tablename__ = "discussions"

    id: Mapped[UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
        doc="Unique discussion identifier"
    )
    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Thread title"
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Thread body"
    )
    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="One of academic, general, help"
    )
    guest_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Display name of the author"
    )
    likes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Signed like counter"
    )
    views: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Number of times the thread was opened"
    )

    __table_args__ = (
        CheckConstraint(
            "category IN ('academic', 'general', 'help')",
            name="valid_category"
        ),
        Index("ix_discussions_category", "category"),
        Index("ix_discussions_created_at", "created_at"),
    )

    def __init__(self, **kwargs):
        kwargs.setdefault('id', uuid4())
        kwargs.setdefault('likes', 0)
        kwargs.setdefault('views', 0)
        super().__init__(**kwargs)


class Reply(Base):
    """A reply to a discussion, optionally nested under another reply.

    The parent link is stored as a key only. Child lists are derived at read
    time by ``student_hub.shared.reply_tree.build_reply_tree``.
    """

    __tablename__ = "replies"

    id: Mapped[UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
        doc="Unique reply identifier"
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Reply body"
    )
    guest_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Display name of the author"
    )
    likes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Signed vote counter"
    )
    discussion_id: Mapped[UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("discussions.id", ondelete="CASCADE"),
        nullable=False,
        doc="Owning discussion"
    )
    parent_reply_id: Mapped[Optional[UUID]] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("replies.id", ondelete="SET NULL"),
        nullable=True,
        doc="Reply this one answers, if any"
    )

    __table_args__ = (
        Index("ix_replies_discussion_id", "discussion_id"),
        Index("ix_replies_parent_reply_id", "parent_reply_id"),
    )

    def __init__(self, **kwargs):
        kwargs.setdefault('id', uuid4())
        kwargs.setdefault('likes', 0)
        super().__init__(**kwargs)
