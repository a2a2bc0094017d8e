"""Ordered, de-duplicated chat log and its day grouping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator, List, Optional, Tuple

from student_hub.client.models import ChatMessage


@dataclass(frozen=True)
class DayGroup:
    """Messages of one calendar day under a display label."""

    label: str
    messages: Tuple[ChatMessage, ...]


class MessageLog:
    """Chat messages in arrival order, at most one entry per message id."""

    def __init__(self, messages: Optional[Iterable[ChatMessage]] = None):
        self._messages: List[ChatMessage] = []
        self._ids: set[str] = set()
        if messages is not None:
            self.extend(messages)

    def add(self, message: ChatMessage) -> bool:
        """Append a message unless its id is already present.

        Returns:
            bool: True if the message was appended
        """
        if message.id in self._ids:
            return False
        self._ids.add(message.id)
        self._messages.append(message)
        return True

    def extend(self, messages: Iterable[ChatMessage]) -> int:
        """Append several messages; returns how many were new."""
        return sum(1 for message in messages if self.add(message))

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def clear(self) -> None:
        self._messages.clear()
        self._ids.clear()


def day_label(day: datetime, now: datetime) -> str:
    """``Today``, ``Yesterday`` or a date such as ``3 March 2025``."""
    if day.date() == now.date():
        return "Today"
    if day.date() == (now - timedelta(days=1)).date():
        return "Yesterday"
    return f"{day.day} {day:%B} {day.year}"


def group_by_day(messages: Iterable[ChatMessage], now: datetime) -> List[DayGroup]:
    """Group messages by calendar day for display.

    Messages are ordered by creation time (ties keep their given order) and
    bucketed by their day in the timezone of ``now``. The input is not
    modified.

    Args:
        messages: Messages to group, typically a ``MessageLog``
        now: Render time; naive values are taken as UTC

    Returns:
        List[DayGroup]: Groups in chronological order
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    ordered = sorted(messages, key=lambda message: message.created_at)

    groups: List[DayGroup] = []
    current_day = None
    bucket: List[ChatMessage] = []
    for message in ordered:
        local = message.created_at.astimezone(now.tzinfo)
        if current_day is not None and local.date() != current_day.date():
            groups.append(DayGroup(label=day_label(current_day, now), messages=tuple(bucket)))
            bucket = []
        if not bucket:
            current_day = local
        bucket.append(message)

    if bucket:
        groups.append(DayGroup(label=day_label(current_day, now), messages=tuple(bucket)))
    return groups
