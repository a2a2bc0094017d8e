"""Tests for the client chat log and day grouping."""

from __future__ import annotations

from datetime import datetime, timezone

from student_hub.client.message_log import MessageLog, group_by_day
from student_hub.client.models import ChatMessage

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def _message(message_id, created_at, content="hi"):
    return ChatMessage(id=message_id, sender="Guest", content=content, created_at=created_at)


class TestMessageLog:
    """Test suite for MessageLog."""

    def test_duplicate_ids_are_ignored(self):
        log = MessageLog()

        assert log.add(_message("m1", NOW)) is True
        assert log.add(_message("m1", NOW, content="again")) is False

        assert len(log) == 1
        assert log.messages[0].content == "hi"
        assert "m1" in log

    def test_extend_counts_new_messages(self):
        log = MessageLog([_message("m1", NOW)])

        added = log.extend([_message("m1", NOW), _message("m2", NOW), _message("m2", NOW)])

        assert added == 1
        assert [message.id for message in log] == ["m1", "m2"]

    def test_clear(self):
        log = MessageLog([_message("m1", NOW)])

        log.clear()

        assert len(log) == 0
        assert log.add(_message("m1", NOW)) is True


class TestGroupByDay:
    """Test suite for day grouping."""

    def test_labels(self):
        messages = [
            _message("old", datetime(2024, 3, 3, 9, 0, tzinfo=timezone.utc)),
            _message("yesterday", datetime(2024, 3, 14, 23, 59, tzinfo=timezone.utc)),
            _message("today-1", datetime(2024, 3, 15, 0, 0, tzinfo=timezone.utc)),
            _message("today-2", datetime(2024, 3, 15, 11, 0, tzinfo=timezone.utc)),
        ]

        groups = group_by_day(messages, NOW)

        assert [group.label for group in groups] == ["3 March 2024", "Yesterday", "Today"]
        assert [message.id for message in groups[2].messages] == ["today-1", "today-2"]

    def test_unsorted_input_is_ordered_without_mutation(self):
        later = _message("later", datetime(2024, 3, 15, 11, 0, tzinfo=timezone.utc))
        earlier = _message("earlier", datetime(2024, 3, 10, 8, 0, tzinfo=timezone.utc))
        messages = [later, earlier]

        groups = group_by_day(messages, NOW)

        assert [group.label for group in groups] == ["10 March 2024", "Today"]
        assert messages == [later, earlier]

    def test_naive_now_is_utc(self):
        groups = group_by_day(
            [_message("m1", datetime(2024, 3, 15, 1, 0, tzinfo=timezone.utc))],
            datetime(2024, 3, 15, 12, 0),
        )

        assert groups[0].label == "Today"

    def test_empty(self):
        assert group_by_day([], NOW) == []
