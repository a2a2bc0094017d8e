"""Tests for the chat broadcast engine."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import OperationalError

from student_hub.shared.errors import ErrorKind
from student_hub.web.chat.broadcast import ChatBroadcastEngine, error_envelope
from student_hub.web.chat.registry import ConnectionRegistry
from student_hub.web.crud import ChatMessageOperations


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def engine(registry, session_maker, test_settings):
    return ChatBroadcastEngine(registry, session_factory=session_maker, settings=test_settings)


def _received(connection):
    return [json.loads(data) for data in connection.sent]


class TestHandleNewMessage:
    """Test suite for persisting and broadcasting chat messages."""

    async def test_persists_then_broadcasts_to_all(self, make_connection, engine, registry, db_session):
        sender = make_connection("sender")
        other = make_connection("other")
        registry.register(sender)
        registry.register(other)

        envelope = await engine.handle_new_message(sender, "hello", "Fox42")

        assert envelope["type"] == "new_message"
        assert envelope["message"]["content"] == "hello"
        assert envelope["message"]["sender"] == "Fox42"
        assert _received(sender) == [envelope]
        assert _received(other) == [envelope]

        stored = await ChatMessageOperations().list_recent_messages(db_session)
        assert [str(message.id) for message in stored] == [envelope["message"]["id"]]

    async def test_empty_content_is_reported_to_sender_only(self, make_connection, engine, registry, db_session):
        sender = make_connection("sender")
        other = make_connection("other")
        registry.register(sender)
        registry.register(other)

        envelope = await engine.handle_new_message(sender, "   ")

        assert envelope is None
        assert _received(sender) == [error_envelope(ErrorKind.VALIDATION_FAILED, "Message content cannot be empty")]
        assert other.sent == []
        assert await ChatMessageOperations().count_messages(db_session) == 0

    async def test_too_long_content(self, make_connection, engine, registry, test_settings):
        sender = make_connection("sender")
        registry.register(sender)

        await engine.handle_new_message(sender, "x" * (test_settings.chat_max_message_length + 1))

        assert _received(sender)[0]["kind"] == "validation_failed"

    async def test_persistence_failure_is_reported_to_sender_only(self, make_connection, registry, test_settings):
        @asynccontextmanager
        async def unavailable_session():
            raise OperationalError("INSERT INTO chat_messages", {}, Exception("database is down"))
            yield

        engine = ChatBroadcastEngine(registry, session_factory=unavailable_session, settings=test_settings)
        sender = make_connection("sender")
        other = make_connection("other")
        registry.register(sender)
        registry.register(other)

        envelope = await engine.handle_new_message(sender, "hello")

        assert envelope is None
        assert _received(sender) == [error_envelope(ErrorKind.PERSISTENCE_UNAVAILABLE, "Message could not be saved")]
        assert other.sent == []

    async def test_error_reply_to_broken_sender_unregisters_it(self, make_connection, engine, registry):
        sender = make_connection("sender", fail=True)
        registry.register(sender)

        await engine.handle_new_message(sender, "")

        assert sender not in registry

    async def test_non_string_sender_falls_back_to_guest(self, make_connection, engine, registry):
        sender = make_connection("sender")
        registry.register(sender)

        envelope = await engine.handle_new_message(sender, "hi", {"name": "x"})

        assert envelope["message"]["sender"] == "Guest"


class TestHandleRaw:
    """Test suite for inbound frame parsing."""

    @pytest.mark.parametrize("frame", [
        "not json",
        "[1, 2, 3]",
        json.dumps({"type": "typing"}),
        json.dumps({"content": "no type"}),
    ])
    async def test_invalid_frames_are_dropped(self, make_connection, engine, registry, db_session, frame):
        connection = make_connection("client")
        registry.register(connection)

        await engine.handle_raw(connection, frame)

        assert connection.sent == []
        assert connection in registry
        assert await ChatMessageOperations().count_messages(db_session) == 0

    async def test_new_message_frame(self, make_connection, engine, registry):
        connection = make_connection("client")
        registry.register(connection)

        await engine.handle_raw(connection, json.dumps({"type": "new_message", "content": "hi", "sender": "Owl3"}))

        (envelope,) = _received(connection)
        assert envelope["message"]["sender"] == "Owl3"
