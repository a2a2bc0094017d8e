"""Tests for the HTTP API client."""

from __future__ import annotations

import json

import httpx
import pytest

from student_hub.client.api_client import APIClient
from student_hub.client.exceptions import APIError, NetworkError, NotFoundError, ValidationError
from student_hub.shared.errors import ErrorKind

DISCUSSION = {
    "id": "d1",
    "title": "Finals",
    "content": "Tips?",
    "category": "academic",
    "guestName": "QuietOtter417",
    "likes": 2,
    "views": 5,
    "replyCount": 2,
    "createdAt": "2024-01-15T10:00:00+00:00",
    "updatedAt": "2024-01-15T11:00:00+00:00",
    "replies": [
        {
            "id": "r1", "content": "Sleep", "guestName": "A", "likes": 1, "discussionId": "d1",
            "parentReplyId": None, "createdAt": "2024-01-15T10:05:00+00:00",
            "updatedAt": "2024-01-15T10:05:00+00:00",
        },
        {
            "id": "r2", "content": "Agreed", "guestName": "B", "likes": 0, "discussionId": "d1",
            "parentReplyId": "r1", "createdAt": "2024-01-15T10:06:00+00:00",
            "updatedAt": "2024-01-15T10:06:00+00:00",
        },
    ],
    "replyTree": [],
}


def _client(handler):
    return APIClient("http://test/api", transport=httpx.MockTransport(handler))


class TestAPIClientRequests:
    """Test suite for successful requests."""

    async def test_create_discussion_sends_camel_case(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": "d1"})

        async with _client(handler) as client:
            discussion_id = await client.create_discussion("Finals", "Tips?", "academic", guest_name="Owl1")

        assert discussion_id == "d1"
        assert seen["method"] == "POST"
        assert seen["path"] == "/api/discussions"
        assert seen["body"] == {"title": "Finals", "content": "Tips?", "category": "academic", "guestName": "Owl1"}

    async def test_get_discussion_parses_replies(self):
        def handler(request):
            return httpx.Response(200, json=DISCUSSION)

        async with _client(handler) as client:
            discussion = await client.get_discussion("d1")

        assert discussion.title == "Finals"
        assert discussion.guest_name == "QuietOtter417"
        assert discussion.reply_count == 2
        assert [reply.id for reply in discussion.replies] == ["r1", "r2"]
        assert discussion.replies[1].parent_reply_id == "r1"
        assert discussion.created_at.tzinfo is not None

    async def test_list_by_category_sends_query(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            seen["path"] = request.url.path
            return httpx.Response(200, json=[{k: v for k, v in DISCUSSION.items() if k != "replies"}])

        async with _client(handler) as client:
            listings = await client.list_discussions_by_category("academic", sort_by="popular", time_range="today")

        assert seen["path"] == "/api/discussions/categories/academic"
        assert seen["params"] == {"sortBy": "popular", "timeRange": "today"}
        assert listings[0].views == 5

    async def test_list_recent_messages(self):
        def handler(request):
            assert request.url.params["limit"] == "2"
            return httpx.Response(200, json=[
                {"id": "m1", "sender": "Guest", "content": "hi", "createdAt": "2024-01-15T10:00:00Z"},
            ])

        async with _client(handler) as client:
            messages = await client.list_recent_messages(2)

        assert messages[0].id == "m1"
        assert messages[0].created_at.utcoffset().total_seconds() == 0

    async def test_malformed_history_items_are_skipped(self):
        def handler(request):
            return httpx.Response(200, json=[
                {"id": "m1", "sender": "Guest", "content": "no time", "createdAt": None},
                {"id": "m2", "content": "missing time"},
                {"id": "m3", "sender": "Guest", "content": "ok", "createdAt": "2024-01-15T10:00:00Z"},
                "not an object",
            ])

        async with _client(handler) as client:
            messages = await client.list_recent_messages()

        assert [message.id for message in messages] == ["m3"]

    async def test_category_stats(self):
        def handler(request):
            return httpx.Response(200, json={"help": {"threads": 2, "messages": 3}})

        async with _client(handler) as client:
            stats = await client.category_stats()

        assert stats["help"].threads == 2
        assert stats["help"].messages == 3

    async def test_request_stats(self):
        responses = iter([httpx.Response(200, json={"username": "BraveFox1"}), httpx.Response(500, json={})])

        def handler(request):
            return next(responses)

        async with _client(handler) as client:
            assert await client.random_username() == "BraveFox1"
            with pytest.raises(APIError):
                await client.random_username()

            assert client.get_stats() == {"requests": 2, "errors": 1}


class TestAPIClientErrors:
    """Test suite for error mapping."""

    async def test_not_found(self):
        def handler(request):
            return httpx.Response(404, json={"detail": "Discussion not found: d9", "type": "not_found"})

        async with _client(handler) as client:
            with pytest.raises(NotFoundError) as exc_info:
                await client.get_discussion("d9")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert str(exc_info.value) == "Discussion not found: d9"
        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize("status_code", [400, 422])
    async def test_validation(self, status_code):
        def handler(request):
            return httpx.Response(status_code, json={"detail": {"detail": "Bad grade", "type": "validation_failed"}})

        async with _client(handler) as client:
            with pytest.raises(ValidationError) as exc_info:
                await client.gpa([{"name": "Art", "credits": 2, "grade": "Z"}])

        assert exc_info.value.kind is ErrorKind.VALIDATION_FAILED
        assert str(exc_info.value) == "Bad grade"

    async def test_server_error(self):
        def handler(request):
            return httpx.Response(500, text="upstream exploded")

        async with _client(handler) as client:
            with pytest.raises(APIError) as exc_info:
                await client.category_stats()

        assert exc_info.value.kind is ErrorKind.PERSISTENCE_UNAVAILABLE
        assert exc_info.value.response_body == "upstream exploded"

    async def test_network_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(NetworkError) as exc_info:
                await client.like_reply("r1", "like")

        assert len(calls) == 1
        assert "Unable to reach the server" in exc_info.value.get_user_message()
