"""The HTTP client library driven against the real API app."""

from __future__ import annotations

import pytest
from httpx import ASGITransport

from student_hub.client.api_client import APIClient
from student_hub.client.discussion_view import DiscussionThreadView
from student_hub.client.exceptions import NotFoundError, ValidationError
from student_hub.client.votes import LocalVoteStore, ReplyVoteCounter, ThreadLikeCounter, VoteState
from student_hub.web.api.app import api


@pytest.fixture
async def hub_client(api_client):
    """Client library instance sharing the API test database."""
    async with APIClient("http://test", transport=ASGITransport(app=api)) as client:
        yield client


class TestClientAgainstAPI:
    """Test suite exercising the client over ASGI."""

    async def test_thread_flow(self, hub_client):
        discussion_id = await hub_client.create_discussion("Finals", "Tips?", "academic")
        view = DiscussionThreadView(hub_client, discussion_id)

        await view.submit_reply("Sleep well")
        parent_id = view.forest[0].id
        await view.submit_reply("Agreed", guest_name="Owl1", parent_id=parent_id)

        assert view.discussion.guest_name == "Anonymous"
        assert view.reply_count == 2
        assert view.forest[0].child_replies[0].reply.guest_name == "Owl1"

    async def test_replying_does_not_inflate_views(self, hub_client):
        discussion_id = await hub_client.create_discussion("Finals", "Tips?", "academic")
        view = DiscussionThreadView(hub_client, discussion_id)

        await view.open()
        for content in ("one", "two", "three"):
            await view.submit_reply(content)

        assert view.discussion.views == 1
        assert view.reply_count == 3
        assert (await hub_client.get_discussion(discussion_id)).views == 1

    async def test_votes(self, hub_client):
        discussion_id = await hub_client.create_discussion("Finals", "Tips?", "academic")
        discussion = await hub_client.create_reply(discussion_id, "Sleep well")
        reply_id = discussion.replies[0].id
        store = LocalVoteStore()

        liked = await ThreadLikeCounter(hub_client, store).toggle(discussion_id, 0)
        down = await ReplyVoteCounter(hub_client, store).vote(reply_id, 0, "down")
        up = await ReplyVoteCounter(hub_client, store).vote(reply_id, down.count, "up")

        assert liked.confirmed and liked.count == 1
        assert down.count == -1
        assert up.state is VoteState.UP
        assert up.count == 1

    async def test_errors_are_typed(self, hub_client):
        with pytest.raises(NotFoundError):
            await hub_client.get_discussion("00000000-0000-0000-0000-000000000000")

        with pytest.raises(ValidationError):
            await hub_client.attendance(total_classes=0, attended_classes=0)

    async def test_tools_and_stats(self, hub_client):
        await hub_client.create_discussion("Finals", "Tips?", "academic")

        attendance = await hub_client.attendance(40, 28, 75)
        stats = await hub_client.category_stats()

        assert attendance["classesNeeded"] == 8
        assert stats["academic"].threads == 1
