"""Tests for reply vote API endpoints."""

from __future__ import annotations

from uuid import uuid4

import pytest


@pytest.fixture
async def reply_id(api_client, discussion_id) -> str:
    response = await api_client.post(
        f"/discussions/{discussion_id}/replies",
        json={"content": "Pomodoro works for me."},
    )
    return response.json()["replies"][0]["id"]


class TestReplyVotes:
    """Test suite for reply votes."""

    async def test_vote_events_move_shared_counter(self, api_client, reply_id):
        liked = await api_client.post(f"/replies/{reply_id}/like", json={"event": "like"})
        assert liked.status_code == 200
        assert liked.json()["likes"] == 1
        assert liked.json()["id"] == reply_id

        neutral = await api_client.post(f"/replies/{reply_id}/like", json={"event": "neutral"})
        assert neutral.json()["likes"] == 1

        await api_client.post(f"/replies/{reply_id}/like", json={"event": "dislike"})
        disliked = await api_client.post(f"/replies/{reply_id}/like", json={"event": "dislike"})
        assert disliked.json()["likes"] == -1

    async def test_vote_is_visible_on_discussion(self, api_client, discussion_id, reply_id):
        await api_client.post(f"/replies/{reply_id}/like", json={"event": "like"})

        discussion = await api_client.get(f"/discussions/{discussion_id}")

        assert discussion.json()["replies"][0]["likes"] == 1
        assert discussion.json()["replyTree"][0]["likes"] == 1

    async def test_unknown_reply(self, api_client):
        response = await api_client.post(f"/replies/{uuid4()}/like", json={"event": "like"})

        assert response.status_code == 404
        assert response.json()["type"] == "not_found"

    async def test_unknown_event(self, api_client, reply_id):
        response = await api_client.post(f"/replies/{reply_id}/like", json={"event": "upvote"})

        assert response.status_code == 422
