"""Test configuration and fixtures specifically for API testing."""

from __future__ import annotations

from typing import Any, AsyncGenerator, Dict

import pytest
from httpx import ASGITransport, AsyncClient

from student_hub.web.api.app import api


@pytest.fixture
async def api_client(test_settings, patched_database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for the API, backed by the test database.

    The transport does not run the API lifespan, so no real database
    connection is attempted.
    """
    api.state.settings = test_settings
    try:
        async with AsyncClient(
            transport=ASGITransport(app=api),
            base_url="http://test"
        ) as client:
            yield client
    finally:
        api.state.settings = None


@pytest.fixture
def discussion_payload() -> Dict[str, Any]:
    return {
        "title": "How do I prepare for finals?",
        "content": "Looking for study techniques that actually work.",
        "category": "academic",
        "guestName": "QuietOtter417",
    }


@pytest.fixture
async def discussion_id(api_client, discussion_payload) -> str:
    """ID of a freshly created discussion."""
    response = await api_client.post("/discussions", json=discussion_payload)
    assert response.status_code == 201
    return response.json()["id"]
