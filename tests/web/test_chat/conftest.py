"""Fixtures for chat registry and broadcast tests."""

from __future__ import annotations

import asyncio

import pytest


class FakeConnection:
    """In-memory stand-in for a chat WebSocket."""

    def __init__(self, connection_id, fail=False, delay=0.0, open=True):
        self.connection_id = connection_id
        self.fail = fail
        self.delay = delay
        self.open = open
        self.sent = []

    @property
    def is_open(self):
        return self.open

    async def send_text(self, data):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("socket is gone")
        self.sent.append(data)


@pytest.fixture
def make_connection():
    """Factory for fake chat connections."""
    return FakeConnection
