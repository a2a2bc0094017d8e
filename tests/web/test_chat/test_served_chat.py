"""Client chat controllers talking to a served application."""

from __future__ import annotations

import asyncio

import pytest
import uvicorn

from main import create_app
from student_hub.client.chat_controller import ChatConnectionController


async def _wait_until(condition, timeout=5.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
async def served_app(test_settings, patched_database):
    """Run the app on an ephemeral local port for the duration of a test."""
    app = create_app(test_settings, use_lifespan=False)
    server = uvicorn.Server(uvicorn.Config(app, host="127.0.0.1", port=0, lifespan="off", log_level="warning"))
    task = asyncio.create_task(server.serve())
    await _wait_until(lambda: server.started)
    port = server.servers[0].sockets[0].getsockname()[1]

    yield app, f"ws://127.0.0.1:{port}/ws"

    server.should_exit = True
    await task


class TestServedChat:
    """Test suite for chat between two client controllers."""

    async def test_both_logs_receive_the_same_record(self, served_app):
        app, url = served_app
        registry = app.state.chat_registry
        alice = ChatConnectionController(url)
        bob = ChatConnectionController(url)

        try:
            await alice.connect()
            await bob.connect()
            assert alice.is_open and bob.is_open
            await _wait_until(lambda: len(registry) == 2)

            assert await alice.send("  hello everyone  ", sender="Fox42") is True
            await _wait_until(lambda: len(alice.log) == 1 and len(bob.log) == 1)
        finally:
            await alice.close()
            await bob.close()

        (from_alice,) = alice.log.messages
        (from_bob,) = bob.log.messages
        assert from_alice == from_bob
        assert from_alice.content == "hello everyone"
        assert from_alice.sender == "Fox42"
        await _wait_until(lambda: len(registry) == 0)

    async def test_server_error_reaches_only_the_sender(self, served_app):
        app, url = served_app
        alice = ChatConnectionController(url)
        bob = ChatConnectionController(url)

        try:
            await alice.connect()
            await bob.connect()
            await _wait_until(lambda: len(app.state.chat_registry) == 2)

            await alice._transport.send('{"type": "new_message", "content": "   "}')
            await _wait_until(lambda: alice.last_server_error is not None)
            await alice.send("after the error")
            await _wait_until(lambda: len(bob.log) == 1)
        finally:
            await alice.close()
            await bob.close()

        assert alice.last_server_error.kind.value == "validation_failed"
        assert bob.last_server_error is None
        assert [message.content for message in bob.log] == ["after the error"]
