"""Registry of live chat connections and envelope fan-out.

The registry is owned by the application (``app.state.chat_registry``) and
handed to the broadcast engine; there is no module-level connection set.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import uuid
from typing import Any, Dict, FrozenSet, Optional, Protocol

from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """What the registry needs from a chat connection."""

    connection_id: str

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...


class ChatConnection:
    """A chat client connected over a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.connection_id = connection_id or uuid.uuid4().hex

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self.websocket.send_text(data)

    def __repr__(self) -> str:
        return f"ChatConnection({self.connection_id})"


class ConnectionRegistry:
    """Set of currently open chat connections.

    Membership changes and snapshots are guarded by a lock so the registry
    stays consistent if connections are handled from more than one thread.
    Broadcasts deliver to a snapshot taken when delivery starts.
    """

    def __init__(self) -> None:
        self._connections: set[Connection] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        with self._lock:
            return connection in self._connections

    def register(self, connection: Connection) -> None:
        """Add a connection. Registering the same handle twice is a no-op."""
        with self._lock:
            self._connections.add(connection)
            count = len(self._connections)
        logger.info(
            "Chat connection registered",
            extra={"connection_id": connection.connection_id, "connections": count}
        )

    def unregister(self, connection: Connection) -> None:
        """Remove a connection if present."""
        with self._lock:
            if connection not in self._connections:
                return
            self._connections.discard(connection)
            count = len(self._connections)
        logger.info(
            "Chat connection unregistered",
            extra={"connection_id": connection.connection_id, "connections": count}
        )

    def snapshot(self) -> FrozenSet[Connection]:
        """Current members (snapshot, no lock held on return)."""
        with self._lock:
            return frozenset(self._connections)

    async def broadcast(self, envelope: Dict[str, Any], timeout: float = 5.0) -> int:
        """Deliver an envelope to every open connection.

        Deliveries run concurrently and each is bounded by ``timeout``
        seconds. A connection that fails or times out is unregistered; the
        others are unaffected. Connections that are no longer open are
        skipped.

        Args:
            envelope: JSON-serializable message
            timeout: Seconds allowed per connection

        Returns:
            int: Number of successful deliveries
        """
        payload = json.dumps(envelope)
        targets = [connection for connection in self.snapshot() if connection.is_open]
        if not targets:
            return 0

        results = await asyncio.gather(
            *(self._deliver(connection, payload, timeout) for connection in targets)
        )
        delivered = sum(1 for ok in results if ok)

        logger.debug(
            "Chat envelope broadcast",
            extra={"type": envelope.get("type"), "delivered": delivered, "targets": len(targets)}
        )
        return delivered

    async def _deliver(self, connection: Connection, payload: str, timeout: float) -> bool:
        try:
            await asyncio.wait_for(connection.send_text(payload), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                "Chat delivery timed out",
                extra={"connection_id": connection.connection_id, "timeout": timeout}
            )
        except Exception as e:
            logger.warning(
                f"Chat delivery failed: {e}",
                extra={"connection_id": connection.connection_id}
            )
        self.unregister(connection)
        return False
