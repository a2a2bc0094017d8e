"""Client-side chat connection controller.

The controller owns the chat state: connection state, the error flag and
the message log. The transport only produces typed events, which all pass
through ``dispatch``. Recovery is manual: after a drop the controller stays
disconnected until ``reconnect()`` is called or a send is attempted.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import websockets
from websockets.exceptions import ConnectionClosed

from student_hub.client.api_client import APIClient
from student_hub.client.exceptions import ClientError
from student_hub.client.message_log import MessageLog
from student_hub.client.models import ChatMessage
from student_hub.shared.errors import ErrorKind

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"


@dataclass(frozen=True)
class Connected:
    """The transport finished opening."""


@dataclass(frozen=True)
class MessageReceived:
    """A text frame arrived."""

    data: str


@dataclass(frozen=True)
class TransportError:
    """The transport failed."""

    error: Any = None


@dataclass(frozen=True)
class TransportClosed:
    """The transport was closed by the peer or the network."""

    code: Optional[int] = None
    reason: str = ""


TransportEvent = Union[Connected, MessageReceived, TransportError, TransportClosed]


@dataclass(frozen=True)
class ServerError:
    """An error envelope the server sent in answer to one of our messages."""

    kind: ErrorKind
    detail: str


class Transport(Protocol):
    """What the controller needs from an open chat connection."""

    async def send(self, message: str) -> None: ...

    async def recv(self) -> Any: ...

    async def close(self) -> None: ...


ConnectFactory = Callable[[str], Awaitable[Transport]]


async def websockets_connect(url: str) -> Transport:
    """Open a chat connection with the websockets client."""
    return await websockets.connect(
        url,
        ping_interval=30,
        ping_timeout=10,
        close_timeout=5
    )


class ChatConnectionController:
    """Connection lifecycle, message de-duplication and sending for one client."""

    def __init__(
        self,
        url: str,
        message_log: Optional[MessageLog] = None,
        connect_factory: Optional[ConnectFactory] = None,
        on_message: Optional[Callable[[ChatMessage], None]] = None
    ):
        """Initialize the controller.

        Args:
            url: Chat endpoint, e.g. ``ws://localhost:3114/ws``
            message_log: Log to append to, a new one by default
            connect_factory: Coroutine function opening a transport for a URL
            on_message: Called for every message appended to the log
        """
        self.url = url
        self.log = message_log if message_log is not None else MessageLog()
        self.state = ConnectionState.DISCONNECTED
        self.connection_error = False
        self.last_server_error: Optional[ServerError] = None
        self.history_error: Optional[ErrorKind] = None

        self._connect_factory = connect_factory or websockets_connect
        self._on_message = on_message
        self._transport: Optional[Transport] = None
        self._reader: Optional[asyncio.Task] = None
        self._generation = 0
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    @property
    def closed(self) -> bool:
        return self._closed

    def dispatch(self, event: TransportEvent, generation: Optional[int] = None) -> None:
        """Apply one transport event to the controller state.

        Events are ignored after ``close()`` and when they come from a
        transport that has since been replaced.

        Args:
            event: Transport event
            generation: Connection attempt that produced the event, if known
        """
        if self._closed:
            return
        if generation is not None and generation != self._generation:
            return

        if isinstance(event, Connected):
            self.state = ConnectionState.OPEN
            self.connection_error = False
            logger.info("Chat connection open", extra={"url": self.url})

        elif isinstance(event, MessageReceived):
            self._handle_frame(event.data)

        elif isinstance(event, (TransportError, TransportClosed)):
            if self.state is not ConnectionState.DISCONNECTED:
                logger.warning(
                    "Chat connection lost",
                    extra={"url": self.url, "event": type(event).__name__}
                )
            self.state = ConnectionState.DISCONNECTED
            self.connection_error = True

        else:
            raise TypeError(f"Unknown transport event: {event!r}")

    def _handle_frame(self, data: Any) -> None:
        try:
            envelope = json.loads(data)
            envelope_type = envelope.get("type")
        except (TypeError, ValueError, AttributeError):
            logger.warning("Dropping malformed chat envelope", extra={"frame": str(data)[:200]})
            return

        if envelope_type == "new_message":
            try:
                message = ChatMessage.from_api(envelope["message"])
            except (KeyError, TypeError, ValueError, AttributeError):
                logger.warning("Dropping chat envelope without a valid message")
                return
            if self.log.add(message) and self._on_message is not None:
                self._on_message(message)

        elif envelope_type == "error":
            try:
                kind = ErrorKind(envelope.get("kind"))
            except ValueError:
                kind = ErrorKind.PERSISTENCE_UNAVAILABLE
            self.last_server_error = ServerError(kind=kind, detail=str(envelope.get("detail", "")))
            logger.warning(
                "Chat server reported an error",
                extra={"kind": kind.value, "detail": self.last_server_error.detail}
            )

        else:
            logger.debug("Ignoring chat envelope", extra={"envelope_type": str(envelope_type)})

    async def connect(self) -> None:
        """Open the transport if the controller is disconnected."""
        if self._closed or self.state is not ConnectionState.DISCONNECTED:
            return

        self.state = ConnectionState.CONNECTING
        self._generation += 1
        generation = self._generation

        try:
            transport = await self._connect_factory(self.url)
        except Exception as e:
            logger.warning(f"Chat connection failed: {e}", extra={"url": self.url})
            self.dispatch(TransportError(e), generation)
            return

        if self._closed or generation != self._generation:
            await self._close_transport(transport)
            return

        self._transport = transport
        self.dispatch(Connected(), generation)
        self._reader = asyncio.create_task(self._read_loop(transport, generation))

    async def _read_loop(self, transport: Transport, generation: int) -> None:
        try:
            while True:
                data = await transport.recv()
                self.dispatch(MessageReceived(data), generation)
        except ConnectionClosed as e:
            code = e.rcvd.code if e.rcvd is not None else None
            self.dispatch(TransportClosed(code=code), generation)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.dispatch(TransportError(e), generation)

    async def send(self, content: str, sender: Optional[str] = None) -> bool:
        """Send a chat message.

        Empty content is rejected. When the connection is not open the error
        flag is raised and a reconnect is started instead of sending.

        Returns:
            bool: True if the message was handed to the transport
        """
        if self._closed or not isinstance(content, str) or not content.strip():
            return False

        if self.state is not ConnectionState.OPEN or self._transport is None:
            self.connection_error = True
            await self.reconnect()
            return False

        envelope = {"type": "new_message", "content": content.strip()}
        if sender:
            envelope["sender"] = sender

        try:
            await self._transport.send(json.dumps(envelope))
        except ConnectionClosed as e:
            self.dispatch(TransportClosed(code=e.rcvd.code if e.rcvd is not None else None), self._generation)
            return False
        except Exception as e:
            self.dispatch(TransportError(e), self._generation)
            return False
        return True

    async def reconnect(self) -> None:
        """Drop any current transport and connect again."""
        if self._closed:
            return
        await self._teardown()
        self.state = ConnectionState.DISCONNECTED
        await self.connect()

    async def close(self) -> None:
        """Close the transport and stop all further state changes."""
        if self._closed:
            return
        self._closed = True
        await self._teardown()
        self.state = ConnectionState.DISCONNECTED
        logger.info("Chat controller closed", extra={"url": self.url})

    async def load_history(self, api_client: APIClient, limit: Optional[int] = None) -> int:
        """Fetch recent messages into the log.

        A failed fetch leaves the log unchanged and records the error kind
        in ``history_error``.

        Returns:
            int: Number of messages that were new to the log
        """
        try:
            messages = await api_client.list_recent_messages(limit)
        except ClientError as e:
            logger.error(f"Failed to load chat history: {e}")
            self.history_error = e.kind
            return 0

        self.history_error = None
        added = 0
        for message in messages:
            if self.log.add(message):
                added += 1
                if self._on_message is not None:
                    self._on_message(message)
        return added

    async def _teardown(self) -> None:
        self._generation += 1
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        transport, self._transport = self._transport, None
        if transport is not None:
            await self._close_transport(transport)

    async def _close_transport(self, transport: Transport) -> None:
        try:
            await transport.close()
        except Exception as e:
            logger.debug(f"Error closing chat transport: {e}")
