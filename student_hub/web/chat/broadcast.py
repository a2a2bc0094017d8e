"""Chat broadcast engine.

Turns one inbound chat event into a persisted message and fans the
canonical record out to every open connection. Failures are answered to the
originating connection only; nothing is broadcast for a message that was
not stored.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, AsyncContextManager, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from student_hub.shared.config import Settings, get_settings
from student_hub.shared.database import get_db_session_context
from student_hub.shared.errors import ErrorKind
from student_hub.web.api.schemas import ChatMessageResponse
from student_hub.web.chat.registry import Connection, ConnectionRegistry
from student_hub.web.crud import (
    ChatMessageOperations,
    DatabaseOperationError,
    ValidationFailedError,
)
from student_hub.web.models import ChatMessage

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


class EnvelopeType(str, Enum):
    """Chat envelope types."""

    NEW_MESSAGE = "new_message"
    ERROR = "error"


def message_envelope(message: ChatMessage) -> Dict[str, Any]:
    """Outbound envelope carrying a persisted message."""
    return {
        "type": EnvelopeType.NEW_MESSAGE.value,
        "message": ChatMessageResponse.model_validate(message).model_dump(mode="json", by_alias=True),
    }


def error_envelope(kind: ErrorKind, detail: str) -> Dict[str, Any]:
    """Outbound envelope reporting a failure to the sender."""
    return {
        "type": EnvelopeType.ERROR.value,
        "kind": ErrorKind(kind).value,
        "detail": detail,
    }


class ChatBroadcastEngine:
    """Persists inbound chat messages and broadcasts them."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        session_factory: Optional[SessionFactory] = None,
        settings: Optional[Settings] = None
    ):
        """Initialize the engine.

        Args:
            registry: Connections that receive broadcasts
            session_factory: Callable returning an async session context,
                defaults to ``get_db_session_context``
            settings: Application settings, defaults to the global ones
        """
        self.registry = registry
        self._session_factory = session_factory or get_db_session_context
        self._settings = settings or get_settings()
        self._messages = ChatMessageOperations()

    async def handle_raw(self, connection: Connection, raw: str) -> None:
        """Parse one inbound frame and dispatch it.

        Frames that are not JSON objects or carry an unknown ``type`` are
        logged and dropped; the connection stays open.
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(
                "Dropping malformed chat frame",
                extra={"connection_id": connection.connection_id, "frame": str(raw)[:200]}
            )
            return

        if not isinstance(data, dict):
            logger.warning(
                "Dropping chat frame that is not an object",
                extra={"connection_id": connection.connection_id}
            )
            return

        if data.get("type") != EnvelopeType.NEW_MESSAGE.value:
            logger.warning(
                "Dropping chat frame with unknown type",
                extra={"connection_id": connection.connection_id, "frame_type": str(data.get("type"))}
            )
            return

        await self.handle_new_message(connection, data.get("content"), data.get("sender"))

    async def handle_new_message(
        self,
        connection: Connection,
        content: Any,
        sender: Any = None
    ) -> Optional[Dict[str, Any]]:
        """Persist a message and broadcast it to all open connections.

        Args:
            connection: Originating connection, told about failures
            content: Message text
            sender: Display name, "Guest" when empty or missing

        Returns:
            Optional[Dict[str, Any]]: The broadcast envelope, or None on failure
        """
        if not isinstance(content, str) or not content.strip():
            await self._reply_error(connection, ErrorKind.VALIDATION_FAILED, "Message content cannot be empty")
            return None

        sender = sender if isinstance(sender, str) else None

        try:
            async with self._session_factory() as session:
                message = await self._messages.create_message(
                    session,
                    content=content,
                    sender=sender,
                    max_length=self._settings.chat_max_message_length,
                )
                await session.commit()
        except ValidationFailedError as e:
            await self._reply_error(connection, ErrorKind.VALIDATION_FAILED, str(e))
            return None
        except (DatabaseOperationError, SQLAlchemyError) as e:
            logger.error(
                f"Failed to persist chat message: {e}",
                extra={"connection_id": connection.connection_id}
            )
            await self._reply_error(connection, ErrorKind.PERSISTENCE_UNAVAILABLE, "Message could not be saved")
            return None

        envelope = message_envelope(message)
        delivered = await self.registry.broadcast(envelope, timeout=self._settings.chat_send_timeout)

        logger.info(
            "Chat message broadcast",
            extra={
                "connection_id": connection.connection_id,
                "message_id": str(message.id),
                "delivered": delivered,
            }
        )
        return envelope

    async def _reply_error(self, connection: Connection, kind: ErrorKind, detail: str) -> None:
        if not connection.is_open:
            return
        try:
            await asyncio.wait_for(
                connection.send_text(json.dumps(error_envelope(kind, detail))),
                timeout=self._settings.chat_send_timeout,
            )
        except Exception as e:
            logger.warning(
                f"Could not report chat error to sender: {e}",
                extra={"connection_id": connection.connection_id, "kind": kind.value}
            )
            self.registry.unregister(connection)
