"""WebSocket endpoint for the shared chat room."""

from __future__ import annotations

import logging

from starlette.websockets import WebSocket, WebSocketDisconnect

from student_hub.web.chat.registry import ChatConnection

logger = logging.getLogger(__name__)


async def chat_websocket(websocket: WebSocket) -> None:
    """Serve one chat client.

    Text frames are handed to the broadcast engine one at a time, in arrival
    order. Binary frames are dropped. The connection leaves the registry
    however the loop ends.
    """
    registry = websocket.app.state.chat_registry
    engine = websocket.app.state.chat_engine

    await websocket.accept()
    connection = ChatConnection(websocket)
    registry.register(connection)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            text = message.get("text")
            if text is None:
                logger.warning(
                    "Dropping binary chat frame",
                    extra={"connection_id": connection.connection_id}
                )
                continue

            await engine.handle_raw(connection, text)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception(
            "Chat connection failed",
            extra={"connection_id": connection.connection_id}
        )
    finally:
        registry.unregister(connection)
