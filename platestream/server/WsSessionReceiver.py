"""WebSocket session receiver: reads frames for one connection and drives its ClientSession.

receive_session() is an async coroutine that runs for the lifetime of one
WebSocket connection. Frames are processed strictly in arrival order.
"""

import asyncio
import logging
from typing import Any, TYPE_CHECKING

from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

if TYPE_CHECKING:
    from platestream.server.ClientSession import ClientSession

logger = logging.getLogger(__name__)

_RETURN_CLOSED = "closed"
_RETURN_EXHAUSTED = "exhausted"
_RETURN_CONNECTION_LOST = "connection_lost"


async def receive_session(websocket: Any, session: "ClientSession") -> str:
    """Receive frames from the WebSocket and dispatch them to the session.

    Algorithm:
        1. Iterate over websocket messages.
        2. Binary message → session.handle_binary (buffered or dropped by state).
        3. Text message → session.handle_text on a worker thread (registry
           lookups and WAV writes block); send the reply, if any.
        4. Clean close by the client → return "closed".
        5. Abnormal close / transport error → return "connection_lost".
        6. Async iterator exhausted without a close (test doubles) → "exhausted".

    Args:
        websocket: WebSocket connection (async iteration and async send).
        session: Session that owns this connection's state.

    Returns:
        Reason string: ``"closed"``, ``"connection_lost"`` or ``"exhausted"``.
    """
    loop = asyncio.get_running_loop()
    try:
        async for message in websocket:
            if isinstance(message, (bytes, bytearray, memoryview)):
                session.handle_binary(bytes(message))
                continue

            logger.debug("WsSessionReceiver[%s]: text received: %s", session.session_id, message)
            reply = await loop.run_in_executor(None, session.handle_text, message)
            if reply is not None:
                await websocket.send(reply)
    except ConnectionClosedOK:
        logger.info("WsSessionReceiver[%s]: closed by client", session.session_id)
        return _RETURN_CLOSED
    except ConnectionClosed as exc:
        logger.info("WsSessionReceiver[%s]: connection lost: %s", session.session_id, exc)
        return _RETURN_CONNECTION_LOST

    if getattr(websocket, "close_code", None) is not None:
        logger.info("WsSessionReceiver[%s]: closed by client", session.session_id)
        return _RETURN_CLOSED
    return _RETURN_EXHAUSTED
