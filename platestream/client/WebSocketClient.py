"""WebSocket client: connect with retry, ordered send path, independent receive loop.

The client owns exactly one live transport at a time. Every connection
attempt builds a brand-new transport through the connect factory
(``websockets.connect`` by default); a transport that failed or closed is
dropped, never reused.

Sends come in two kinds: control envelopes (JSON text frames) and raw PCM
(binary frames). Both kinds go through one outbound queue so frames leave in
the order they were submitted, whichever thread submitted them.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from platestream.errors import ConnectCancelledError, ConnectionFailedError
from platestream.network.codec import decode_control_message, encode_control_message
from platestream.network.types import WsControlMessage
from platestream.types import ConnectionState

logger = logging.getLogger(__name__)

_AUDIO_QUEUE_LIMIT = 50
_FLUSH_TIMEOUT_SEC = 2.0

# Failures that count as a failed handshake attempt and are retried
_HANDSHAKE_ERRORS = (OSError, InvalidHandshake, asyncio.TimeoutError)

ConnectFactory = Callable[[str], Awaitable[Any]]
MessageHandler = Callable[[WsControlMessage], None]


class WebSocketClient:
    """Async WebSocket client for the streaming protocol.

    State machine (see ConnectionState): DISCONNECTED → CONNECTING → CONNECTED
    → CLOSING → DISCONNECTED. A failed or cancelled connect returns to
    DISCONNECTED.

    Outbound: ``send_control``/``send_audio`` (coroutines) or their
    ``*_threadsafe`` variants for sync threads → one asyncio.Queue → sender
    task → websocket.send. When more than a bounded number of audio frames are
    pending, new audio frames are dropped and logged; control frames are never
    dropped.

    Inbound: a receive task logs every text frame, decodes it as a control
    envelope and passes it to ``on_message``. Binary frames are ignored. The
    task ends on a close frame or transport error without raising.

    Args:
        url: Server URL, e.g. ``ws://localhost:8080/ws``.
        on_message: Optional callback for decoded inbound control messages.
            Called on the event loop thread.
        connect_factory: Coroutine factory opening a transport for a URL.
            Defaults to ``websockets.connect``.
    """

    def __init__(
        self,
        url: str,
        on_message: MessageHandler | None = None,
        connect_factory: ConnectFactory | None = None,
    ) -> None:
        self.url = url
        self.on_message = on_message
        self._connect_factory: ConnectFactory = connect_factory or websockets.connect
        self.state = ConnectionState.DISCONNECTED
        self.attempt_count = 0

        self._websocket: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._send_queue: asyncio.Queue | None = None
        self._pending_audio = 0
        self._sender_task: asyncio.Task | None = None
        self._receive_task: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(
        self,
        max_attempts: int = 0,
        retry_interval_ms: int = 2000,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        """Connect to the server, retrying failed handshakes.

        Algorithm:
            1. DISCONNECTED → CONNECTING; reset the attempt counter.
            2. Before each attempt, honour cancel_event.
            3. Increment attempt_count and open a fresh transport.
            4. Success → CONNECTED; start sender and receive tasks; return.
            5. Failure with budget left (or max_attempts == 0) → wait
               retry_interval_ms, interruptible by cancel_event; retry.
            6. Failure with budget exhausted → DISCONNECTED, raise.

        Args:
            max_attempts: Attempt budget; 0 retries forever.
            retry_interval_ms: Fixed delay between attempts.
            cancel_event: Set it to abort the loop at any wait point.

        Raises:
            ConnectionFailedError: After exactly max_attempts failed attempts.
            ConnectCancelledError: If cancel_event was set before connecting.
        """
        if self.state == ConnectionState.CONNECTED:
            logger.debug("WebSocketClient: already connected to %s", self.url)
            return
        if self._websocket is not None:
            # left behind by a connection the server closed
            await self._teardown()

        self.state = ConnectionState.CONNECTING
        self.attempt_count = 0
        logger.info("WebSocketClient: attempting to connect to %s", self.url)

        try:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    raise ConnectCancelledError(f"Connection to {self.url} cancelled")

                self.attempt_count += 1
                budget = f" of {max_attempts}" if max_attempts > 0 else ""
                logger.info("WebSocketClient: connection attempt %d%s", self.attempt_count, budget)

                try:
                    websocket = await self._open_transport(cancel_event)
                except _HANDSHAKE_ERRORS as exc:
                    logger.warning(
                        "WebSocketClient: connection attempt %d failed: %s", self.attempt_count, exc
                    )
                    if max_attempts > 0 and self.attempt_count >= max_attempts:
                        raise ConnectionFailedError(self.url, self.attempt_count) from exc
                    logger.info("WebSocketClient: retrying in %dms", retry_interval_ms)
                    await self._wait_retry(retry_interval_ms, cancel_event)
                    continue

                self._attach(websocket)
                logger.info(
                    "WebSocketClient: connected to %s after %d attempt(s)", self.url, self.attempt_count
                )
                return
        except BaseException:
            self.state = ConnectionState.DISCONNECTED
            raise

    async def reconnect(
        self,
        max_attempts: int = 0,
        retry_interval_ms: int = 2000,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        """Drop the current transport and connect with a new one.

        Args: same as connect().
        """
        await self.close()
        await self.connect(max_attempts, retry_interval_ms, cancel_event)

    async def close(self) -> None:
        """Flush pending frames, stop the tasks and close the transport."""
        if self._websocket is None:
            self.state = ConnectionState.DISCONNECTED
            return

        self.state = ConnectionState.CLOSING
        await self._flush()
        await self._teardown()

        self.state = ConnectionState.DISCONNECTED
        logger.info("WebSocketClient: closed connection to %s", self.url)

    async def _teardown(self) -> None:
        """Cancel the send/receive tasks and close the current transport."""
        for task in (self._sender_task, self._receive_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._sender_task = None
        self._receive_task = None

        websocket, self._websocket = self._websocket, None
        try:
            await websocket.close()
        except Exception:
            logger.debug("WebSocketClient: error closing transport", exc_info=True)

    # ------------------------------------------------------------------
    # Send interface (event loop thread)
    # ------------------------------------------------------------------

    async def send_control(self, msg_type: str, payload: Any = None) -> None:
        """Queue a control envelope as a JSON text frame."""
        self._enqueue(encode_control_message(WsControlMessage(type=msg_type, payload=payload)))

    async def send_audio(self, data: bytes, length: int | None = None) -> None:
        """Queue exactly ``data[:length]`` (all of data if None) as a binary frame."""
        self._enqueue(_audio_bytes(data, length))

    # ------------------------------------------------------------------
    # Send interface (any thread)
    # ------------------------------------------------------------------

    def send_control_threadsafe(self, msg_type: str, payload: Any = None) -> None:
        """Thread-safe: encode a control envelope and queue it for sending."""
        frame = encode_control_message(WsControlMessage(type=msg_type, payload=payload))
        self._require_loop().call_soon_threadsafe(self._enqueue, frame)

    def send_audio_threadsafe(self, data: bytes, length: int | None = None) -> None:
        """Thread-safe: queue ``data[:length]`` as a binary frame."""
        frame = _audio_bytes(data, length)
        self._require_loop().call_soon_threadsafe(self._enqueue, frame)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _open_transport(self, cancel_event: asyncio.Event | None) -> Any:
        """Open a new transport; abort the handshake if cancel_event is set."""
        connect_task = asyncio.ensure_future(self._connect_factory(self.url))
        if cancel_event is None:
            return await connect_task

        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {connect_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_task.cancel()

        if connect_task in done:
            return connect_task.result()

        connect_task.cancel()
        try:
            await connect_task
        except (asyncio.CancelledError, *_HANDSHAKE_ERRORS):
            pass
        logger.warning("WebSocketClient: connection attempts cancelled")
        raise ConnectCancelledError(f"Connection to {self.url} cancelled")

    async def _wait_retry(self, retry_interval_ms: int, cancel_event: asyncio.Event | None) -> None:
        """Sleep between attempts; raise ConnectCancelledError if cancelled meanwhile."""
        delay = retry_interval_ms / 1000
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        logger.warning("WebSocketClient: connection attempts cancelled")
        raise ConnectCancelledError(f"Connection to {self.url} cancelled")

    def _attach(self, websocket: Any) -> None:
        """Adopt a freshly connected transport and start the send/receive tasks."""
        self._websocket = websocket
        self._loop = asyncio.get_running_loop()
        self._send_queue = asyncio.Queue()
        self._pending_audio = 0
        self.state = ConnectionState.CONNECTED
        self._sender_task = self._loop.create_task(self._sender_loop(websocket))
        self._receive_task = self._loop.create_task(self._receive_loop(websocket))

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise RuntimeError("WebSocketClient is not connected")
        return self._loop

    def _enqueue(self, frame: str | bytes) -> None:
        """Put a frame on the send queue (event loop thread only)."""
        if self._send_queue is None or self.state != ConnectionState.CONNECTED:
            logger.warning("WebSocketClient: not connected, dropping outbound frame")
            return
        if isinstance(frame, bytes):
            if self._pending_audio >= _AUDIO_QUEUE_LIMIT:
                logger.warning("WebSocketClient: send queue full, dropping audio frame")
                return
            self._pending_audio += 1
        self._send_queue.put_nowait(frame)

    async def _flush(self) -> None:
        """Wait until queued frames are sent, bounded by _FLUSH_TIMEOUT_SEC."""
        if self._send_queue is None or self._sender_task is None or self._sender_task.done():
            return
        try:
            await asyncio.wait_for(self._send_queue.join(), timeout=_FLUSH_TIMEOUT_SEC)
        except asyncio.TimeoutError:
            logger.warning(
                "WebSocketClient: %d frames unsent at close", self._send_queue.qsize()
            )

    async def _sender_loop(self, websocket: Any) -> None:
        """Async task: drain the send queue in order and call websocket.send.

        A closed connection ends the task; other send errors are logged and
        the frame is skipped.
        """
        queue = self._send_queue
        while True:
            frame = await queue.get()
            if isinstance(frame, bytes):
                self._pending_audio -= 1
            try:
                await websocket.send(frame)
            except ConnectionClosed:
                logger.warning("WebSocketClient: connection closed while sending")
                queue.task_done()
                _drain(queue)
                return
            except Exception:
                logger.exception("WebSocketClient: error sending frame")
            queue.task_done()

    async def _receive_loop(self, websocket: Any) -> None:
        """Async task: read frames until the connection closes.

        Algorithm:
            1. async-iterate websocket frames.
            2. Text frame → log, decode, call on_message.
            3. Binary frame → log and ignore.
            4. Close frame or transport error → log, mark DISCONNECTED, return.
        """
        try:
            async for message in websocket:
                if isinstance(message, str):
                    self._handle_text(message)
                else:
                    logger.debug("WebSocketClient: ignoring %d-byte binary frame", len(message))
        except ConnectionClosed as exc:
            logger.warning("WebSocketClient: connection closed: %s", exc)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("WebSocketClient: error in receive loop")

        logger.info("WebSocketClient: receive loop ended")
        if self._websocket is websocket and self.state == ConnectionState.CONNECTED:
            self.state = ConnectionState.DISCONNECTED

    def _handle_text(self, text: str) -> None:
        logger.info("WebSocketClient: received %s", text)
        try:
            msg = decode_control_message(text)
        except ValueError as exc:
            logger.warning("WebSocketClient: invalid control message: %s", exc)
            return

        if self.on_message is None:
            return
        try:
            self.on_message(msg)
        except Exception:
            logger.exception("WebSocketClient: on_message handler failed for %s", msg.type)


def _audio_bytes(data: bytes, length: int | None) -> bytes:
    if length is None:
        return bytes(data)
    if length < 0 or length > len(data):
        raise ValueError(f"length {length} out of range for {len(data)}-byte buffer")
    return bytes(data[:length])


def _drain(queue: asyncio.Queue) -> None:
    """Discard everything left in queue, marking each item done."""
    while not queue.empty():
        queue.get_nowait()
        queue.task_done()
