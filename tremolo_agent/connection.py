"""Connection lifecycle for a single Tremolo agent WebSocket.

A ConnectionManager owns exactly one connection attempt. ``connect`` returns
immediately and the outcome is reported through registered event handlers:

- ``on_open()`` once, when the WebSocket handshake completes
- ``on_message(payload)`` once per inbound frame, in arrival order
- ``on_close(reason)`` once, on clean termination from either side
- ``on_error(error)`` once, on connect or mid-session transport failure

All events for one instance are delivered from the same task, so handlers
never run concurrently with each other. No event fires after ``on_close``
or ``on_error``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from .errors import (
    ConnectError,
    ConnectionStateError,
    SendError,
    TremoloClientError,
    TransportError,
)
from .protocol import Envelope, encode_envelope
from .transport import connect_websocket

_LOGGER = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle states of a ConnectionManager."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ConnectionState.CLOSED, ConnectionState.FAILED)


@dataclass(frozen=True)
class CloseReason:
    """Why a connection ended cleanly."""

    code: int | None = None
    reason: str = ""


OpenHandler = Callable[[], Awaitable[None] | None]
MessageHandler = Callable[[str | bytes], Awaitable[None] | None]
CloseHandler = Callable[[CloseReason], Awaitable[None] | None]
ErrorHandler = Callable[[TremoloClientError], Awaitable[None] | None]


class ConnectionManager:
    """Owns one WebSocket connection and publishes its lifecycle events.

    Usage:
        manager = ConnectionManager(label="build-01")
        manager.on_open(handle_open)
        manager.on_message(print)
        manager.connect("ws://localhost:8000/ws/agent")
        await manager.wait_closed()
    """

    def __init__(
        self,
        *,
        label: str = "agent",
        headers: Mapping[str, str] | None = None,
        ping_interval: float | None = 20,
        open_timeout: float | None = None,
        close_timeout: float = 5.0,
    ) -> None:
        """Initialize manager.

        Args:
            label: Prefix used in log messages
            headers: Extra headers for the upgrade request
            ping_interval: Keepalive ping interval (seconds), ``None`` disables
            open_timeout: Connect timeout (seconds), ``None`` waits indefinitely
            close_timeout: Seconds to wait for the closing handshake and the reader
        """
        self.label = label
        self._headers = dict(headers) if headers else None
        self._ping_interval = ping_interval
        self._open_timeout = open_timeout
        self._close_timeout = close_timeout

        self._state = ConnectionState.IDLE
        self._endpoint: str | None = None
        self._ws: ClientConnection | None = None
        self._task: asyncio.Task[None] | None = None
        self._connect_task: asyncio.Task[ClientConnection] | None = None
        self._closing = False
        self._terminated = asyncio.Event()

        self._open_handlers: list[OpenHandler] = []
        self._message_handlers: list[MessageHandler] = []
        self._close_handlers: list[CloseHandler] = []
        self._error_handlers: list[ErrorHandler] = []

    # -------------------------------------------------------------------------
    # Public API: Event registration
    # -------------------------------------------------------------------------

    def on_open(self, handler: OpenHandler) -> None:
        """Register a handler fired once when the connection opens."""
        self._open_handlers.append(handler)

    def on_message(self, handler: MessageHandler) -> None:
        """Register a handler fired for every inbound frame."""
        self._message_handlers.append(handler)

    def on_close(self, handler: CloseHandler) -> None:
        """Register a handler fired once on clean termination."""
        self._close_handlers.append(handler)

    def on_error(self, handler: ErrorHandler) -> None:
        """Register a handler fired once on transport failure."""
        self._error_handlers.append(handler)

    # -------------------------------------------------------------------------
    # Public API: Lifecycle
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN and not self._closing

    @property
    def endpoint(self) -> str | None:
        return self._endpoint

    def connect(self, endpoint: str) -> None:
        """Start connecting to ``endpoint`` in the background.

        Must be called from a running event loop.

        Raises:
            ConnectionStateError: If this instance was already used
        """
        if self._state is not ConnectionState.IDLE:
            raise ConnectionStateError(
                f"Cannot connect from state '{self._state.value}'"
            )

        loop = asyncio.get_running_loop()
        self._endpoint = endpoint
        self._set_state(ConnectionState.CONNECTING)
        _LOGGER.info("[%s] Connecting to %s", self.label, endpoint)
        self._task = loop.create_task(self._run(endpoint))

    async def send(self, envelope: Envelope | Mapping[str, Any]) -> None:
        """Serialize ``envelope`` and transmit it as one text frame.

        Raises:
            SendError: If the connection is not open (nothing is sent)
            TransportError: If the transport fails while sending
        """
        ws = self._ws
        if not self.is_open or ws is None:
            state = self._state.value
            if self._closing and not self._state.is_terminal:
                state = "closing"
            raise SendError(f"Cannot send while connection is '{state}'")

        frame = encode_envelope(envelope)
        try:
            await ws.send(frame)
        except ConnectionClosed as err:
            raise TransportError("Connection closed while sending") from err
        _LOGGER.debug("[%s] Sent frame (%d chars)", self.label, len(frame))

    async def close(self) -> None:
        """Close gracefully. Safe to call from any state, any number of times."""
        if self._state.is_terminal or self._closing:
            return

        self._closing = True
        _LOGGER.info("[%s] Closing connection", self.label)

        if self._state is ConnectionState.IDLE:
            self._set_state(ConnectionState.CLOSED)
            self._terminated.set()
            return

        task = self._task
        in_reader = task is not None and task is asyncio.current_task()

        if self._state is ConnectionState.CONNECTING:
            # An attempt that already succeeded is closed by _run, not dropped
            if self._connect_task is not None:
                self._connect_task.cancel()
            if task is not None and not in_reader:
                await asyncio.wait({task})
            await self._finish(CloseReason(reason="closed before open"))
            return

        if self._ws is not None:
            try:
                await self._ws.close()
            except (WebSocketException, OSError) as err:
                _LOGGER.warning("[%s] Error during close: %s", self.label, err)

        await self._finish(self._close_reason(default="closed by client"))

        if task is not None and not in_reader and not task.done():
            _, pending = await asyncio.wait({task}, timeout=self._close_timeout)
            if pending:
                _LOGGER.warning("[%s] Reader did not stop, cancelling", self.label)
                task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the connection reaches a terminal state."""
        await self._terminated.wait()

    # -------------------------------------------------------------------------
    # Internal: Connection task
    # -------------------------------------------------------------------------

    async def _run(self, endpoint: str) -> None:
        if self._closing:
            return

        connect_task = asyncio.create_task(
            connect_websocket(
                endpoint,
                headers=self._headers,
                ping_interval=self._ping_interval,
                open_timeout=self._open_timeout,
                close_timeout=self._close_timeout,
            )
        )
        self._connect_task = connect_task
        try:
            await asyncio.wait({connect_task})
        finally:
            # _run cancelled: stop the attempt with it
            if not connect_task.done():
                connect_task.cancel()
            self._connect_task = None

        if connect_task.cancelled():
            return

        error = connect_task.exception()
        if isinstance(error, ConnectError):
            _LOGGER.warning("[%s] Connection failed: %s", self.label, error)
            await self._fail(error)
            return
        if error is not None:
            _LOGGER.error(
                "[%s] Unexpected connect error: %r", self.label, error, exc_info=error
            )
            failure = ConnectError(f"Connection failed: {error}")
            failure.__cause__ = error
            await self._fail(failure)
            return

        ws = connect_task.result()
        if self._closing:
            _LOGGER.debug("[%s] Closing connection opened during close", self.label)
            try:
                await ws.close()
            except (WebSocketException, OSError) as err:
                _LOGGER.warning("[%s] Error during close: %s", self.label, err)
            return

        self._ws = ws
        self._set_state(ConnectionState.OPEN)
        _LOGGER.info("[%s] Connected", self.label)

        await self._emit("open", self._open_handlers)
        await self._listen(ws)

    async def _listen(self, ws: ClientConnection) -> None:
        """Forward inbound frames until the connection ends."""
        message_count = 0
        try:
            async for frame in ws:
                if self._closing or self._state is not ConnectionState.OPEN:
                    break
                message_count += 1
                await self._emit("message", self._message_handlers, frame)
        except ConnectionClosedError as err:
            if self._closing:
                _LOGGER.debug("[%s] Closing handshake incomplete: %s", self.label, err)
                return
            _LOGGER.warning(
                "[%s] Connection lost after %d messages: %s",
                self.label,
                message_count,
                err,
            )
            await self._fail(TransportError(f"Connection lost: {err}"))
            return
        except (WebSocketException, OSError) as err:
            if self._closing:
                _LOGGER.debug("[%s] Transport error during close: %s", self.label, err)
                return
            _LOGGER.error("[%s] Transport error: %s", self.label, err)
            await self._fail(TransportError(f"Transport error: {err}"))
            return
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected reader error: %s", self.label, err)
            await self._fail(TransportError(f"Unexpected reader error: {err}"))
            return

        _LOGGER.debug("[%s] Reader done (%d messages)", self.label, message_count)
        if not self._closing:
            await self._finish(self._close_reason(default="closed by peer"))

    # -------------------------------------------------------------------------
    # Internal: State machine
    # -------------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        if self._state is not state:
            _LOGGER.debug(
                "[%s] State: %s → %s", self.label, self._state.value, state.value
            )
            self._state = state

    def _close_reason(self, *, default: str) -> CloseReason:
        if self._ws is None:
            return CloseReason(reason=default)
        return CloseReason(
            code=self._ws.close_code,
            reason=self._ws.close_reason or default,
        )

    async def _finish(self, reason: CloseReason) -> None:
        if self._state.is_terminal:
            return
        self._set_state(ConnectionState.CLOSED)
        _LOGGER.info("[%s] Connection closed (%s)", self.label, reason.reason)
        try:
            await self._emit("close", self._close_handlers, reason)
        finally:
            self._terminated.set()

    async def _fail(self, error: TremoloClientError) -> None:
        if self._state.is_terminal:
            return
        self._set_state(ConnectionState.FAILED)
        try:
            await self._emit("error", self._error_handlers, error)
        finally:
            self._terminated.set()

    async def _emit(self, event: str, handlers: list[Any], *args: Any) -> None:
        """Invoke handlers in registration order, logging their failures."""
        for handler in list(handlers):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as err:
                _LOGGER.exception(
                    "[%s] %s handler error: %s", self.label, event, err
                )
