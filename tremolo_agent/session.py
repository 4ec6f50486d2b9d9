"""High-level agent session.

Wires a credential source, a ConnectionManager, an AuthHandshake and a
message sink into one owned object:

    session = AgentSession(
        "ws://localhost:8000/ws/agent",
        EnvCredentialSource(),
        sink=print,
    )
    state = await session.run()
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from .connection import CloseReason, ConnectionManager, ConnectionState
from .credentials import CredentialSource
from .errors import ConnectionStateError, TremoloClientError
from .handshake import AuthHandshake
from .protocol import build_auth_headers

_LOGGER = logging.getLogger(__name__)

MessageSink = Callable[[str | bytes], Awaitable[None] | None]


class AgentSession:
    """One agent connection from credential loading to terminal state."""

    def __init__(
        self,
        endpoint: str,
        credentials: CredentialSource,
        sink: MessageSink,
        *,
        send_auth_headers: bool = True,
        ping_interval: float | None = 20,
        open_timeout: float | None = None,
    ) -> None:
        """Initialize session.

        Args:
            endpoint: Agent WebSocket URI
            credentials: Source queried once on start
            sink: Receives every inbound frame verbatim
            send_auth_headers: Also identify the agent in the upgrade request headers
            ping_interval: Keepalive ping interval (seconds)
            open_timeout: Connect timeout (seconds), ``None`` waits indefinitely
        """
        self.endpoint = endpoint
        self._credentials = credentials
        self._sink = sink
        self._send_auth_headers = send_auth_headers
        self._ping_interval = ping_interval
        self._open_timeout = open_timeout

        self._connection: ConnectionManager | None = None
        self._handshake: AuthHandshake | None = None
        self.close_reason: CloseReason | None = None
        self.last_error: TremoloClientError | None = None

    @property
    def connection(self) -> ConnectionManager | None:
        return self._connection

    @property
    def handshake(self) -> AuthHandshake | None:
        return self._handshake

    @property
    def state(self) -> ConnectionState:
        if self._connection is None:
            return ConnectionState.IDLE
        return self._connection.state

    def start(self) -> None:
        """Load credentials and start connecting.

        Raises:
            CredentialError: If the credential source fails
            ConnectionStateError: If the session was already started
        """
        if self._connection is not None:
            raise ConnectionStateError("Session already started")

        credential = self._credentials.load()
        headers = build_auth_headers(credential) if self._send_auth_headers else None

        connection = ConnectionManager(
            label=credential.name,
            headers=headers,
            ping_interval=self._ping_interval,
            open_timeout=self._open_timeout,
        )
        self._handshake = AuthHandshake(connection, credential)
        connection.on_message(self._sink)
        connection.on_close(self._handle_close)
        connection.on_error(self._handle_error)

        self._connection = connection
        connection.connect(self.endpoint)

    async def run(self) -> ConnectionState:
        """Start the session and wait for it to end.

        Returns:
            The terminal connection state, CLOSED or FAILED
        """
        self.start()
        assert self._connection is not None
        await self._connection.wait_closed()
        return self._connection.state

    async def close(self) -> None:
        """Close the session. No-op if never started or already closed."""
        if self._connection is not None:
            await self._connection.close()

    def _handle_close(self, reason: CloseReason) -> None:
        self.close_reason = reason

    def _handle_error(self, error: TremoloClientError) -> None:
        self.last_error = error
        _LOGGER.error("[%s] Session failed: %s", self.endpoint, error)
