"""One-shot authentication performed when an agent connection opens.

The handshake is fire-and-forget: a single ``AuthRequest`` frame is sent and
no reply is awaited or interpreted. Whatever the orchestrator answers,
including a rejection, reaches the message sink like any other frame.
"""

from __future__ import annotations

import logging
from enum import Enum

from .connection import ConnectionManager
from .credentials import Credential
from .errors import TremoloClientError
from .protocol import AuthEnvelope

_LOGGER = logging.getLogger(__name__)


class HandshakeState(Enum):
    """Progress of the authentication handshake."""

    PENDING = "pending"
    SENT = "sent"
    SEND_FAILED = "send_failed"


class AuthHandshake:
    """Sends one AuthEnvelope when its connection opens."""

    def __init__(self, connection: ConnectionManager, credential: Credential) -> None:
        self._connection = connection
        self._credential = credential
        self._state = HandshakeState.PENDING
        connection.on_open(self._handle_open)

    @property
    def state(self) -> HandshakeState:
        return self._state

    @property
    def sent(self) -> bool:
        """True once the auth frame was handed to the transport."""
        return self._state is HandshakeState.SENT

    async def _handle_open(self) -> None:
        if self._state is not HandshakeState.PENDING:
            _LOGGER.warning(
                "[%s] Handshake already %s, not resending",
                self._connection.label,
                self._state.value,
            )
            return

        envelope = AuthEnvelope(self._credential)
        try:
            await self._connection.send(envelope)
        except TremoloClientError as err:
            self._state = HandshakeState.SEND_FAILED
            _LOGGER.error("[%s] Auth request not sent: %s", self._connection.label, err)
            return

        self._state = HandshakeState.SENT
        _LOGGER.info(
            "[%s] Auth request sent as %r (unacknowledged)",
            self._connection.label,
            self._credential.name,
        )
