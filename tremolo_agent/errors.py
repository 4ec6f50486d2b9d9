"""Client error types for Tremolo agent sessions."""

from __future__ import annotations


class TremoloClientError(Exception):
    """Base error for Tremolo agent client failures."""


class ConnectError(TremoloClientError):
    """Transport connection to the orchestrator could not be established."""


class HandshakeError(ConnectError):
    """WebSocket upgrade was rejected or malformed."""


class ConnectTimeout(ConnectError):
    """Connection attempt exceeded the configured open timeout."""


class SendError(TremoloClientError):
    """Frame was not sent because the connection is not open."""


class TransportError(TremoloClientError):
    """Established connection failed mid-session."""


class ConnectionStateError(TremoloClientError):
    """Operation conflicts with the current connection state."""


class CredentialError(TremoloClientError):
    """Credentials could not be loaded from their source."""


class ResponseError(TremoloClientError):
    """HTTP response error from the orchestrator."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
