"""Client-side session for Tremolo worker agents."""

__version__ = "0.1.0"

from .connection import CloseReason, ConnectionManager, ConnectionState
from .credentials import (
    Credential,
    CredentialSource,
    EnvCredentialSource,
    StaticCredentialSource,
    YamlCredentialSource,
)
from .errors import (
    ConnectError,
    ConnectionStateError,
    ConnectTimeout,
    CredentialError,
    HandshakeError,
    ResponseError,
    SendError,
    TremoloClientError,
    TransportError,
)
from .handshake import AuthHandshake, HandshakeState
from .http import OrchestratorHttpClient
from .protocol import AuthEnvelope, Envelope, build_auth_headers, build_envelope, encode_envelope
from .session import AgentSession, MessageSink
from .transport import agent_endpoint, connect_websocket

__all__ = [
    "AgentSession",
    "AuthEnvelope",
    "AuthHandshake",
    "CloseReason",
    "ConnectError",
    "ConnectTimeout",
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStateError",
    "Credential",
    "CredentialError",
    "CredentialSource",
    "EnvCredentialSource",
    "Envelope",
    "HandshakeError",
    "HandshakeState",
    "MessageSink",
    "OrchestratorHttpClient",
    "ResponseError",
    "SendError",
    "StaticCredentialSource",
    "TransportError",
    "TremoloClientError",
    "YamlCredentialSource",
    "__version__",
    "agent_endpoint",
    "build_auth_headers",
    "build_envelope",
    "connect_websocket",
]
