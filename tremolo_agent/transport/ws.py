"""WebSocket helpers for the Tremolo agent transport."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from urllib.parse import urlsplit, urlunsplit

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import ConnectError, ConnectTimeout, HandshakeError

AGENT_PATH = "/ws/agent"

_SCHEME_MAP = {
    "http": "ws",
    "https": "wss",
    "ws": "ws",
    "wss": "wss",
}


def agent_endpoint(host: str, *, path: str = AGENT_PATH) -> str:
    """Resolve an orchestrator URL into its agent WebSocket endpoint.

    Accepts ``http(s)://``, ``ws(s)://`` or a bare ``host[:port]``. Any path
    already present on ``host`` is kept as a prefix.

    Raises:
        ConnectError: If the scheme is not supported.
    """
    if "://" not in host:
        host = f"ws://{host}"
    parts = urlsplit(host)
    scheme = _SCHEME_MAP.get(parts.scheme.lower())
    if scheme is None:
        raise ConnectError(f"Unsupported URL scheme: {parts.scheme}")
    if not parts.netloc:
        raise ConnectError(f"Missing host in URL: {host}")
    full_path = parts.path.rstrip("/") + path
    return urlunsplit((scheme, parts.netloc, full_path, "", ""))


async def connect_websocket(
    endpoint: str,
    *,
    headers: Mapping[str, str] | None = None,
    ping_interval: float | None = 20,
    open_timeout: float | None = None,
    close_timeout: float = 5,
) -> ClientConnection:
    """Connect to a WebSocket endpoint.

    Uses the websockets library which properly implements RFC 6455 frame masking.
    All client-to-server frames are automatically masked per the standard.

    Args:
        endpoint: ``ws://`` or ``wss://`` URI
        headers: Extra headers for the upgrade request
        ping_interval: Interval for ping frames
        open_timeout: Connection timeout, ``None`` to wait indefinitely
        close_timeout: Seconds to wait for the closing handshake
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                endpoint,
                additional_headers=dict(headers) if headers else None,
                ping_interval=ping_interval,
                open_timeout=None,
                close_timeout=close_timeout,
                max_size=None,
            ),
            timeout=open_timeout,
        )
    except TimeoutError as err:
        raise ConnectTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise HandshakeError(f"WebSocket handshake failed: {err}") from err
    except (OSError, WebSocketException) as err:
        raise ConnectError(f"WebSocket connection failed: {err}") from err
    except ValueError as err:
        raise ConnectError(f"Invalid endpoint: {err}") from err
