"""Pytest configuration and fixtures for tremolo_agent tests."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import AsyncIterator, Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from tremolo_agent import ConnectionManager

AUTH_FRAME = '{"AuthRequest":{"name":"Fake Client","token":"fake-token"}}'


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    text_data: str | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        text_data: Data to return from text() call

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if text_data is not None:
        response.text.return_value = text_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


class FakeOrchestrator:
    """Loopback WebSocket server standing in for the orchestrator."""

    def __init__(self) -> None:
        self.url = ""
        self.received: list[str | bytes] = []
        self.request_headers: Any = None
        self.connection: ServerConnection | None = None
        self.connected = asyncio.Event()
        self.frame_received = asyncio.Event()

    async def handler(self, ws: ServerConnection) -> None:
        self.connection = ws
        self.request_headers = ws.request.headers if ws.request else None
        self.connected.set()
        try:
            async for frame in ws:
                self.received.append(frame)
                self.frame_received.set()
        except ConnectionClosed:
            pass


@pytest.fixture
async def orchestrator() -> AsyncIterator[FakeOrchestrator]:
    """Run a FakeOrchestrator on an ephemeral localhost port."""
    fake = FakeOrchestrator()
    async with serve(fake.handler, "127.0.0.1", 0) as server:
        port = list(server.sockets)[0].getsockname()[1]
        fake.url = f"ws://127.0.0.1:{port}/ws/agent"
        yield fake


@pytest.fixture
def unreachable_url() -> str:
    """URL of a localhost port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"ws://127.0.0.1:{port}/ws/agent"


class EventRecorder:
    """Record every event a ConnectionManager emits, in order."""

    def __init__(self, manager: ConnectionManager) -> None:
        self.events: list[tuple[str, Any]] = []
        manager.on_open(lambda: self.events.append(("open", None)))
        manager.on_message(lambda payload: self.events.append(("message", payload)))
        manager.on_close(lambda reason: self.events.append(("close", reason)))
        manager.on_error(lambda error: self.events.append(("error", error)))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> list[Any]:
        return [value for event, value in self.events if event == name]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it holds or ``timeout`` expires."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)
