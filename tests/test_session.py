"""Tests for AgentSession end-to-end behaviour."""

from __future__ import annotations

import asyncio

import pytest

from tremolo_agent import (
    AgentSession,
    ConnectError,
    ConnectionState,
    ConnectionStateError,
    Credential,
    CredentialError,
    EnvCredentialSource,
    HandshakeState,
    StaticCredentialSource,
)

from .conftest import AUTH_FRAME, FakeOrchestrator, wait_until

CREDENTIALS = StaticCredentialSource(Credential(name="Fake Client", token="fake-token"))


@pytest.mark.asyncio
async def test_session_creation():
    """Test a session starts idle and unconnected."""
    session = AgentSession("ws://127.0.0.1:8000/ws/agent", CREDENTIALS, print)

    assert session.state is ConnectionState.IDLE
    assert session.connection is None
    assert session.handshake is None
    await session.close()


@pytest.mark.asyncio
async def test_live_scenario(orchestrator: FakeOrchestrator):
    """Test open, auth, inbound hello, peer close, then silence."""
    received: list[str | bytes] = []
    session = AgentSession(orchestrator.url, CREDENTIALS, received.append)

    task = asyncio.create_task(session.run())
    await asyncio.wait_for(orchestrator.frame_received.wait(), timeout=2)

    assert orchestrator.received == [AUTH_FRAME]
    assert session.handshake is not None
    assert session.handshake.state is HandshakeState.SENT

    assert orchestrator.connection is not None
    await orchestrator.connection.send("hello")
    await wait_until(lambda: received == ["hello"])

    await orchestrator.connection.close()
    state = await asyncio.wait_for(task, timeout=2)

    assert state is ConnectionState.CLOSED
    assert session.close_reason is not None
    assert session.close_reason.code == 1000
    assert session.last_error is None

    await session.close()
    assert received == ["hello"]
    assert orchestrator.received == [AUTH_FRAME]


@pytest.mark.asyncio
async def test_auth_headers_sent(orchestrator: FakeOrchestrator):
    """Test the upgrade request identifies the agent."""
    session = AgentSession(orchestrator.url, CREDENTIALS, lambda payload: None)
    session.start()
    await asyncio.wait_for(orchestrator.connected.wait(), timeout=2)

    headers = orchestrator.request_headers
    assert headers["X-Tremolo-Auth"] == "fake-token"
    assert headers["X-Tremolo-Agent-Name"] == "Fake Client"
    await session.close()


@pytest.mark.asyncio
async def test_auth_headers_disabled(orchestrator: FakeOrchestrator):
    """Test headers can be turned off."""
    session = AgentSession(
        orchestrator.url,
        CREDENTIALS,
        lambda payload: None,
        send_auth_headers=False,
    )
    session.start()
    await asyncio.wait_for(orchestrator.connected.wait(), timeout=2)

    assert "X-Tremolo-Auth" not in orchestrator.request_headers
    await session.close()


@pytest.mark.asyncio
async def test_unreachable_scenario(unreachable_url: str):
    """Test a failed connect ends FAILED with a ConnectError and no auth."""
    session = AgentSession(unreachable_url, CREDENTIALS, lambda payload: None)

    state = await asyncio.wait_for(session.run(), timeout=5)

    assert state is ConnectionState.FAILED
    assert isinstance(session.last_error, ConnectError)
    assert session.handshake is not None
    assert session.handshake.state is HandshakeState.PENDING


@pytest.mark.asyncio
async def test_credential_error_prevents_connect():
    """Test a broken credential source fails before any connection."""
    session = AgentSession(
        "ws://127.0.0.1:9/ws/agent",
        EnvCredentialSource(environ={}),
        lambda payload: None,
    )

    with pytest.raises(CredentialError):
        session.start()
    assert session.connection is None


@pytest.mark.asyncio
async def test_start_twice_rejected(orchestrator: FakeOrchestrator):
    """Test a session cannot be started twice."""
    session = AgentSession(orchestrator.url, CREDENTIALS, lambda payload: None)
    session.start()

    with pytest.raises(ConnectionStateError):
        session.start()
    await session.close()
    assert session.state is ConnectionState.CLOSED
