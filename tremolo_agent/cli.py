"""Command line entry point for the Tremolo agent."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import aiohttp
import typer

from .config import ENV_HOST, ENV_LOG_LEVEL, AgentSettings, configure_logging
from .connection import ConnectionState
from .credentials import (
    ENV_AGENT_NAME,
    ENV_AGENT_TOKEN,
    Credential,
    CredentialSource,
    StaticCredentialSource,
    YamlCredentialSource,
)
from .errors import ConnectError, TremoloClientError
from .http import OrchestratorHttpClient
from .session import AgentSession, MessageSink

_LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Tremolo agent client", no_args_is_help=True)


@app.callback()
def main_callback() -> None:
    """Connect worker agents to a Tremolo orchestrator."""


def _echo_frame(payload: str | bytes) -> None:
    typer.echo(payload)


def _credential_source(
    name: Optional[str], token: Optional[str], credentials: Optional[Path]
) -> CredentialSource:
    if credentials is not None:
        return YamlCredentialSource(credentials)
    if not name or not token:
        raise typer.BadParameter(
            f"provide --name and --token (or {ENV_AGENT_NAME}/{ENV_AGENT_TOKEN}) "
            "or --credentials"
        )
    return StaticCredentialSource(Credential(name=name, token=token))


async def probe_health(host: str) -> bool:
    """Return True if the orchestrator reports itself healthy."""
    async with aiohttp.ClientSession() as http:
        return await OrchestratorHttpClient(http, host).check_health()


async def run_agent(
    settings: AgentSettings,
    credentials: CredentialSource,
    sink: MessageSink = _echo_frame,
) -> ConnectionState:
    """Run one agent session to completion.

    Raises:
        TremoloClientError: If the health check or credential loading fails
    """
    if settings.check_health and not await probe_health(settings.host):
        raise ConnectError(f"Orchestrator at {settings.host} is not healthy")

    session = AgentSession(
        settings.endpoint,
        credentials,
        sink,
        send_auth_headers=settings.send_auth_headers,
        ping_interval=settings.ping_interval,
        open_timeout=settings.open_timeout,
    )
    try:
        return await session.run()
    finally:
        await session.close()


@app.command()
def agent(
    host: str = typer.Option(
        ..., envvar=ENV_HOST, help="The URL to your Tremolo orchestrator instance"
    ),
    name: Optional[str] = typer.Option(
        None, envvar=ENV_AGENT_NAME, help="Agent name presented to the orchestrator"
    ),
    token: Optional[str] = typer.Option(
        None, envvar=ENV_AGENT_TOKEN, help="Agent authentication token"
    ),
    credentials: Optional[Path] = typer.Option(
        None,
        exists=True,
        dir_okay=False,
        help="YAML file with name and token, overrides --name/--token",
    ),
    log_level: str = typer.Option("INFO", envvar=ENV_LOG_LEVEL, help="Log level"),
    open_timeout: Optional[float] = typer.Option(
        None, help="Seconds to wait for the connection to open"
    ),
    auth_headers: bool = typer.Option(
        True,
        "--auth-headers/--no-auth-headers",
        help="Also send credentials as upgrade request headers",
    ),
    check_health: bool = typer.Option(
        False, "--check-health", help="Probe /healthcheck before connecting"
    ),
) -> None:
    """Start the worker agent and print every frame the orchestrator sends."""
    try:
        configure_logging(log_level)
    except ValueError as err:
        raise typer.BadParameter(str(err), param_hint="--log-level") from err

    source = _credential_source(name, token, credentials)
    settings = AgentSettings(
        host=host,
        log_level=log_level,
        open_timeout=open_timeout,
        send_auth_headers=auth_headers,
        check_health=check_health,
    )

    try:
        state = asyncio.run(run_agent(settings, source))
    except TremoloClientError as err:
        typer.echo(f"Error: {err}", err=True)
        raise typer.Exit(code=1) from err
    except KeyboardInterrupt:
        _LOGGER.info("Interrupted")
        raise typer.Exit(code=130) from None

    if state is not ConnectionState.CLOSED:
        raise typer.Exit(code=1)


@app.command()
def health(
    host: str = typer.Option(
        ..., envvar=ENV_HOST, help="The URL to your Tremolo orchestrator instance"
    ),
) -> None:
    """Check that the orchestrator answers its health endpoint."""
    try:
        healthy = asyncio.run(probe_health(host))
    except TremoloClientError as err:
        typer.echo(f"Error: {err}", err=True)
        raise typer.Exit(code=1) from err

    typer.echo("OK" if healthy else "UNHEALTHY")
    if not healthy:
        raise typer.Exit(code=1)


def main() -> None:
    app(prog_name="tremolo-agent")
