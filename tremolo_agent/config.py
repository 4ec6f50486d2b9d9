"""Runtime settings for the agent command."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .transport import agent_endpoint

ENV_HOST = "TREMOLO_HOST"
ENV_LOG_LEVEL = "TREMOLO_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d %(message)s"


@dataclass(frozen=True)
class AgentSettings:
    """Settings gathered from the command line and environment."""

    host: str
    log_level: str = "INFO"
    open_timeout: float | None = None
    ping_interval: float | None = 20
    send_auth_headers: bool = True
    check_health: bool = False

    @property
    def endpoint(self) -> str:
        return agent_endpoint(self.host)


def configure_logging(level: str) -> None:
    """Configure root logging once at startup.

    Raises:
        ValueError: If ``level`` is not a logging level name
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    # Frame-level noise from the transport library
    logging.getLogger("websockets").setLevel(max(numeric, logging.INFO))
