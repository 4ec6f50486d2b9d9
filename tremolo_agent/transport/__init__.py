"""Transport layer for the Tremolo agent.

Components:
- ws: WebSocket connection and endpoint resolution
"""

from .ws import AGENT_PATH, agent_endpoint, connect_websocket

__all__ = [
    "AGENT_PATH",
    "agent_endpoint",
    "connect_websocket",
]
