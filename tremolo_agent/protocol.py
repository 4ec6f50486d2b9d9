"""Protocol helpers for Tremolo agent frames.

Outbound messages are externally tagged JSON objects: a single key naming the
variant whose value is the variant payload. Inbound frames are opaque to the
session and are never parsed here.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from .credentials import Credential

AUTH_HEADER_KEY = "X-Tremolo-Auth"
AGENT_NAME_HEADER_KEY = "X-Tremolo-Agent-Name"


def build_envelope(tag: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Build a tagged envelope ``{tag: payload}``."""
    return {tag: dict(payload)}


def encode_envelope(envelope: Envelope | Mapping[str, Any]) -> str:
    """Serialize an envelope into one compact JSON text frame."""
    if isinstance(envelope, Envelope):
        envelope = envelope.to_dict()
    if len(envelope) != 1:
        raise ValueError("Envelope must carry exactly one variant tag")
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


class Envelope:
    """Base class for tagged outbound messages."""

    TAG: ClassVar[str]

    def payload(self) -> dict[str, Any]:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        return build_envelope(self.TAG, self.payload())

    def encode(self) -> str:
        return encode_envelope(self)


@dataclass(frozen=True)
class AuthEnvelope(Envelope):
    """One-shot authentication request sent right after the connection opens."""

    TAG: ClassVar[str] = "AuthRequest"

    credential: Credential

    def payload(self) -> dict[str, Any]:
        return {"name": self.credential.name, "token": self.credential.token}


def build_auth_headers(credential: Credential) -> dict[str, str]:
    """Upgrade-request headers identifying the agent to the orchestrator."""
    return {
        AUTH_HEADER_KEY: credential.token,
        AGENT_NAME_HEADER_KEY: credential.name,
    }
