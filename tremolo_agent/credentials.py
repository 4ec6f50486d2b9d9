"""Credential sources for agent authentication.

The session core never validates credentials. Sources only check that a
name and token are present so that a misconfigured agent fails before it
opens a connection.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import yaml

from .errors import CredentialError

_LOGGER = logging.getLogger(__name__)

ENV_AGENT_NAME = "TREMOLO_AGENT_NAME"
ENV_AGENT_TOKEN = "TREMOLO_AGENT_TOKEN"


@dataclass(frozen=True)
class Credential:
    """Agent identity presented to the orchestrator."""

    name: str
    token: str

    def __repr__(self) -> str:
        return f"Credential(name={self.name!r}, token='***')"


class CredentialSource(Protocol):
    """Anything that can supply a Credential."""

    def load(self) -> Credential: ...


def _credential_from_mapping(data: Mapping[str, Any], origin: str) -> Credential:
    name = data.get("name")
    token = data.get("token")
    missing = [key for key, value in (("name", name), ("token", token)) if not value]
    if missing:
        raise CredentialError(f"{origin}: missing {', '.join(missing)}")
    return Credential(name=str(name), token=str(token))


class StaticCredentialSource:
    """Credential supplied in code or on the command line."""

    def __init__(self, credential: Credential) -> None:
        self._credential = credential

    def load(self) -> Credential:
        return self._credential


class EnvCredentialSource:
    """Credential read from environment variables."""

    def __init__(
        self,
        *,
        name_var: str = ENV_AGENT_NAME,
        token_var: str = ENV_AGENT_TOKEN,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._name_var = name_var
        self._token_var = token_var
        self._environ = environ if environ is not None else os.environ

    def load(self) -> Credential:
        data = {
            "name": self._environ.get(self._name_var),
            "token": self._environ.get(self._token_var),
        }
        return _credential_from_mapping(
            data, f"environment ({self._name_var}/{self._token_var})"
        )


class YamlCredentialSource:
    """Credential read from a YAML file.

    Expected layout::

        name: my-agent
        token: s3cret

    A top-level ``credentials:`` mapping with the same keys is also accepted.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def load(self) -> Credential:
        try:
            with self._path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as err:
            raise CredentialError(f"Cannot read {self._path}: {err}") from err
        except yaml.YAMLError as err:
            raise CredentialError(f"Invalid YAML in {self._path}: {err}") from err

        if not isinstance(data, dict):
            raise CredentialError(f"{self._path}: expected a mapping")
        if isinstance(data.get("credentials"), dict):
            data = data["credentials"]

        credential = _credential_from_mapping(data, str(self._path))
        _LOGGER.debug("Loaded credential for %s from %s", credential.name, self._path)
        return credential
