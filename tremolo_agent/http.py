"""HTTP client for Tremolo orchestrator endpoints."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

import aiohttp

from .errors import ConnectError, ConnectTimeout, ResponseError

_HTTP_SCHEMES = {
    "http": "http",
    "https": "https",
    "ws": "http",
    "wss": "https",
}


def http_base_url(host: str) -> str:
    """Normalize an orchestrator URL into its HTTP base URL."""
    if "://" not in host:
        host = f"http://{host}"
    parts = urlsplit(host)
    scheme = _HTTP_SCHEMES.get(parts.scheme.lower())
    if scheme is None or not parts.netloc:
        raise ConnectError(f"Unsupported orchestrator URL: {host}")
    return urlunsplit((scheme, parts.netloc, parts.path.rstrip("/"), "", ""))


class OrchestratorHttpClient:
    """HTTP client wrapper for Tremolo orchestrator endpoints."""

    def __init__(self, session: aiohttp.ClientSession, host: str) -> None:
        self._session = session
        self._base_url = http_base_url(host)

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def check_health(self) -> bool:
        """Probe ``/healthcheck``.

        Returns:
            True if the orchestrator answers 200 with body "OK"

        Raises:
            ResponseError: If the orchestrator returns a non-200 status
            ConnectTimeout: If the request times out
            ConnectError: If the network request fails
        """
        url = self._url("/healthcheck")
        try:
            async with self._session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=5),
            ) as resp:
                if resp.status != 200:
                    raise ResponseError(resp.status, "Health check failed")
                body = await resp.text()
                return body.strip() == "OK"
        except TimeoutError as err:
            raise ConnectTimeout("Health check timed out") from err
        except aiohttp.ClientError as err:
            raise ConnectError("Health check request failed") from err
