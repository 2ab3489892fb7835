"""Remote HTTP backend.

Client for a key-value HTTP API:

    POST   {endpoint}/save          body {"key": ..., "data": ...}
    GET    {endpoint}/load/{key}    200 {"data": ...} | 404 absent
    DELETE {endpoint}/delete/{key}

Every request is bounded by timeout_ms; a request that runs over is
cancelled and reported as RemoteTimeoutError. The server side is not part
of this package.
"""

from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from wordmemo.storage.base import (
    ConfigurationError,
    NetworkError,
    PersistenceBackend,
    RemoteStatusError,
    RemoteTimeoutError,
    StoredValue,
)

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_MS = 5000


# =============================================================================
# WIRE SCHEMAS
# =============================================================================


class SaveRequest(BaseModel):
    """Body of POST /save."""

    key: str
    data: Any = None


class LoadResponse(BaseModel):
    """Body of a successful GET /load/{key}."""

    data: Any = None


# =============================================================================
# BACKEND
# =============================================================================


class RemoteBackend(PersistenceBackend):
    """Key-value store reached over HTTP."""

    name = "remote"

    def __init__(
        self,
        endpoint: str = "",
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize remote backend.

        Args:
            endpoint: Base URL, e.g. "https://api.example.com/wordmemo"
            timeout_ms: Per-request timeout in milliseconds
            transport: Optional httpx transport (for testing)
        """
        self.endpoint = (endpoint or "").rstrip("/")
        self.timeout_ms = timeout_ms
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _require_endpoint(self) -> str:
        if not self.endpoint:
            raise ConfigurationError("Remote backend has no endpoint configured")
        return self.endpoint

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            # httpx phase timeouts follow timeout_ms, not the library default of 5 s
            self._client = httpx.AsyncClient(
                transport=self._transport,
                timeout=httpx.Timeout(self.timeout_ms / 1000),
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def init(self) -> None:
        # No network probe: a missing endpoint surfaces on the first call
        self._get_client()
        logger.info("remote.ready", endpoint=self.endpoint or None, timeout_ms=self.timeout_ms)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send one request, cancelling it when the timeout elapses."""
        url = f"{self._require_endpoint()}{path}"
        client = self._get_client()
        timeout = self.timeout_ms / 1000

        try:
            return await asyncio.wait_for(client.request(method, url, **kwargs), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("remote.timeout", method=method, url=url, timeout_ms=self.timeout_ms)
            raise RemoteTimeoutError(
                f"{method} {url} timed out after {self.timeout_ms} ms"
            ) from e
        except httpx.HTTPError as e:
            logger.error("remote.request_failed", method=method, url=url, error=str(e))
            raise NetworkError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _key_path(prefix: str, key: str) -> str:
        return f"/{prefix}/{quote(key, safe='')}"

    async def save(self, key: str, value: StoredValue) -> None:
        body = SaveRequest(key=key, data=value)
        response = await self._request("POST", "/save", json=body.model_dump())
        if not response.is_success:
            raise RemoteStatusError(response.status_code, str(response.url))
        logger.debug("remote.saved", key=key)

    async def load(self, key: str) -> StoredValue:
        response = await self._request("GET", self._key_path("load", key))
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise RemoteStatusError(response.status_code, str(response.url))

        try:
            return LoadResponse.model_validate(response.json()).data
        except (ValueError, ValidationError) as e:
            raise NetworkError(f"Invalid load response for '{key}': {e}") from e

    async def remove(self, key: str) -> None:
        response = await self._request("DELETE", self._key_path("delete", key))
        if not response.is_success:
            raise RemoteStatusError(response.status_code, str(response.url))
        logger.debug("remote.removed", key=key)
