"""Single-request HTTP transport for the extraction service."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from content_acquisition.config import Settings
from content_acquisition.errors import (
    ConfigurationError,
    ConnectionFailedError,
    RequestTimeoutError,
    error_for_status,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def raise_for_status(self) -> TransportResponse:
        """Return self for 2xx, otherwise raise the matching HTTPStatusError."""
        if self.ok:
            return self
        text = self.body if isinstance(self.body, str) else str(self.body or "")
        raise error_for_status(self.status_code, text)


class Transport:
    """
    Issues one authenticated request per call with a hard timeout.

    Owns its ``httpx.AsyncClient`` unless one is passed in, in which case the
    caller is responsible for closing it.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def ensure_configured(self) -> None:
        if not self.settings.has_credentials:
            raise ConfigurationError("FIRECRAWL_API_KEY not configured")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
            self._owns_client = True
        return self._client

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        timeout: float,
    ) -> TransportResponse:
        """
        Send one request and return whatever the service answered.

        Raises:
            ConfigurationError: no credential; nothing is sent.
            RequestTimeoutError: no response within ``timeout`` seconds.
            ConnectionFailedError: the connection broke before a response.
        """
        self.ensure_configured()
        client = self._get_client()
        url = f"{self.settings.base_url}/{path.lstrip('/')}"

        t0 = time.monotonic()
        try:
            # wait_for cancels the in-flight call once the budget is spent,
            # even if httpx is stuck somewhere its own timeouts don't cover.
            response = await asyncio.wait_for(
                client.request(
                    method, url, json=json, headers=self._headers(), timeout=timeout
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.debug("%s %s timed out after %.1fs", method, path, time.monotonic() - t0)
            raise RequestTimeoutError(
                f"{method} {path} timed out after {timeout:g}s"
            ) from exc
        except httpx.TransportError as exc:
            logger.debug("%s %s connection error: %s", method, path, exc)
            raise ConnectionFailedError(f"{method} {path} failed: {exc}") from exc
        except httpx.RequestError as exc:
            # Undecodable bodies, redirect loops and the like
            logger.debug("%s %s request error: %r", method, path, exc)
            raise ConnectionFailedError(f"{method} {path} failed: {exc!r}") from exc

        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        logger.debug(
            "%s %s -> %d (%.2fs)", method, path, response.status_code, time.monotonic() - t0
        )
        return TransportResponse(status_code=response.status_code, body=body)
