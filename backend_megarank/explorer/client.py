"""
Blockscout v2 HTTP client with per-request retry and exponential backoff.

Responsibilities:
- One GET per page, bounded by a fixed per-attempt timeout.
- Classify failures: 429 (capped backoff), transient (uncapped backoff),
  permanent 4xx (no retry).
- Raise the last error once attempts are exhausted; callers decide whether
  a failed page is fatal.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx

from backend_megarank.config import ExplorerSettings
from backend_megarank.core.exceptions import (
    ExplorerError,
    PermanentExplorerError,
    RateLimitedError,
    TransientExplorerError,
)
from backend_megarank.megarank_logging import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def backoff_delay(attempt: int, base_sec: float, cap_sec: float | None = None) -> float:
    """base * 2^attempt, optionally capped (rate limits are capped, other errors are not)."""
    delay = base_sec * (2 ** attempt)
    if cap_sec is not None:
        delay = min(delay, cap_sec)
    return delay


class ExplorerClient:
    """
    Thin async client over the explorer REST API.

    Owns an httpx.AsyncClient unless one is injected (tests pass one built on
    httpx.MockTransport). Use as an async context manager or call aclose().
    """

    def __init__(
        self,
        settings: ExplorerSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout_sec),
            headers={"Accept": "application/json"},
        )
        self._sleep = sleep

    @property
    def settings(self) -> ExplorerSettings:
        return self._settings

    @property
    def sleep(self) -> Sleep:
        return self._sleep

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ExplorerClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _get_once(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        """Single attempt; raise a classified ExplorerError on any failure."""
        query = dict(params)
        if self._settings.api_key:
            query["apikey"] = self._settings.api_key
        try:
            resp = await self._client.get(
                self.url(path),
                params=query,
                timeout=self._settings.request_timeout_sec,
            )
        except httpx.TimeoutException as e:
            raise TransientExplorerError(f"timeout: {e}") from e
        except httpx.TransportError as e:
            raise TransientExplorerError(f"transport error: {e}") from e

        if resp.status_code == 429:
            raise RateLimitedError("HTTP 429: rate limited")
        if resp.status_code >= 500:
            raise TransientExplorerError(f"HTTP {resp.status_code}")
        if resp.status_code >= 400:
            raise PermanentExplorerError(f"HTTP {resp.status_code}", status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise TransientExplorerError(f"invalid JSON body: {e}") from e
        if not isinstance(data, dict):
            raise TransientExplorerError("response body is not an object")
        return data

    async def get_json(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        """GET with retry: 429 waits min(base*2^i, cap); transient waits base*2^i; permanent raises."""
        attempts = max(1, self._settings.max_retries)
        base = self._settings.retry_base_sec
        last_error: ExplorerError = TransientExplorerError("no attempt made")
        for attempt in range(attempts):
            try:
                return await self._get_once(path, params or {})
            except PermanentExplorerError as e:
                logger.error("explorer_permanent_error", path=path, error=str(e), status=e.status)
                raise
            except RateLimitedError as e:
                last_error = e
                delay = backoff_delay(attempt, base, self._settings.rate_limit_cap_sec)
            except TransientExplorerError as e:
                last_error = e
                delay = backoff_delay(attempt, base)
            if attempt + 1 >= attempts:
                break
            logger.warning(
                "explorer_retry",
                path=path,
                attempt=attempt + 1,
                max_retries=attempts,
                delay_sec=delay,
                error=str(last_error),
            )
            await self._sleep(delay)
        logger.error(
            "explorer_give_up",
            path=path,
            max_retries=attempts,
            error=str(last_error),
        )
        raise last_error
