"""Shared HTTP plumbing for source adapters."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# Strip API keys from URLs before logging.
_APIKEY_RE = re.compile(r"(apikey|api_key|x_cg_demo_api_key)=[^&]+", re.IGNORECASE)


def sanitize_url(url: str) -> str:
    """Remove API key query params from a URL for safe logging."""
    return _APIKEY_RE.sub(r"\1=***", url)


class FetchError(Exception):
    """Raised when a source is unreachable or returns an unusable payload."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class HttpSource:
    """Base class for JSON-over-HTTP source adapters.

    Each call opens its own client with an independent timeout, so a hung
    request in one adapter never holds a connection another adapter needs.
    """

    name = "source"

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            timeout: Per-request timeout in seconds.
            headers: Extra headers sent with every request.
        """
        self.timeout = timeout
        self._headers = dict(headers or {})

    async def _get_json(self, url: str, params: Mapping[str, Any] | None = None) -> Any:
        """Issue a GET and decode the JSON body.

        Raises:
            FetchError: On timeout, transport error, non-2xx or invalid JSON.
        """
        try:
            # Bounds the whole call; httpx only bounds each connect/read/write step
            async with asyncio.timeout(self.timeout):
                async with httpx.AsyncClient(
                    timeout=self.timeout, headers=self._headers
                ) as client:
                    response = await client.get(url, params=params)
        except (httpx.TimeoutException, TimeoutError) as e:
            raise FetchError(self.name, f"timed out after {self.timeout:.1f}s") from e
        except httpx.HTTPError as e:
            raise FetchError(self.name, f"transport error: {e}") from e

        if not 200 <= response.status_code < 300:
            raise FetchError(
                self.name,
                f"HTTP {response.status_code} from {sanitize_url(str(response.url))}",
            )

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(self.name, f"invalid JSON body: {e}") from e

    @contextmanager
    def _parsing(self, what: str) -> Iterator[None]:
        """Turn payload shape errors into FetchError."""
        try:
            yield
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise FetchError(self.name, f"malformed {what} payload: {e!r}") from e
