"""Base classes for outbound HTTP API clients."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ToolError(Exception):
    """Base exception for external API errors."""

    def __init__(self, message: str, tool_name: str, details: dict | None = None):
        self.message = message
        self.tool_name = tool_name
        self.details = details or {}
        super().__init__(self.message)


class APIClientError(ToolError):
    """Exception for API client errors."""

    pass


class RateLimitError(ToolError):
    """Exception for rate limit errors."""

    pass


class BaseAsyncAPIClient(ABC):
    """Base class for async API clients with bounded retries.

    Server errors and network failures are retried with exponential backoff;
    client errors and rate limits fail immediately.

    ``base_url`` may be empty when a client talks to several hosts; absolute
    URLs passed to ``get`` are used as-is.
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff: float = 0.5,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff = backoff
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "BaseAsyncAPIClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=await self._get_headers(),
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @abstractmethod
    async def _get_headers(self) -> dict[str, str]:
        """Get headers for API requests. Override in subclasses."""
        pass

    @staticmethod
    def _resolve_url(endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return endpoint if endpoint.startswith("/") else f"/{endpoint}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict | None = None,
        **kwargs: Any,
    ) -> dict:
        """Make an async HTTP request with retry logic."""
        if not self._client:
            raise APIClientError(
                "Client not initialized. Use async context manager.",
                tool_name=self.__class__.__name__,
            )

        url = self._resolve_url(endpoint)
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                response = await self._client.request(
                    method=method,
                    url=url,
                    params=params,
                    **kwargs,
                )

                if response.status_code == 429:
                    raise RateLimitError(
                        "Rate limit exceeded",
                        tool_name=self.__class__.__name__,
                    )

                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                last_error = APIClientError(
                    f"HTTP error: {e.response.status_code}",
                    tool_name=self.__class__.__name__,
                    details={"status_code": e.response.status_code},
                )
                if e.response.status_code < 500:
                    raise last_error
                logger.warning(f"Attempt {attempt + 1}/{self.max_retries} failed: {e}")

            except httpx.RequestError as e:
                # Timeouts land here too
                last_error = APIClientError(
                    f"Request error: {e!r}",
                    tool_name=self.__class__.__name__,
                )
                logger.warning(f"Attempt {attempt + 1}/{self.max_retries} failed: {e!r}")

            if attempt + 1 < self.max_retries:
                await asyncio.sleep(self.backoff * 2**attempt)

        if last_error:
            raise last_error
        raise APIClientError(
            "Max retries exceeded",
            tool_name=self.__class__.__name__,
        )

    async def get(
        self, endpoint: str, params: dict | None = None, **kwargs: Any
    ) -> dict:
        """Make an async GET request."""
        return await self._request("GET", endpoint, params=params, **kwargs)
