"""
Base API Client

Provides unified HTTP request handling, rate limiting, and error
classification for all external signal providers.

A client issues exactly one outbound request per call. Retrying is the
job of the retry executor, which relies on the ``retryable`` flag of the
errors raised here.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp
import structlog

from .rate_limiter import UnifiedRateLimiter
from ..utils.errors import (
    ProviderError,
    ProviderRejected,
    ProviderUnavailable,
    error_for_status,
)

logger = structlog.get_logger(__name__)


class BaseAPIClient(ABC):
    """
    Base HTTP client with rate limiting and status-based error mapping.

    All provider clients inherit from this class so every outbound call
    waits on the provider's token bucket and fails the same way.
    """

    def __init__(
        self,
        base_url: str,
        rate_limiter: UnifiedRateLimiter,
        timeout: int = 10,
        service_name: str = "api"
    ):
        """
        Initialize base API client.

        Args:
            base_url: Base URL for the API
            rate_limiter: Rate limiter instance for this client
            timeout: Request timeout in seconds
            service_name: Service name for logging and identification
        """
        self.base_url = base_url.rstrip('/')
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.service_name = service_name
        self.session: Optional[aiohttp.ClientSession] = None

        self.logger = logger.bind(
            service=service_name,
            component="BaseAPIClient",
            base_url=base_url
        )

    async def start(self) -> None:
        """Open the HTTP session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self.logger.debug("API client session started")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self.session is not None:
            await self.session.close()
            self.session = None
            self.logger.debug("API client session closed")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _build_url(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _require_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.logger.error("Client not initialized")
            raise RuntimeError(
                f"{self.service_name} client not initialized. Call start() or use async context manager."
            )
        return self.session

    async def _send(
        self,
        method: str,
        endpoint: str,
        read: Callable[[aiohttp.ClientResponse], Awaitable[Any]],
        **kwargs
    ) -> Any:
        """
        Wait on the rate limiter, send one request and read a 2xx body.

        Transport failures and non-2xx statuses are mapped to
        ProviderError subclasses; ``read`` is only called on success.
        """
        session = self._require_session()
        await self.rate_limiter.wait_if_needed()

        headers = dict(kwargs.pop("headers", None) or {})
        headers.setdefault("User-Agent", f"TuneMood-{self.service_name}/1.0")
        self.logger.debug("Making API request", method=method, endpoint=endpoint)

        try:
            async with session.request(
                method=method,
                url=self._build_url(endpoint),
                headers=headers,
                **kwargs
            ) as response:
                if not 200 <= response.status < 300:
                    body = await self._safe_body(response)
                    self.logger.warning(
                        f"{self.service_name} HTTP error",
                        status=response.status,
                        endpoint=endpoint
                    )
                    raise error_for_status(self.service_name, response.status, body)
                return await read(response)

        except ProviderError:
            raise
        except asyncio.TimeoutError as e:
            self.logger.warning("Request timeout", endpoint=endpoint, timeout=self.timeout)
            raise ProviderUnavailable(self.service_name, "request timed out") from e
        except aiohttp.ClientError as e:
            self.logger.warning(
                "HTTP client error",
                endpoint=endpoint,
                error=str(e),
                error_type=type(e).__name__
            )
            raise ProviderUnavailable(self.service_name, f"client error: {e}") from e

    async def _make_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Make one rate-limited request and return the parsed JSON body.

        Args:
            endpoint: API endpoint (relative to base_url) or absolute URL
            params: Query parameters
            method: HTTP method
            headers: Additional headers
            json_body: JSON payload for POST requests

        Returns:
            Parsed JSON response data

        Raises:
            ProviderUnavailable: Transient failure (429, 5xx, timeout, reset)
            ProviderRejected: Permanent failure (other 4xx, invalid payload,
                error reported in the body)
        """
        data = await self._send(
            method,
            endpoint,
            self._parse_response,
            params=params,
            json=json_body,
            headers=headers
        )

        api_error = self._extract_api_error(data)
        if api_error is not None:
            self.logger.error(
                "API error in response body",
                endpoint=endpoint,
                error=str(api_error),
                retryable=api_error.retryable
            )
            raise api_error
        return data

    async def _fetch_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        """Fetch a page as text (HTML scraping)."""
        return await self._send("GET", url, lambda response: response.text(), headers=headers)

    async def _parse_response(self, response: aiohttp.ClientResponse) -> Dict[str, Any]:
        try:
            return await response.json(content_type=None)
        except (json.JSONDecodeError, ValueError) as e:
            self.logger.error(f"{self.service_name} invalid JSON response", error=str(e))
            raise ProviderRejected(self.service_name, "invalid JSON response") from e

    async def _safe_body(self, response: aiohttp.ClientResponse) -> str:
        try:
            return (await response.text())[:200]
        except (aiohttp.ClientError, UnicodeDecodeError):
            return ""

    @abstractmethod
    def _extract_api_error(self, data: Dict[str, Any]) -> Optional[ProviderError]:
        """
        Extract a provider-reported error from a 2xx response body.

        Returns:
            Error to raise, or None if the payload is a success
        """
