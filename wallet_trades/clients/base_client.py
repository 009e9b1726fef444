"""Base HTTP client for outbound provider APIs.

This module provides the shared httpx plumbing and the mapping from
transport failures to the application's error hierarchy.
"""

# Standard library imports
import json
from typing import Any, Dict, Optional

# Third-party library imports
import httpx

# Internal imports
from wallet_trades.logging_config import get_logger
from wallet_trades.utils.errors import ExternalServiceError, RateLimitError

# Get logger
logger = get_logger(__name__)


class BaseHttpClient:
    """Base client holding a lazily created ``httpx.AsyncClient``."""

    service_name = "http"

    def __init__(
        self,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """Initialize the client.

        Args:
            timeout: Request timeout in seconds
            headers: Default headers sent with every request
            http_client: Optional pre-built client, mainly for tests
        """
        self.timeout = timeout
        self.headers = headers or {}
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=50)
            )
        return self._http_client

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "BaseHttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body.

        Raises:
            RateLimitError: On HTTP 429
            ExternalServiceError: On any other HTTP, network or decoding failure
        """
        headers = {**self.headers, **kwargs.pop("headers", {})}
        try:
            response = await self.http_client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                raise RateLimitError(
                    f"{self.service_name} rate limit exceeded",
                    service_name=self.service_name,
                    details={"url": str(e.request.url)}
                ) from e
            raise ExternalServiceError(
                f"{self.service_name} returned HTTP {status}",
                service_name=self.service_name,
                upstream_status=status
            ) from e
        except httpx.TimeoutException as e:
            raise ExternalServiceError(
                f"{self.service_name} request timed out",
                service_name=self.service_name
            ) from e
        except httpx.RequestError as e:
            raise ExternalServiceError(
                f"{self.service_name} request failed: {str(e)}",
                service_name=self.service_name
            ) from e
        except json.JSONDecodeError as e:
            raise ExternalServiceError(
                f"{self.service_name} returned invalid JSON",
                service_name=self.service_name
            ) from e
