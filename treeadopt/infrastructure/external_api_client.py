"""
Infrastructure layer: Base HTTP client for third-party APIs with retry logic.
"""
from typing import Any, Dict, Optional
import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from treeadopt.config import settings
from treeadopt.domain.exceptions import ExternalAPIError
from treeadopt.infrastructure.api_constants import APIConstants


class ExternalAPIClient:
    """
    Base client for third-party HTTP APIs.
    Implements retry logic with exponential backoff.

    Server errors (5xx) and transport errors are retried; client errors (4xx)
    fail immediately with ExternalAPIError.
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = APIConstants.DEFAULT_TIMEOUT,
    ):
        """Initialize the API client with configuration."""
        self.base_url = base_url
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"accept": APIConstants.CONTENT_TYPE_JSON, **(headers or {})},
            timeout=timeout,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
        reraise=True,
    )
    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Dict[str, Any]:
        response = await self.client.request(method, endpoint, **kwargs)
        if response.status_code >= 500:
            response.raise_for_status()
        if response.status_code >= 400:
            # Don't retry on client errors (4xx)
            raise ExternalAPIError(
                f"API request failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return response.json()

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments for the request

        Returns:
            Response data as dictionary

        Raises:
            ExternalAPIError: If the request fails after retries
        """
        try:
            return await self._request_with_retry(method, endpoint, **kwargs)
        except httpx.HTTPStatusError as e:
            raise ExternalAPIError(
                f"API request failed: {e.response.status_code} - {e.response.text}"
            )
        except httpx.RequestError as e:
            raise ExternalAPIError(f"API request error: {str(e)}")
