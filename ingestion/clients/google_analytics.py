"""
Google Analytics v3 source client with service-account auth and retry logic.

This module provides:
- OAuth2 bearer tokens from a service-account credentials file
- Realtime Reporting and Core Reporting queries over httpx
- Exponential backoff retry for timeouts, network and server errors
- Mapping of HTTP failures onto the collector exception hierarchy
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from core.exceptions import (
    AuthenticationError,
    NetworkError,
    RateLimitError,
    RetryableError,
    SourceAPIError,
)
from ingestion.clients.base import SourceClient
from schemas.response import ColumnHeader, RawTableResponse

logger = logging.getLogger(__name__)

ANALYTICS_READONLY_SCOPE = "https://www.googleapis.com/auth/analytics.readonly"
REALTIME_URL = "https://www.googleapis.com/analytics/v3/data/realtime"
RANGED_URL = "https://www.googleapis.com/analytics/v3/data/ga"

TokenProvider = Callable[[], Awaitable[str]]


class ServiceAccountTokenProvider:
    """
    Hand out bearer tokens for a service-account credentials file.

    The credentials are loaded lazily and refreshed only when expired. The
    google-auth refresh is blocking, so it runs in a worker thread.
    """

    def __init__(self, credentials_file: str, scopes: Optional[List[str]] = None):
        self.credentials_file = credentials_file
        self.scopes = scopes or [ANALYTICS_READONLY_SCOPE]
        self._credentials: Optional[service_account.Credentials] = None
        self._lock = asyncio.Lock()

    async def __call__(self) -> str:
        async with self._lock:
            try:
                if self._credentials is None:
                    self._credentials = service_account.Credentials.from_service_account_file(
                        self.credentials_file, scopes=self.scopes
                    )
                if not self._credentials.valid:
                    await asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
            except (GoogleAuthError, ValueError, OSError) as e:
                raise AuthenticationError(
                    "Error creating auth context",
                    context={"credentials_file": self.credentials_file},
                    original_exception=e
                )
            return self._credentials.token


class GoogleAnalyticsClient(SourceClient):
    """
    Query the Google Analytics v3 reporting APIs.

    Attributes:
        max_retries: Maximum number of attempts per request (default: 3)
        retry_delay: Initial retry delay in seconds (default: 1.0)
        timeout: Request timeout in seconds (default: 30.0)
    """

    def __init__(
        self,
        source_name: str,
        token_provider: TokenProvider,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.source_name = source_name
        self.token_provider = token_provider
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._transport = transport

    async def fetch_realtime(
        self,
        ids: List[str],
        metrics: List[str],
        dimensions: List[str]
    ) -> RawTableResponse:
        params = {
            "ids": ",".join(ids),
            "metrics": ",".join(metrics),
            "dimensions": ",".join(dimensions),
        }
        payload = await self._get(REALTIME_URL, params)
        return self._to_table(payload, REALTIME_URL)

    async def fetch_ranged(
        self,
        ids: List[str],
        start: str,
        end: str,
        metrics: List[str],
        dimensions: List[str]
    ) -> RawTableResponse:
        params = {
            "ids": ",".join(ids),
            "start-date": start,
            "end-date": end,
            "metrics": ",".join(metrics),
            "dimensions": ",".join(dimensions),
        }
        payload = await self._get(RANGED_URL, params)
        if isinstance(payload, dict) and payload.get("totalsForAllResults"):
            logger.debug(f"total Result : {payload['totalsForAllResults']}")
        return self._to_table(payload, RANGED_URL)

    async def _get(self, url: str, params: Dict[str, str]) -> Any:
        token = await self.token_provider()
        headers = {"Authorization": f"Bearer {token}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await self._make_request_with_retry(client, url, headers, params)

        try:
            return response.json()
        except ValueError as e:
            raise SourceAPIError(
                "Failed to parse JSON response",
                context={
                    "api_url": url,
                    "source_name": self.source_name,
                    "response_body": response.text[:500]
                },
                original_exception=e
            )

    async def _make_request_with_retry(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: Dict[str, str],
        params: Dict[str, str]
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic and exponential backoff.

        Only ``RetryableError``s are retried; anything else raised by an
        attempt propagates at once.

        Raises:
            AuthenticationError: HTTP 401/403, not retried
            RateLimitError: HTTP 429, not retried
            SourceAPIError: other HTTP 4xx, not retried
            NetworkError: timeouts, transport or server errors after max retries
        """
        last_error: Optional[RetryableError] = None

        for attempt in range(self.max_retries):
            logger.debug(f"Request attempt {attempt + 1}/{self.max_retries} to {url}")
            try:
                return await self._request_once(client, url, headers, params, attempt)
            except RetryableError as e:
                last_error = e

            if attempt < self.max_retries - 1:
                delay = self.retry_delay * (2 ** attempt)
                logger.warning(
                    f"{last_error.message}. Retrying in {delay} seconds "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)

        raise last_error

    async def _request_once(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: Dict[str, str],
        params: Dict[str, str],
        attempt: int
    ) -> httpx.Response:
        """Send one request and map its outcome onto the exception hierarchy"""
        try:
            response = await client.get(url, headers=headers, params=params)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request timeout after {attempt + 1} attempts",
                context={
                    "api_url": url,
                    "source_name": self.source_name,
                    "timeout": self.timeout,
                    "retry_count": attempt + 1
                },
                original_exception=e
            )
        except httpx.TransportError as e:
            raise NetworkError(
                f"Network error after {attempt + 1} attempts",
                context={
                    "api_url": url,
                    "source_name": self.source_name,
                    "retry_count": attempt + 1
                },
                original_exception=e
            )

        context = {
            "status_code": response.status_code,
            "api_url": url,
            "source_name": self.source_name
        }

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Authentication failed for {url}",
                context={**context, "response_body": response.text[:500]}
            )

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"Rate limit exceeded for {url}",
                context=context,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )

        if response.status_code >= 500:
            raise NetworkError(
                f"Server error {response.status_code} after {attempt + 1} attempts",
                context={
                    **context,
                    "retry_count": attempt + 1,
                    "response_body": response.text[:500]
                }
            )

        if response.status_code >= 400:
            raise SourceAPIError(
                f"Analytics API rejected the query ({response.status_code})",
                context={**context, "response_body": response.text[:500]}
            )

        return response

    def _to_table(self, payload: Any, url: str) -> RawTableResponse:
        if not isinstance(payload, dict):
            raise SourceAPIError(
                "Unexpected response body",
                context={"api_url": url, "source_name": self.source_name}
            )

        try:
            headers = [
                ColumnHeader(
                    name=header.get("name", ""),
                    column_type=header.get("columnType", ""),
                    data_type=header.get("dataType", "")
                )
                for header in payload.get("columnHeaders") or []
            ]
            # "rows" is omitted entirely when the query matched nothing
            rows = [[str(cell) for cell in row] for row in payload.get("rows") or []]
        except (AttributeError, TypeError) as e:
            raise SourceAPIError(
                "Malformed tabular response",
                context={"api_url": url, "source_name": self.source_name},
                original_exception=e
            )

        return RawTableResponse(column_headers=headers, rows=rows)
