"""Zendesk API client with authentication and request handling."""

import base64
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator

import httpx

if TYPE_CHECKING:
    from zendesk_analytics.config import AnalyticsConfig

logger = logging.getLogger(__name__)

# Default timeout for API requests
DEFAULT_TIMEOUT = 30.0

# Safety stop for incremental exports
MAX_EXPORT_PAGES = 50


class ZendeskClientError(Exception):
    """Base exception for Zendesk client errors."""


class ZendeskAuthError(ZendeskClientError):
    """Authentication error."""


class ZendeskAPIError(ZendeskClientError):
    """API request error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _build_auth_header(email: str, token: str) -> str:
    """Build Basic auth header for Zendesk API.

    Zendesk uses email/token auth: {email}/token:{token}
    """
    auth_string = f"{email}/token:{token}"
    encoded = base64.b64encode(auth_string.encode()).decode()
    return f"Basic {encoded}"


class ZendeskClient:
    """Async HTTP client for the Zendesk Support and Talk APIs."""

    def __init__(
        self,
        config: "AnalyticsConfig",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            config: Analytics configuration holding the credentials
            timeout: Default request timeout in seconds
            transport: Optional httpx transport (used by tests)

        Raises:
            ZendeskAuthError: If credentials are missing from the config
        """
        self.email, self.token, self.subdomain = config.require_credentials()
        self.timeout = timeout
        self.base_url = f"https://{self.subdomain}.zendesk.com/api/v2"
        self._auth_header = _build_auth_header(self.email, self.token)
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        """Get headers for API requests."""
        return {
            "Authorization": self._auth_header,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _url(self, endpoint: str) -> str:
        # next_page links come back as absolute URLs
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Make an API request to Zendesk.

        Args:
            method: HTTP method
            endpoint: API endpoint (without base URL) or absolute URL
            params: Query parameters
            timeout: Request timeout override

        Returns:
            Parsed JSON response

        Raises:
            ZendeskAPIError: On API errors
        """
        url = self._url(endpoint)
        logger.debug("%s %s params=%s", method, url, params)

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    params=params,
                    timeout=timeout or self.timeout,
                )
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                error_msg = self._format_http_error(e)
                raise ZendeskAPIError(error_msg, e.response.status_code) from e
            except httpx.TimeoutException as e:
                raise ZendeskAPIError(
                    "Request timed out. The Zendesk API may be slow or unavailable."
                ) from e
            except httpx.RequestError as e:
                raise ZendeskAPIError(f"Request failed: {e}") from e

    def _format_http_error(self, error: httpx.HTTPStatusError) -> str:
        """Format HTTP error into user-friendly message."""
        status = error.response.status_code

        try:
            data = error.response.json()
            if "error" in data:
                detail = data.get("description", data["error"])
            elif "errors" in data:
                detail = "; ".join(str(e) for e in data["errors"])
            else:
                detail = str(data)
        except ValueError:
            detail = error.response.text[:200] if error.response.text else ""

        if status == 401:
            return "Authentication failed. Check your Zendesk email and API token."
        elif status == 403:
            return f"Permission denied. You don't have access to this resource. {detail}"
        elif status == 404:
            return f"Resource not found. {detail}"
        elif status == 422:
            return f"Invalid request: {detail}"
        elif status == 429:
            return "Rate limit exceeded. Please wait before making more requests."
        elif status >= 500:
            return f"Zendesk server error ({status}). Try again later. {detail}"
        else:
            return f"API error ({status}): {detail}"

    async def get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Make a GET request."""
        return await self.request("GET", endpoint, params=params, timeout=timeout)

    async def search(self, query: str, per_page: int = 1) -> dict[str, Any]:
        """Run a Support search.

        Args:
            query: Search query using Zendesk syntax (include ``type:ticket``)
            per_page: Results per page (max: 100)

        Returns:
            Raw search response with ``count`` and ``results``
        """
        params = {"query": query, "per_page": min(per_page, 100)}
        return await self.get("search.json", params=params)

    async def search_count(self, query: str) -> int:
        """Return only the total match count for a search."""
        result = await self.search(query, per_page=1)
        return result.get("count") or 0

    async def incremental_calls(
        self,
        start_time: int,
        end_time: int | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield call records from the Talk incremental calls export.

        Args:
            start_time: Unix timestamp to export from
            end_time: Stop paging once a page ends at or after this timestamp

        Yields:
            Individual call records in export order
        """
        endpoint = "channels/voice/stats/incremental/calls.json"
        params: dict[str, Any] | None = {"start_time": start_time}

        for _ in range(MAX_EXPORT_PAGES):
            page = await self.get(endpoint, params=params)
            calls = page.get("calls") or []
            for call in calls:
                yield call

            next_page = page.get("next_page")
            if not calls or not next_page or page.get("end_of_stream"):
                return
            if end_time is not None and (page.get("end_time") or 0) >= end_time:
                return
            if next_page == self._url(endpoint) and params is None:
                return
            endpoint, params = next_page, None
        else:
            raise ZendeskAPIError(
                f"Incremental calls export truncated after {MAX_EXPORT_PAGES} pages"
            )
