"""
Admin API client for server communication.

Thin HTTP layer shared by every resource client. Handles base URL,
authentication headers and the mapping of transport failures into the
error taxonomy. It performs a single round trip per call and never retries.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from adminkit.src import __version__
from adminkit.src.exceptions import AdminError


logger = logging.getLogger("adminkit.client")


# ============================================================================
# Constants
# ============================================================================

API_BASE_PATH = "/api"
DEFAULT_TIMEOUT = 30.0  # seconds
USER_AGENT = f"adminkit/{__version__}"


# ============================================================================
# Exceptions
# ============================================================================


class ApiError(AdminError):
    """Base exception for API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class NetworkError(ApiError):
    """Raised when the request fails or the server rejects it."""

    pass


class NotFoundError(ApiError):
    """Raised when the requested resource does not exist (HTTP 404)."""

    def __init__(self, path: str, detail: Optional[Any] = None):
        super().__init__(f"Resource not found: {path}", status_code=404, detail=detail)
        self.path = path


# ============================================================================
# AdminApiClient Class
# ============================================================================


class AdminApiClient:
    """
    HTTP client for the admin REST API.

    Attributes:
        server_url: Base URL of the API server
        api_token: Optional bearer token for authenticated requests
    """

    def __init__(
        self,
        server_url: str,
        api_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the API client.

        Args:
            server_url: Base URL of the API server
            api_token: Optional bearer token for authenticated requests
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)

        Raises:
            ValueError: If server_url is empty
        """
        if not server_url:
            raise ValueError("server_url is required")

        self._server_url = server_url.rstrip("/")
        self._timeout = timeout

        headers = {
            "User-Agent": USER_AGENT,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"

        self._client = httpx.AsyncClient(
            base_url=self._server_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def server_url(self) -> str:
        """Get the server URL."""
        return self._server_url

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Path below the API base path (e.g. "/billings/abc")
            params: Query string parameters
            json: JSON request body

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            NotFoundError: If the server answers 404
            NetworkError: On connection failure, timeout or any other non-2xx status
        """
        url = f"{API_BASE_PATH}{path}"
        logger.debug(f"{method} {url}", extra={"extra_fields": {"params": params}})

        try:
            response = await self._client.request(method, url, params=params, json=json)
        except httpx.ConnectError as e:
            logger.warning(f"{method} {url} failed to connect: {e}")
            raise NetworkError(f"Failed to connect to server: {e}")
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {url} timed out: {e}")
            raise NetworkError(f"Connection timed out: {e}")
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise NetworkError(f"Request failed: {e}")

        return self._handle_response(method, url, response)

    def _handle_response(self, method: str, url: str, response: httpx.Response) -> Any:
        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError:
                raise NetworkError(
                    f"Invalid JSON in response to {method} {url}",
                    status_code=response.status_code,
                )

        detail = _extract_detail(response)
        logger.warning(f"{method} {url} returned {response.status_code}: {detail}")

        if response.status_code == 404:
            raise NotFoundError(url, detail=detail)
        raise NetworkError(
            f"{method} {url} failed with status {response.status_code}",
            status_code=response.status_code,
            detail=detail,
        )

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Dict[str, Any]) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Dict[str, Any]) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "AdminApiClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def _extract_detail(response: httpx.Response) -> Any:
    """Pull an error detail out of a response body, falling back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        return body.get("detail") or body.get("message") or body
    return body
