"""Logged async HTTP client shared by the vendor adapters."""

from typing import Any

import httpx
import structlog

from solarsync.utils.exceptions import APIError

logger = structlog.get_logger(__name__)

_REDACTED_HEADERS = {"authorization", "cookie", "set-cookie"}
_REDACTED_FIELDS = {"password", "appsecret", "passwordrsa", "passwordsha256", "access_token", "token"}
_MAX_LOGGED_BODY = 500


def redact_headers(headers: dict[str, str] | None) -> dict[str, str]:
    """Mask credential-bearing headers for logging."""
    return {
        k: ("***" if k.lower() in _REDACTED_HEADERS else v) for k, v in (headers or {}).items()
    }


def redact_body(body: Any) -> Any:
    """Mask credential fields of a JSON body for logging."""
    if isinstance(body, dict):
        return {
            k: ("***" if k.lower() in _REDACTED_FIELDS else redact_body(v)) for k, v in body.items()
        }
    return body


class VendorHttpClient:
    """Async HTTP client with request and response logging.

    Must be used as an async context manager.
    """

    def __init__(
        self,
        vendor: str,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            vendor: Vendor label used in log events.
            timeout: Request timeout in seconds.
            transport: Optional transport, e.g. ``httpx.MockTransport`` in tests.
        """
        self._vendor = vendor
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "VendorHttpClient":
        """Context manager entry."""
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            method: HTTP method.
            url: Absolute URL.
            operation: Short label for the log events (e.g. ``LIST_PLANTS``).
            params: Query parameters.
            json: JSON request body.
            headers: Extra request headers.

        Returns:
            Decoded JSON response.

        Raises:
            APIError: If the request fails or the response is not OK.
        """
        if not self._client:
            raise APIError("Client not initialized. Use 'async with' context manager.")

        logger.debug(
            "Vendor API request",
            vendor=self._vendor,
            operation=operation,
            method=method,
            url=url,
            params=params,
            headers=redact_headers(headers),
            body=redact_body(json),
        )

        try:
            response = await self._client.request(
                method, url, params=params, json=json, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Vendor API error",
                vendor=self._vendor,
                operation=operation,
                status_code=e.response.status_code,
                url=url,
                response=e.response.text[:_MAX_LOGGED_BODY],
            )
            raise APIError(
                f"{self._vendor} {operation} failed: {e.response.status_code} "
                f"{e.response.reason_phrase} - {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.error(
                "Vendor request error", vendor=self._vendor, operation=operation, url=url, error=str(e)
            )
            raise APIError(f"{self._vendor} {operation} request failed: {e}") from e

        logger.debug(
            "Vendor API response",
            vendor=self._vendor,
            operation=operation,
            status_code=response.status_code,
            response=response.text[:_MAX_LOGGED_BODY],
        )

        try:
            return response.json()
        except ValueError as e:
            raise APIError(
                f"{self._vendor} {operation} returned invalid JSON",
                status_code=response.status_code,
            ) from e
