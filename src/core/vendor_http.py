"""Shared HTTP client for vendor REST APIs with timing and retry logic."""

import logging
import time
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Retry backoff bounds
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 10

# Latency thresholds for logging (milliseconds)
SLOW_CALL_THRESHOLD_MS = 2000
VERY_SLOW_CALL_THRESHOLD_MS = 5000


class VendorAPIError(Exception):
    """Raised when a vendor API call fails.

    Attributes:
        vendor: Vendor name (e.g. "shopify", "printify").
        message: Human-readable error description.
        status_code: HTTP status code, if a response was received.
    """

    def __init__(self, vendor: str, message: str, status_code: int | None = None) -> None:
        self.vendor = vendor
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.vendor} API error {self.status_code}: {self.message}"
        return f"{self.vendor} API error: {self.message}"


# Methods that can be repeated without creating anything twice
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})

# Failures raised before the request was written to the vendor
NOT_SENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


def _is_retryable(exc: BaseException, idempotent: bool = True) -> bool:
    """Decide whether a failed call may be sent again.

    Rate limits and connection failures never reached the vendor, so any
    request may be retried. Read timeouts, dropped connections and 5xx
    responses may arrive after the vendor already acted; those are only
    retried for idempotent requests.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        if status_code == 429:
            return True
        return idempotent and status_code >= 500
    if isinstance(exc, NOT_SENT_ERRORS):
        return True
    return idempotent and isinstance(exc, httpx.TransportError)


class VendorHTTPClient:
    """Thin async JSON client for a single vendor API.

    Adds:
    - Retry with exponential backoff for transient errors (POSTs only when
      the vendor cannot have received them)
    - Latency logging for every call
    - Conversion of httpx failures into VendorAPIError
    """

    def __init__(
        self,
        vendor: str,
        base_url: str,
        headers: dict[str, str],
        timeout: float = 30.0,
        max_retries: int = 3,
    ) -> None:
        self.vendor = vendor
        self.base_url = base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json", **headers}
        self.timeout = timeout
        self.max_retries = max_retries

    async def _send(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.request(
                method,
                f"{self.base_url}{path}",
                headers=self.headers,
                json=json,
                params=params,
            )
            response.raise_for_status()
            return response

    async def request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        idempotent: bool | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            method: HTTP method.
            path: Path relative to the vendor base URL.
            json: Optional JSON body.
            params: Optional query parameters.
            idempotent: Whether repeating the call is harmless. Defaults to
                True for GET, PUT and DELETE and False otherwise.

        Returns:
            Any: Decoded JSON, or None for empty bodies.

        Raises:
            VendorAPIError: If the request fails after retries.
        """
        if idempotent is None:
            idempotent = method.upper() in IDEMPOTENT_METHODS

        start_time = time.perf_counter()
        error_msg = None

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(lambda exc: _is_retryable(exc, idempotent)),
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=1, min=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS),
                reraise=True,
            ):
                with attempt:
                    response = await self._send(method, path, json=json, params=params)

            if not response.content:
                return None
            return response.json()

        except httpx.HTTPStatusError as e:
            error_msg = e.response.text or e.response.reason_phrase
            raise VendorAPIError(self.vendor, error_msg, e.response.status_code) from e

        except httpx.HTTPError as e:
            error_msg = f"{type(e).__name__}: {str(e)}"
            raise VendorAPIError(self.vendor, error_msg) from e

        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            log_msg = f"{self.vendor} {method} {path}: latency={latency_ms:.2f}ms"

            if error_msg:
                logger.error(log_msg + f", error={error_msg}")
            elif latency_ms > VERY_SLOW_CALL_THRESHOLD_MS:
                logger.warning(f"VERY SLOW vendor call: {log_msg}")
            elif latency_ms > SLOW_CALL_THRESHOLD_MS:
                logger.warning(f"SLOW vendor call: {log_msg}")
            else:
                logger.info(log_msg)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Send a GET request."""
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: dict[str, Any] | None = None, idempotent: bool = False) -> Any:
        """Send a POST request. Not retried once it may have reached the vendor."""
        return await self.request("POST", path, json=json, idempotent=idempotent)
