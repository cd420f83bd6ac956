"""Error middleware that turns service and vendor failures into ErrorResponse bodies."""

import logging
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from src.core.vendor_http import VendorAPIError
from src.schemas.common import ErrorResponse
from src.services.order_service import MemberNotFoundError, OrderNotFoundError

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Error with a fixed status code and client-facing error type."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Order or member does not exist."""

    def __init__(self, message: str = "Resource not found", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND, "not_found", details)


class VendorUnavailableError(APIError):
    """Shopify or Printify rejected a call or could not be reached."""

    def __init__(self, vendor: str, message: str, vendor_status: int | None = None) -> None:
        detail: dict[str, Any] = {"loc": ["vendor", vendor], "msg": message, "type": "vendor_error"}
        if vendor_status is not None:
            detail["msg"] = f"{message} (HTTP {vendor_status})"
        super().__init__(
            f"{vendor} request failed",
            status.HTTP_502_BAD_GATEWAY,
            "vendor_error",
            [detail],
        )


def translate_exception(exc: Exception) -> APIError | None:
    """Map a service-layer exception to its API error, or None if it has no mapping.

    Routes may let `OrderNotFoundError`, `MemberNotFoundError` and
    `VendorAPIError` escape; they reach the client as 404 and 502.
    """
    if isinstance(exc, APIError):
        return exc
    if isinstance(exc, (OrderNotFoundError, MemberNotFoundError)):
        return NotFoundError(str(exc))
    if isinstance(exc, VendorAPIError):
        return VendorUnavailableError(exc.vendor, exc.message, exc.status_code)
    return None


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Render an ErrorResponse as JSON, dropping unset fields."""
    body = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Catch exceptions raised while serving a request.

    Known fulfillment errors keep their message. Anything else is logged
    with its traceback and answered with a generic 500 so vendor tokens or
    database details never leak into a response body.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)
    except HTTPException as e:
        logger.warning("%s %s -> HTTP %s: %s", request.method, request.url.path, e.status_code, e.detail)
        return create_error_response("http_error", str(e.detail), e.status_code, request_id=request_id)
    except Exception as e:
        api_error = translate_exception(e)
        if api_error is None:
            logger.exception(
                "Unhandled error on %s %s",
                request.method,
                request.url.path,
                extra={"request_id": request_id},
            )
            return create_error_response(
                "internal_error",
                "An unexpected error occurred",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                request_id=request_id,
            )

        log = logger.error if api_error.status_code >= 500 else logger.warning
        log(
            "%s %s -> %s: %s",
            request.method,
            request.url.path,
            api_error.error_type,
            api_error.message,
            extra={"request_id": request_id},
        )
        return create_error_response(
            api_error.error_type,
            api_error.message,
            api_error.status_code,
            details=api_error.details,
            request_id=request_id,
        )
