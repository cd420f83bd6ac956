"""Per-request timing logs.

Fulfillment runs call Shopify and Printify and routinely take seconds, so
they are judged against a looser threshold than member and status reads.
"""

import logging
import time
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

# Milliseconds before a request is logged as slow
READ_SLOW_MS = 1500
FULFILLMENT_SLOW_MS = 8000

QUIET_PATH_PREFIX = "/health"


def _slow_threshold_ms(method: str, path: str) -> int:
    if method == "POST" and "/fulfillment" in path:
        return FULFILLMENT_SLOW_MS
    return READ_SLOW_MS


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log method, path, status and elapsed time for each request."""
    started = time.perf_counter()
    method = request.method
    path = request.url.path
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        message = f"{method} {path} -> {status_code} in {elapsed_ms}ms"
        extra = {"method": method, "path": path, "status_code": status_code, "latency_ms": elapsed_ms}

        if path.startswith(QUIET_PATH_PREFIX):
            logger.debug(message, extra=extra)
        elif status_code >= 500:
            logger.error(message, extra=extra)
        elif elapsed_ms > _slow_threshold_ms(method, path):
            logger.warning(f"slow request: {message}", extra=extra)
        else:
            logger.info(message, extra=extra)
