"""Liveness and readiness checks."""

import time

from fastapi import APIRouter, Response, status

from src.core.config import get_settings
from src.core.supabase import check_database_connection
from src.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["health"])


def _vendor_check(name: str, configured: bool) -> CheckResult:
    return CheckResult(
        name=name,
        healthy=configured,
        required=False,
        error=None if configured else "credentials not configured",
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
)
async def health_check() -> HealthResponse:
    """Report that the process is up. Touches no dependencies."""
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database unreachable"}},
    summary="Readiness check",
    description=(
        "Pings the orders table and reports whether Shopify and Printify credentials are set. "
        "Only the database decides readiness; orders for an unconfigured vendor stay in PROCESSING."
    ),
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check the database and vendor configuration."""
    settings = get_settings()

    started = time.perf_counter()
    db_result = await check_database_connection()
    database = CheckResult(
        name="database",
        healthy=db_result["healthy"],
        latency_ms=round((time.perf_counter() - started) * 1000, 2),
        error=db_result.get("error"),
    )

    checks = [
        database,
        _vendor_check("shopify", settings.shopify_configured),
        _vendor_check("printify", settings.printify_configured),
    ]

    ready = all(check.healthy for check in checks if check.required)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(status=HealthStatus.HEALTHY if ready else HealthStatus.UNHEALTHY, checks=checks)
