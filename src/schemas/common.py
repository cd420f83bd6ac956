"""Health check and error payloads shared by every router."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Body of GET /health."""

    status: HealthStatus
    timestamp: datetime = Field(default_factory=_utcnow)
    version: str = Field(default="0.1.0", description="Service version")


class CheckResult(BaseModel):
    """Outcome of one readiness check.

    Checks with `required=False` are reported but never make the
    service unready.
    """

    name: str = Field(description="database, shopify or printify")
    healthy: bool
    required: bool = True
    latency_ms: float | None = Field(default=None, description="Round trip in milliseconds, if measured")
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Body of GET /health/ready."""

    status: HealthStatus
    timestamp: datetime = Field(default_factory=_utcnow)
    checks: list[CheckResult] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    loc: list[str] | None = Field(default=None, description="Where the error applies, e.g. ['vendor', 'shopify']")
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    error: str = Field(description="Machine-readable category: not_found, vendor_error, internal_error, ...")
    message: str
    details: list[ErrorDetail] | None = None
    request_id: str | None = Field(default=None, description="Echo of the X-Request-ID header")
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_exception(
        cls,
        error_type: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
        request_id: str | None = None,
    ) -> "ErrorResponse":
        """Build a response from an error category, message and raw detail dicts."""
        return cls(
            error=error_type,
            message=message,
            details=[
                ErrorDetail(loc=d.get("loc"), msg=d.get("msg", str(d)), type=d.get("type", "error"))
                for d in details
            ]
            if details
            else None,
            request_id=request_id,
        )
