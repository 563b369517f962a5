"""Health check endpoints for GrievAI API v1.

Provides liveness and readiness probes.  Readiness reports which external
collaborators are configured; a missing one degrades the service but
never takes it down, because every path has a fallback.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    """Readiness check response with individual collaborator statuses."""

    status: str
    checks: dict[str, str]
    issues: list[str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.  Does *not* check downstream dependencies."""
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Readiness probe.

    ``degraded`` means at least one collaborator runs in fallback mode;
    the API still answers every request.
    """
    state = request.app.state
    checks: dict[str, str] = {"classifier": "ok"}

    analysis = getattr(state, "analysis", None)
    checks["llm"] = "ok" if analysis is not None and analysis.llm_enabled else "fallback"

    identity = getattr(state, "identity", None)
    checks["identity"] = "ok" if identity is not None else "not_configured"

    geocoding = getattr(state, "geocoding", None)
    if geocoding is None:
        checks["geocoding"] = "not_initialised"
    else:
        checks["geocoding"] = "ok" if geocoding.configured else "fallback"

    settings = getattr(state, "settings", None)
    issues = settings.configuration_issues() if settings is not None else []

    status = "ready" if all(v == "ok" for v in checks.values()) else "degraded"
    logger.info("health.readiness_check", status=status, checks=checks)

    return ReadinessResponse(status=status, checks=checks, issues=issues)
