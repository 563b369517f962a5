"""Grievance analysis endpoint.

Returns a classification for every authenticated request: the LLM's when
it is configured and answers properly, the keyword classifier's
otherwise.  Only a missing or invalid credential (401) or a failure of
the fallback itself (500, fixed payload) produce a non-200 response.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import ORJSONResponse

from grievai.middleware.auth import require_authenticated_user
from grievai.models.classification import LAST_RESORT_PAYLOAD, AnalyzeRequest
from grievai.services.analysis import GrievanceAnalysisService
from grievai.services.classifier import ClassifierOptions
from grievai.services.identity import AuthenticatedUser

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["analysis"])

# Same handler at the edge-function path existing web clients call.
edge_router = APIRouter(prefix="/functions/v1", tags=["analysis"])


async def analyze_grievance(
    body: AnalyzeRequest,
    request: Request,
    user: AuthenticatedUser | None = Depends(require_authenticated_user),
) -> ORJSONResponse:
    """Classify a grievance into category, priority and department."""
    service: GrievanceAnalysisService | None = getattr(request.app.state, "analysis", None)
    if service is None:
        service = GrievanceAnalysisService(
            options=ClassifierOptions.from_settings(request.app.state.settings),
        )

    try:
        outcome = await service.analyze(body)
    except Exception:
        logger.error("api.analyze.failed", exc_info=True)
        return ORJSONResponse(status_code=500, content=dict(LAST_RESORT_PAYLOAD))

    logger.info(
        "api.analyze.completed",
        path=outcome.path.value,
        category=outcome.result.category.value,
        priority=outcome.result.priority.value,
        user_id=user.id if user else None,
    )
    return ORJSONResponse(
        content=outcome.result.to_payload(),
        headers={"X-Analysis-Path": outcome.path.value},
    )


router.add_api_route("/analyze-grievance", analyze_grievance, methods=["POST"])
edge_router.add_api_route("/analyze-grievance", analyze_grievance, methods=["POST"])
