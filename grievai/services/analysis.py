"""Grievance analysis: LLM classification with keyword fallback.

Per request the service walks a small state machine::

    Classify -> AttemptLLM --success--> Return(LLM result)
                           --failure--> Fallback -> Return(heuristic result)

No gateway configured skips straight to the fallback.  The gateway is
tried once; errors are never retried.  The confidence of a fallback
result is lowered to signal how much to trust it: 0.3 when no AI
capability exists at all, 0.6 when the gateway was tried and failed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

import structlog

from grievai.models.classification import AnalyzeRequest, ClassificationResult
from grievai.services.classifier import ClassifierOptions, classify_grievance
from grievai.services.llm import LLMGatewayError

if TYPE_CHECKING:
    from grievai.services.llm import LLMGateway

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

UNCONFIGURED_CONFIDENCE: Final[float] = 0.3
UPSTREAM_FAILURE_CONFIDENCE: Final[float] = 0.6


class AnalysisPath(StrEnum):
    """Which branch produced the result."""

    __slots__ = ()

    LLM = "llm"
    FALLBACK = "fallback"
    UNCONFIGURED = "unconfigured"


@dataclass(frozen=True, slots=True)
class AnalysisOutcome:
    result: ClassificationResult
    path: AnalysisPath


class GrievanceAnalysisService:
    """Classify grievances, preferring the LLM gateway when available."""

    def __init__(
        self,
        gateway: LLMGateway | None = None,
        options: ClassifierOptions | None = None,
    ) -> None:
        self._gateway = gateway
        self._options = options or ClassifierOptions()

    @property
    def llm_enabled(self) -> bool:
        return self._gateway is not None

    def fallback(self, request: AnalyzeRequest, confidence: float) -> ClassificationResult:
        result = classify_grievance(request.to_classification_input(), options=self._options)
        return result.model_copy(update={"confidence": confidence})

    async def analyze(self, request: AnalyzeRequest) -> AnalysisOutcome:
        if self._gateway is None:
            logger.warning("analysis.llm_not_configured", input_mode=request.input_mode.value)
            return AnalysisOutcome(
                result=self.fallback(request, UNCONFIGURED_CONFIDENCE),
                path=AnalysisPath.UNCONFIGURED,
            )

        try:
            result = await self._gateway.classify(
                request.title,
                request.description,
                request.location_address,
            )
        except LLMGatewayError as exc:
            logger.warning("analysis.llm_failed", error=str(exc), input_mode=request.input_mode.value)
            return AnalysisOutcome(
                result=self.fallback(request, UPSTREAM_FAILURE_CONFIDENCE),
                path=AnalysisPath.FALLBACK,
            )
        except Exception:
            logger.error("analysis.llm_unexpected_error", exc_info=True)
            return AnalysisOutcome(
                result=self.fallback(request, UPSTREAM_FAILURE_CONFIDENCE),
                path=AnalysisPath.FALLBACK,
            )

        return AnalysisOutcome(result=result, path=AnalysisPath.LLM)

    async def close(self) -> None:
        if self._gateway is not None:
            await self._gateway.close()
