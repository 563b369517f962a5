"""Resilient client for the grievance analysis endpoint.

Calls the server first.  If the call fails, or the response lacks a usable
``category``/``priority``, the keyword classifier runs locally with the
same rules so the submission flow can always continue to review.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

import httpx
import structlog

from grievai.models.classification import ClassificationInput, ClassificationResult
from grievai.models.enums import InputMode
from grievai.services.classifier import ClassifierOptions, classify_grievance

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

LOCAL_ANALYSIS_NOTICE: Final[str] = "Using local analysis. You can review and modify the suggestions."
ANALYZE_PATH: Final[str] = "/api/v1/analyze-grievance"


@dataclass(frozen=True, slots=True)
class ClientAnalysis:
    result: ClassificationResult
    used_local_fallback: bool
    notice: str | None = None


class AnalysisClient:
    """Submit grievance text for classification with a local fallback.

    Parameters
    ----------
    base_url:
        Root URL of the GrievAI API.
    access_token:
        Session token sent as ``Authorization: Bearer``.
    options:
        Classifier options for the local fallback; should match the
        server's so both paths produce identical results.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str = "",
        timeout: float = 20.0,
        options: ClassifierOptions | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._access_token = access_token
        self._options = options or ClassifierOptions()
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> AnalysisClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _remote(
        self,
        title: str,
        description: str,
        input_mode: InputMode,
        location_address: str,
    ) -> ClassificationResult:
        response = await self._client.post(
            ANALYZE_PATH,
            json={
                "description": description,
                "title": title,
                "input_mode": input_mode.value,
                "location_address": location_address,
            },
            headers={"Authorization": f"Bearer {self._access_token}"},
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict) or not data.get("category") or not data.get("priority"):
            raise ValueError("Invalid analysis response")
        return ClassificationResult.model_validate(data)

    async def analyze(
        self,
        description: str,
        title: str = "",
        input_mode: InputMode = InputMode.TEXT,
        location_address: str = "",
    ) -> ClientAnalysis:
        """Classify grievance text, preferring the server's answer.

        Raises ``ValueError`` for a blank description; nothing is sent.
        """
        if not description.strip():
            raise ValueError("Please provide a description of your grievance.")

        try:
            result = await self._remote(title, description, input_mode, location_address)
            return ClientAnalysis(result=result, used_local_fallback=False)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("client.remote_analysis_failed", error=str(exc))

        result = classify_grievance(
            ClassificationInput(title=title, description=description, location_hint=location_address),
            options=self._options,
        )
        return ClientAnalysis(result=result, used_local_fallback=True, notice=LOCAL_ANALYSIS_NOTICE)
