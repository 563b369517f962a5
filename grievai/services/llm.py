"""LLM gateway client for grievance classification.

Talks to an OpenAI-compatible ``/chat/completions`` endpoint and forces a
``classify_grievance`` function call whose arguments are constrained to
the category and priority enums.  Exactly one attempt is made per call:
any failure is raised as :class:`LLMGatewayError` so the caller can fall
back to the keyword classifier immediately.
"""

from __future__ import annotations

import time
from typing import Any, Final

import httpx
import orjson
import structlog
from pydantic import ValidationError

from grievai.models.classification import ClassificationResult, LLMClassification
from grievai.models.enums import GrievanceCategory, GrievancePriority

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Prompt and tool definition
# ---------------------------------------------------------------------------

CLASSIFY_SYSTEM_PROMPT: Final[str] = """\
You are an AI assistant for a government grievance redressal system called GrievAI.
Analyze the citizen's grievance and classify it.

Return a JSON object with:
- category: one of [civic_infrastructure, sanitation, utilities, public_safety, healthcare, education, administration]
- priority: one of [low, medium, high, critical] based on urgency
- department: the government department name
- confidence: 0.0 to 1.0
- summary: a brief 1-sentence summary

Base priority on:
- critical: safety hazards, health emergencies, blocked roads
- high: utilities outage, major inconvenience
- medium: general complaints, service requests
- low: suggestions, minor issues\
"""

TOOL_NAME: Final[str] = "classify_grievance"

CLASSIFY_TOOL: Final[dict[str, Any]] = {
    "type": "function",
    "function": {
        "name": TOOL_NAME,
        "description": "Classify the grievance into category, priority, and department",
        "parameters": {
            "type": "object",
            "properties": {
                "category": {"type": "string", "enum": [c.value for c in GrievanceCategory]},
                "priority": {"type": "string", "enum": [p.value for p in GrievancePriority]},
                "department": {"type": "string"},
                "confidence": {"type": "number"},
                "summary": {"type": "string"},
            },
            "required": ["category", "priority", "department", "confidence", "summary"],
        },
    },
}


class LLMGatewayError(Exception):
    """The gateway call failed or returned an unusable classification."""


# ---------------------------------------------------------------------------
# LLMGateway
# ---------------------------------------------------------------------------


class LLMGateway:
    """Async client for the hosted chat-completion gateway.

    Parameters
    ----------
    api_key:
        Bearer credential for the gateway.  Must be non-empty; callers
        without a key should not construct a gateway at all.
    base_url:
        Gateway root, e.g. ``https://ai.gateway.lovable.dev/v1``.
    model:
        Model identifier passed through to the gateway.
    temperature:
        Sampling temperature; kept low for repeatable labels.
    timeout:
        Total seconds allowed for the single attempt.
    transport:
        Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://ai.gateway.lovable.dev/v1",
        model: str = "google/gemini-2.5-flash",
        temperature: float = 0.1,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self._model = model
        self._temperature = temperature
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    @property
    def model(self) -> str:
        return self._model

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def build_user_message(title: str, description: str, location: str = "") -> str:
        message = f"Title: {title or 'Not provided'}\n\nDescription: {description}"
        if location:
            message += f"\n\nLocation: {location}"
        return message

    def build_payload(self, title: str, description: str, location: str = "") -> dict[str, Any]:
        return {
            "model": self._model,
            "temperature": self._temperature,
            "messages": [
                {"role": "system", "content": CLASSIFY_SYSTEM_PROMPT},
                {"role": "user", "content": self.build_user_message(title, description, location)},
            ],
            "tools": [CLASSIFY_TOOL],
            "tool_choice": {"type": "function", "function": {"name": TOOL_NAME}},
        }

    @staticmethod
    def parse_tool_call(body: Any) -> LLMClassification:
        """Extract and validate the ``classify_grievance`` arguments."""
        try:
            tool_call = body["choices"][0]["message"]["tool_calls"][0]
            function = tool_call["function"]
            raw_arguments = function["arguments"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMGatewayError("No tool call in response") from exc

        if function.get("name", TOOL_NAME) != TOOL_NAME:
            raise LLMGatewayError(f"Unexpected tool call: {function.get('name')!r}")

        try:
            arguments = orjson.loads(raw_arguments) if isinstance(raw_arguments, (str, bytes)) else raw_arguments
        except orjson.JSONDecodeError as exc:
            raise LLMGatewayError("Tool call arguments are not valid JSON") from exc

        try:
            return LLMClassification.model_validate(arguments)
        except ValidationError as exc:
            raise LLMGatewayError(f"Incomplete classification: {exc.error_count()} invalid field(s)") from exc

    # -- public API ---------------------------------------------------------

    async def classify(self, title: str, description: str, location: str = "") -> ClassificationResult:
        """Classify a grievance with a single gateway attempt.

        Raises
        ------
        LLMGatewayError
            On transport errors, timeouts, non-2xx responses, a missing
            tool call, or arguments that fail schema validation.
        """
        start = time.perf_counter()
        payload = self.build_payload(title, description, location)

        try:
            response = await self._client.post("/chat/completions", content=orjson.dumps(payload))
        except httpx.HTTPError as exc:
            raise LLMGatewayError(f"Gateway request failed: {exc.__class__.__name__}") from exc

        if response.is_error:
            logger.warning(
                "llm.gateway_error",
                status=response.status_code,
                body=response.text[:500],
            )
            raise LLMGatewayError(f"AI analysis failed with status {response.status_code}")

        try:
            body = orjson.loads(response.content)
        except orjson.JSONDecodeError as exc:
            raise LLMGatewayError("Gateway response is not valid JSON") from exc

        classification = self.parse_tool_call(body)
        result = classification.to_result()

        logger.info(
            "llm.classified",
            model=self._model,
            category=result.category.value,
            priority=result.priority.value,
            confidence=result.confidence,
            processing_time_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return result
