"""Classification schemas shared by the heuristic, the LLM path and the API.

Every payload crossing a process boundary (HTTP body, LLM tool-call
arguments, client responses) is parsed into one of these models before
business logic sees it.
"""

from __future__ import annotations

from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from grievai.models.enums import GrievanceCategory, GrievancePriority, InputMode

SUMMARY_MAX_LENGTH: Final[int] = 200


class ClassificationInput(BaseModel):
    """Free text to classify. Missing parts are normalised to ``""``."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    location_hint: str = ""

    @field_validator("title", "description", "location_hint", mode="before")
    @classmethod
    def _none_to_empty(cls, v: object) -> object:
        return "" if v is None else v


class ClassificationResult(BaseModel):
    """Category/priority/department/confidence/summary tuple for a grievance.

    Constructed once per submission attempt and never mutated; the
    submission flow embeds it verbatim as ``ai_analysis``.
    """

    model_config = ConfigDict(frozen=True)

    category: GrievanceCategory
    priority: GrievancePriority
    department: str
    confidence: float = Field(ge=0.0, le=1.0)
    summary: str
    fallback: bool = False

    @field_validator("summary")
    @classmethod
    def _clip_summary(cls, v: str) -> str:
        return v[:SUMMARY_MAX_LENGTH]

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(mode="json")


class LLMClassification(BaseModel):
    """Arguments of the ``classify_grievance`` tool call.

    All five fields are required and must be non-empty; anything else
    is rejected so the caller can fall back to the heuristic instead of
    returning a partially populated object.
    """

    category: GrievanceCategory
    priority: GrievancePriority
    department: str
    confidence: float = Field(ge=0.0, le=1.0)
    summary: str

    @field_validator("department", "summary")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    def to_result(self) -> ClassificationResult:
        return ClassificationResult(
            category=self.category,
            priority=self.priority,
            department=self.department,
            confidence=self.confidence,
            summary=self.summary,
            fallback=False,
        )


class AnalyzeRequest(BaseModel):
    """Body of ``POST /api/v1/analyze-grievance``."""

    description: str = Field(..., min_length=1)
    title: str = ""
    input_mode: InputMode = InputMode.TEXT
    location_address: str = ""

    @field_validator("title", "location_address", mode="before")
    @classmethod
    def _none_to_empty(cls, v: object) -> object:
        return "" if v is None else v

    @field_validator("description")
    @classmethod
    def _description_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("description must not be blank")
        return v

    def to_classification_input(self) -> ClassificationInput:
        return ClassificationInput(
            title=self.title,
            description=self.description,
            location_hint=self.location_address,
        )


# Returned with HTTP 500 when even the heuristic fallback failed.
LAST_RESORT_PAYLOAD: Final[dict[str, object]] = {
    "error": "Analysis failed",
    "category": "administration",
    "priority": "medium",
    "department": "General Administration",
    "confidence": 0.3,
    "summary": "Manual review required",
}
