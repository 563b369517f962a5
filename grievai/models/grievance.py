"""Shape of the grievance row handed to the external Record Store.

The Record Store owns identifiers, tracking codes, status and timestamps;
this module only builds the insert payload the submission flow writes.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from grievai.models.classification import ClassificationResult
from grievai.models.enums import GrievanceCategory, GrievancePriority, InputMode

_TITLE_FROM_SUMMARY_LENGTH = 100


class GrievanceDraft(BaseModel):
    """Form state collected from the citizen before submission."""

    title: str = ""
    description: str
    category: GrievanceCategory | None = None
    priority: GrievancePriority = GrievancePriority.MEDIUM
    location_address: str = ""
    location_lat: float | None = Field(default=None, ge=-90.0, le=90.0)
    location_lng: float | None = Field(default=None, ge=-180.0, le=180.0)
    input_mode: InputMode = InputMode.TEXT

    def apply_analysis(self, analysis: ClassificationResult) -> GrievanceDraft:
        """Auto-fill the draft from an analysis result.

        The analysis always supplies category and priority; a blank title
        takes the opening of the summary.
        """
        return self.model_copy(
            update={
                "category": analysis.category,
                "priority": analysis.priority,
                "title": self.title or analysis.summary[:_TITLE_FROM_SUMMARY_LENGTH],
            }
        )


def build_grievance_record(
    draft: GrievanceDraft,
    analysis: ClassificationResult | None,
    user_id: str,
) -> dict[str, object]:
    """Build the insert payload for the ``grievances`` table.

    Raises ``ValueError`` when the draft is missing a required field, the
    same fields the submission form refuses to send without.
    """
    if not draft.title.strip() or not draft.description.strip() or draft.category is None:
        raise ValueError("title, description and category are required")

    return {
        "user_id": user_id,
        "title": draft.title,
        "description": draft.description,
        "category": draft.category.value,
        "priority": draft.priority.value,
        "location_address": draft.location_address or None,
        "location_lat": draft.location_lat,
        "location_lng": draft.location_lng,
        "input_mode": draft.input_mode.value,
        "ai_analysis": analysis.to_payload() if analysis is not None else None,
    }
