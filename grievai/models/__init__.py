from grievai.models.classification import (
    LAST_RESORT_PAYLOAD,
    AnalyzeRequest,
    ClassificationInput,
    ClassificationResult,
    LLMClassification,
)
from grievai.models.enums import (
    AppRole,
    GrievanceCategory,
    GrievancePriority,
    GrievanceStatus,
    InputMode,
)
from grievai.models.grievance import GrievanceDraft, build_grievance_record

__all__ = [
    "LAST_RESORT_PAYLOAD",
    "AnalyzeRequest",
    "AppRole",
    "ClassificationInput",
    "ClassificationResult",
    "GrievanceCategory",
    "GrievanceDraft",
    "GrievancePriority",
    "GrievanceStatus",
    "InputMode",
    "LLMClassification",
    "build_grievance_record",
]
