"""Keyword-based grievance classifier.

The deterministic safety net behind every classification call site: the
API falls back to it when the LLM gateway is unconfigured or fails, and
:class:`grievai.client.AnalysisClient` runs it locally when the API
itself is unreachable.  Both paths import this one table of rules.

Matching is whole-token and case-insensitive.  Category and priority are
decided independently, each by the *first* rule that matches in table
order, not the best one.  The function is pure and holds no shared
mutable state, so it is safe to call from concurrent requests and always
returns a fully populated result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from grievai.models.classification import ClassificationInput, ClassificationResult
from grievai.models.enums import GrievanceCategory, GrievancePriority

if TYPE_CHECKING:
    from config.settings import Settings

# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

BASE_CONFIDENCE: Final[float] = 0.7
CRITICAL_BOOST: Final[float] = 0.1


def _token_pattern(keywords: tuple[str, ...]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"\b(?:{alternation})\b")


@dataclass(frozen=True, slots=True)
class CategoryRule:
    """Keyword group mapping to a category and its department."""

    category: GrievanceCategory
    department: str
    keywords: tuple[str, ...]
    confidence: float = 0.8
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", _token_pattern(self.keywords))

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass(frozen=True, slots=True)
class PriorityRule:
    """Keyword tier mapping to a priority."""

    priority: GrievancePriority
    keywords: tuple[str, ...]
    confidence_boost: float = 0.0
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", _token_pattern(self.keywords))

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


# Order matters: the first matching rule wins.
CATEGORY_RULES: Final[tuple[CategoryRule, ...]] = (
    CategoryRule(
        GrievanceCategory.CIVIC_INFRASTRUCTURE,
        "Public Works Department",
        (
            "road", "street", "bridge", "pothole", "construction",
            "infrastructure", "pavement", "sidewalk", "traffic", "signal",
        ),
    ),
    CategoryRule(
        GrievanceCategory.SANITATION,
        "Sanitation Department",
        ("garbage", "waste", "trash", "cleaning", "sanitation", "toilet", "drain", "sewer", "dump"),
    ),
    CategoryRule(
        GrievanceCategory.UTILITIES,
        "Utilities Department",
        ("water", "electricity", "power", "gas", "utility", "outage", "supply", "connection", "meter"),
    ),
    CategoryRule(
        GrievanceCategory.PUBLIC_SAFETY,
        "Police Department",
        ("police", "safety", "crime", "theft", "violence", "emergency", "fire", "accident", "security"),
    ),
    CategoryRule(
        GrievanceCategory.HEALTHCARE,
        "Health Department",
        ("hospital", "health", "medical", "doctor", "medicine", "clinic", "ambulance", "disease"),
    ),
    CategoryRule(
        GrievanceCategory.EDUCATION,
        "Education Department",
        ("school", "education", "teacher", "student", "college", "university", "exam", "admission"),
    ),
)

DEFAULT_CATEGORY: Final[GrievanceCategory] = GrievanceCategory.ADMINISTRATION
DEFAULT_DEPARTMENT: Final[str] = "General Administration"

# "broken" is listed in both the critical and high tiers; critical is
# checked first, so it only ever yields critical.
PRIORITY_RULES: Final[tuple[PriorityRule, ...]] = (
    PriorityRule(
        GrievancePriority.CRITICAL,
        (
            "emergency", "urgent", "critical", "danger", "life", "death", "accident",
            "fire", "flood", "blocked", "blocking", "broken",
        ),
        confidence_boost=CRITICAL_BOOST,
    ),
    PriorityRule(
        GrievancePriority.HIGH,
        ("important", "serious", "major", "outage", "problem", "issue", "complaint", "broken", "damaged"),
    ),
    PriorityRule(
        GrievancePriority.LOW,
        ("minor", "small", "suggestion", "improve", "request", "slow", "delay"),
    ),
)

_DEPARTMENTS: Final[dict[GrievanceCategory, str]] = {
    rule.category: rule.department for rule in CATEGORY_RULES
} | {DEFAULT_CATEGORY: DEFAULT_DEPARTMENT}


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ClassifierOptions:
    """Switches for the behaviours on which historical call sites differed.

    ``match_location``
        Include the location hint in the searched text.
    ``summary_includes_department``
        End the summary with ``"from <department>"``.
    """

    match_location: bool = True
    summary_includes_department: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> ClassifierOptions:
        return cls(
            match_location=settings.classifier_match_location,
            summary_includes_department=settings.classifier_summary_includes_department,
        )


DEFAULT_OPTIONS: Final[ClassifierOptions] = ClassifierOptions()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def department_for(category: GrievanceCategory) -> str:
    return _DEPARTMENTS[category]


def category_label(category: GrievanceCategory) -> str:
    """``civic_infrastructure`` -> ``Civic Infrastructure``."""
    return category.value.replace("_", " ").title()


def build_search_text(data: ClassificationInput, options: ClassifierOptions = DEFAULT_OPTIONS) -> str:
    parts = [data.title, data.description]
    if options.match_location and data.location_hint:
        parts.append(data.location_hint)
    return " ".join(parts).lower()


def build_summary(
    category: GrievanceCategory,
    priority: GrievancePriority,
    department: str,
    options: ClassifierOptions = DEFAULT_OPTIONS,
) -> str:
    summary = f"{category_label(category)} issue requiring {priority.value} priority attention"
    if options.summary_includes_department:
        summary += f" from {department}"
    return summary


def classify_grievance(
    data: ClassificationInput,
    *,
    default_priority: GrievancePriority = GrievancePriority.MEDIUM,
    options: ClassifierOptions | None = None,
) -> ClassificationResult:
    """Classify grievance text with the keyword rules.

    Never raises: text matching nothing yields ``administration`` with
    *default_priority* and the base confidence.
    """
    opts = options or DEFAULT_OPTIONS
    text = build_search_text(data, opts)

    category = DEFAULT_CATEGORY
    department = DEFAULT_DEPARTMENT
    confidence = BASE_CONFIDENCE
    for rule in CATEGORY_RULES:
        if rule.matches(text):
            category = rule.category
            department = rule.department
            confidence = rule.confidence
            break

    priority = default_priority
    for tier in PRIORITY_RULES:
        if tier.matches(text):
            priority = tier.priority
            confidence = min(round(confidence + tier.confidence_boost, 2), 1.0)
            break

    return ClassificationResult(
        category=category,
        priority=priority,
        department=department,
        confidence=confidence,
        summary=build_summary(category, priority, department, opts),
        fallback=True,
    )
