from __future__ import annotations

from enum import StrEnum


class GrievanceCategory(StrEnum):
    __slots__ = ()

    CIVIC_INFRASTRUCTURE = "civic_infrastructure"
    SANITATION = "sanitation"
    UTILITIES = "utilities"
    PUBLIC_SAFETY = "public_safety"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    ADMINISTRATION = "administration"


class GrievancePriority(StrEnum):
    __slots__ = ()

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class GrievanceStatus(StrEnum):
    """Workflow states owned by the Record Store."""

    __slots__ = ()

    RECEIVED = "received"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    ESCALATED = "escalated"


class InputMode(StrEnum):
    __slots__ = ()

    TEXT = "text"
    VOICE = "voice"
    IMAGE = "image"
    LOCATION = "location"


class AppRole(StrEnum):
    __slots__ = ()

    CITIZEN = "citizen"
    OFFICER = "officer"
    ADMIN = "admin"
