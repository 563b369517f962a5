"""GrievAI service layer -- classifier, LLM gateway, identity and geocoding."""

from __future__ import annotations

from grievai.services.analysis import AnalysisOutcome, AnalysisPath, GrievanceAnalysisService
from grievai.services.classifier import ClassifierOptions, classify_grievance, department_for
from grievai.services.geocoding import GeocodingError, LocationService
from grievai.services.identity import AuthenticatedUser, IdentityProvider, IdentityProviderError
from grievai.services.llm import LLMGateway, LLMGatewayError

__all__ = [
    "AnalysisOutcome",
    "AnalysisPath",
    "AuthenticatedUser",
    "ClassifierOptions",
    "GeocodingError",
    "GrievanceAnalysisService",
    "IdentityProvider",
    "IdentityProviderError",
    "LLMGateway",
    "LLMGatewayError",
    "LocationService",
    "classify_grievance",
    "department_for",
]
