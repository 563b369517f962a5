"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``GRIEVAI_`` prefix; provider credentials use their
canonical environment variable names via ``validation_alias``.

Settings are loaded once at process start with :func:`load_settings` and
passed explicitly to :func:`grievai.main.create_app`.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the GrievAI analysis service.

    Environment variables are loaded from a ``.env`` file when present.
    App-specific keys are prefixed with ``GRIEVAI_``; provider keys use
    their standard names (configured via ``validation_alias``).
    """

    model_config = SettingsConfigDict(
        env_prefix="GRIEVAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"
    require_auth: bool = True

    # ── LLM Gateway ────────────────────────────────────────────────────
    llm_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("LLM_API_KEY", "LOVABLE_API_KEY"),
    )
    llm_base_url: str = Field(
        default="https://ai.gateway.lovable.dev/v1",
        validation_alias="LLM_BASE_URL",
    )
    llm_model: str = Field(default="google/gemini-2.5-flash", validation_alias="LLM_MODEL")
    llm_temperature: float = Field(default=0.1, ge=0.0, le=1.0, validation_alias="LLM_TEMPERATURE")
    llm_timeout_seconds: float = Field(default=15.0, gt=0, validation_alias="LLM_TIMEOUT_SECONDS")

    # ── Identity Provider (Supabase Auth) ──────────────────────────────
    supabase_url: str = Field(default="", validation_alias="SUPABASE_URL")
    supabase_anon_key: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "SUPABASE_PUBLISHABLE_KEY"),
    )
    supabase_project_id: str = Field(default="", validation_alias="SUPABASE_PROJECT_ID")

    # ── Geocoding (LocationIQ + Nominatim fallback) ────────────────────
    locationiq_api_key: str = Field(default="", validation_alias="LOCATIONIQ_API_KEY")
    locationiq_base_url: str = Field(default="https://us1.locationiq.com/v1", validation_alias="LOCATIONIQ_BASE_URL")
    locationiq_maps_url: str = Field(default="https://maps.locationiq.com/v3", validation_alias="LOCATIONIQ_MAPS_URL")
    nominatim_url: str = Field(default="https://nominatim.openstreetmap.org", validation_alias="NOMINATIM_URL")
    geocoding_country_codes: str = "in"
    geocoding_timeout_seconds: float = Field(default=10.0, gt=0)
    geocoding_max_attempts: int = Field(default=2, ge=1, le=5)

    # ── Classifier ─────────────────────────────────────────────────────
    classifier_match_location: bool = True
    classifier_summary_includes_department: bool = True

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")
    cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")
    metrics_enabled: bool = True

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def llm_configured(self) -> bool:
        return bool(self.llm_api_key)

    @property
    def identity_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def geocoding_configured(self) -> bool:
        return bool(self.locationiq_api_key)

    def configuration_issues(self) -> list[str]:
        """List missing or degraded configuration, most severe first.

        None of these stop the service from starting: every collaborator
        has a degraded mode.
        """
        issues: list[str] = []
        if not self.supabase_url:
            issues.append("SUPABASE_URL is not configured")
        if not self.supabase_anon_key:
            issues.append("SUPABASE_ANON_KEY is not configured")
        if not self.supabase_project_id:
            issues.append("SUPABASE_PROJECT_ID is not configured")
        if not self.llm_api_key:
            issues.append("LLM_API_KEY is not configured - classification will use the keyword fallback")
        if not self.locationiq_api_key:
            issues.append("LOCATIONIQ_API_KEY is not configured - location services will use fallback")
        return issues


def load_settings(**overrides: object) -> Settings:
    """Build and validate settings once, at process start."""
    return Settings(**overrides)  # type: ignore[arg-type]
