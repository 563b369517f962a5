"""GrievAI FastAPI application entry point.

Creates the FastAPI app, configures middleware, includes routers, and
manages the lifecycle of the backend collaborators (LLM gateway,
Identity Provider, geocoding).  Settings are validated once and passed
in explicitly; nothing below reads the environment directly.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from config.settings import Settings, load_settings
from grievai import __version__
from grievai.api.router import api_router, edge_router
from grievai.middleware.auth import UnauthorizedError, unauthorized_handler
from grievai.middleware.request_context import RequestContextMiddleware
from grievai.services.classifier import ClassifierOptions

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def configure_logging(settings: Settings) -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.get_level_from_name(settings.log_level),
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of the GrievAI collaborators.

    On startup:
      1. Configure logging and report configuration issues
      2. Initialise the Identity Provider client (if configured)
      3. Initialise the LLM gateway (if configured) and the analysis service
      4. Initialise location services
      5. Store everything on ``app.state``

    On shutdown:
      - Close all HTTP clients.
    """
    settings: Settings = app.state.settings
    configure_logging(settings)
    logger.info("app.startup", env=settings.env, require_auth=settings.require_auth)

    issues = settings.configuration_issues()
    for issue in issues:
        logger.warning("app.configuration_issue", issue=issue)
    if not issues:
        logger.info("app.configuration_complete")

    app.state.start_time = time.time()

    # -- 1. Identity Provider ---------------------------------------------
    from grievai.services.identity import IdentityProvider, IdentityProviderError

    identity: IdentityProvider | None = None
    if settings.identity_configured:
        try:
            identity = await IdentityProvider.connect(
                supabase_url=settings.supabase_url,
                anon_key=settings.supabase_anon_key,
            )
            logger.info("app.identity_initialised")
        except IdentityProviderError as exc:
            logger.error("app.identity_init_failed", error=str(exc))
    app.state.identity = identity

    # -- 2. LLM gateway + analysis ----------------------------------------
    from grievai.services.analysis import GrievanceAnalysisService
    from grievai.services.llm import LLMGateway

    gateway: LLMGateway | None = None
    if settings.llm_configured:
        gateway = LLMGateway(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            timeout=settings.llm_timeout_seconds,
        )
        logger.info("app.llm_initialised", model=settings.llm_model)
    else:
        logger.warning("app.llm_not_configured", note="Classification will use the keyword fallback")

    analysis = GrievanceAnalysisService(gateway=gateway, options=ClassifierOptions.from_settings(settings))
    app.state.analysis = analysis

    # -- 3. Location services ---------------------------------------------
    from grievai.services.geocoding import LocationService

    geocoding = LocationService(
        api_key=settings.locationiq_api_key,
        base_url=settings.locationiq_base_url,
        maps_url=settings.locationiq_maps_url,
        nominatim_url=settings.nominatim_url,
        country_codes=settings.geocoding_country_codes,
        timeout=settings.geocoding_timeout_seconds,
        max_attempts=settings.geocoding_max_attempts,
    )
    app.state.geocoding = geocoding
    logger.info("app.geocoding_initialised", configured=geocoding.configured)

    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")
    await analysis.close()
    await geocoding.close()
    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around an explicit, validated settings object."""
    settings = settings or load_settings()

    app = FastAPI(
        title="GrievAI API",
        description=(
            "Citizen grievance analysis: LLM-assisted classification with a "
            "deterministic keyword fallback, plus location lookups."
        ),
        version=__version__,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )
    app.state.settings = settings

    # -- CORS middleware ----------------------------------------------------
    # allow_credentials=True must not be combined with a wildcard origin.
    origins = settings.cors_origin_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "X-Client-Info", "Apikey", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Analysis-Path"],
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(UnauthorizedError, unauthorized_handler)

    # -- Prometheus metrics -------------------------------------------------
    if settings.metrics_enabled:
        Instrumentator(
            should_group_status_codes=True,
            should_ignore_untemplated=True,
            excluded_handlers=["/metrics", "/api/v1/health"],
        ).instrument(app).expose(
            app,
            endpoint="/metrics",
            include_in_schema=not settings.is_production,
        )

    app.include_router(api_router)
    app.include_router(edge_router)

    @app.get("/api", response_class=ORJSONResponse)
    async def api_info() -> dict:
        """API information endpoint."""
        return {
            "name": "GrievAI API",
            "version": __version__,
            "docs": "/docs",
            "health": "/api/v1/health",
            "endpoints": {
                "analyze": "/api/v1/analyze-grievance",
                "location_autocomplete": "/api/v1/location/autocomplete",
                "location_reverse": "/api/v1/location/reverse",
                "location_search": "/api/v1/location/search",
                "location_static_map": "/api/v1/location/static-map",
                "health": "/api/v1/health",
            },
        }

    return app


app = create_app()
