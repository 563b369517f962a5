"""Main API router combining all v1 route modules.

Aggregates all routers under the ``/api/v1`` prefix so the FastAPI
application only needs to include a single router (plus the edge-function
compatibility route).

Includes:
    * Analysis: grievance classification with LLM and keyword fallback
    * Location: autocomplete, reverse/forward geocoding, static maps
    * Health: liveness and readiness
"""

from __future__ import annotations

from fastapi import APIRouter

from grievai.api.v1 import analyze, health, location

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(analyze.router)
api_router.include_router(location.router)
api_router.include_router(health.router)

edge_router = analyze.edge_router
