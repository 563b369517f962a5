"""Location lookup endpoints.

Thin wrappers over :class:`~grievai.services.geocoding.LocationService`.
Lookups are advisory: reverse geocoding always answers (falling back to a
coordinate string) so manual address entry is never blocked.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Query, Request

from grievai.services.geocoding import GeocodingError, LocationService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/location", tags=["location"])


def _location_service(request: Request) -> LocationService:
    service = getattr(request.app.state, "geocoding", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Location services not available")
    return service


@router.get("/autocomplete")
async def autocomplete(
    request: Request,
    q: str = Query(..., max_length=200),
    limit: int = Query(default=5, ge=1, le=10),
) -> dict:
    """Suggest addresses for a partial query (at least three characters)."""
    service = _location_service(request)
    results = await service.autocomplete(q, limit=limit)
    return {"query": q, "results": [r.model_dump() for r in results]}


@router.get("/reverse")
async def reverse(
    request: Request,
    lat: float = Query(..., ge=-90.0, le=90.0),
    lng: float = Query(..., ge=-180.0, le=180.0),
) -> dict:
    """Resolve captured coordinates to the best available address."""
    service = _location_service(request)
    resolved = await service.resolve_address(lat, lng)
    return {
        "lat": resolved.lat,
        "lng": resolved.lng,
        "address": resolved.address,
        "source": resolved.source,
        "static_map_url": service.static_map_url(lat, lng),
        "maps_link": service.maps_link(lat, lng),
    }


@router.get("/search")
async def search(
    request: Request,
    q: str = Query(..., min_length=1, max_length=300),
) -> dict:
    """Forward geocode an address to candidate coordinates."""
    service = _location_service(request)
    try:
        results = await service.forward_geocode(q)
    except GeocodingError as exc:
        logger.warning("api.location.search_failed", error=str(exc))
        raise HTTPException(status_code=502, detail=str(exc)) from None
    return {"query": q, "results": [r.model_dump() for r in results]}


@router.get("/static-map")
async def static_map(
    request: Request,
    lat: float = Query(..., ge=-90.0, le=90.0),
    lng: float = Query(..., ge=-180.0, le=180.0),
    width: int = Query(default=400, ge=50, le=1280),
    height: int = Query(default=200, ge=50, le=1280),
    zoom: int = Query(default=15, ge=1, le=18),
) -> dict:
    """Static map image URL (``null`` without a LocationIQ key) and a maps link."""
    service = _location_service(request)
    return {
        "static_map_url": service.static_map_url(lat, lng, width=width, height=height, zoom=zoom),
        "maps_link": service.maps_link(lat, lng),
    }
