"""Location services backed by LocationIQ with an OpenStreetMap fallback.

Wraps the LocationIQ autocomplete, reverse and forward geocoding APIs and
builds static-map URLs.  Address resolution degrades in three steps:

1. LocationIQ reverse geocoding (needs an API key).
2. OpenStreetMap Nominatim reverse geocoding.
3. A plain ``"Location: <lat>, <lng>"`` string, which never fails.

Transient transport errors are retried a bounded number of times with
tenacity; HTTP status errors are reported immediately.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final
from urllib.parse import urlencode

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_USER_AGENT: Final[str] = "GrievAI-App/1.0"
_MIN_AUTOCOMPLETE_QUERY: Final[int] = 3
_DEFAULT_IMPORTANCE: Final[float] = 0.5


class GeocodingError(Exception):
    """A geocoding provider call failed."""


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class AddressComponents(BaseModel):
    model_config = ConfigDict(extra="allow")

    house_number: str | None = None
    road: str | None = None
    neighbourhood: str | None = None
    suburb: str | None = None
    city: str | None = None
    county: str | None = None
    state: str | None = None
    postcode: str | None = None
    country: str | None = None
    country_code: str | None = None


class LocationResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    display_name: str = ""
    lat: str
    lon: str
    address: AddressComponents = Field(default_factory=AddressComponents)
    place_id: str | None = None
    importance: float | None = None

    @field_validator("lat", "lon", "place_id", mode="before")
    @classmethod
    def _coerce_str(cls, v: object) -> object:
        return str(v) if isinstance(v, (int, float)) else v


class AutocompleteResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    place_id: str
    display_name: str
    lat: str
    lon: str
    type: str = "location"
    importance: float = _DEFAULT_IMPORTANCE

    @field_validator("lat", "lon", "place_id", mode="before")
    @classmethod
    def _coerce_str(cls, v: object) -> object:
        return str(v) if isinstance(v, (int, float)) else v

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, v: object) -> object:
        return v or "location"

    @field_validator("importance", mode="before")
    @classmethod
    def _default_importance(cls, v: object) -> object:
        # bool is an int subclass but never a meaningful importance
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return v
        return _DEFAULT_IMPORTANCE


@dataclass(frozen=True, slots=True)
class ResolvedLocation:
    lat: float
    lng: float
    address: str
    source: str  # "locationiq" | "nominatim" | "coordinates"


def format_address(address: AddressComponents) -> str:
    """Join address components into a single readable line."""
    parts: list[str] = []
    if address.house_number and address.road:
        parts.append(f"{address.house_number} {address.road}")
    elif address.road:
        parts.append(address.road)

    for value in (
        address.neighbourhood,
        address.suburb,
        address.city,
        address.county,
        address.state,
        address.postcode,
        address.country,
    ):
        if value:
            parts.append(value)
    return ", ".join(parts)


def coordinates_label(lat: float, lng: float) -> str:
    return f"Location: {lat:.6f}, {lng:.6f}"


# ---------------------------------------------------------------------------
# LocationService
# ---------------------------------------------------------------------------


class LocationService:
    """LocationIQ client with Nominatim and coordinate-string fallbacks.

    Parameters
    ----------
    api_key:
        LocationIQ key.  Without one, autocomplete returns nothing, the
        direct geocoding calls raise, and address resolution starts at
        the Nominatim step.
    country_codes:
        Comma-separated ISO country codes biasing autocomplete.
    max_attempts:
        Total tries per request when the transport fails.
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://us1.locationiq.com/v1",
        maps_url: str = "https://maps.locationiq.com/v3",
        nominatim_url: str = "https://nominatim.openstreetmap.org",
        country_codes: str = "in",
        timeout: float = 10.0,
        max_attempts: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._maps_url = maps_url.rstrip("/")
        self._nominatim_url = nominatim_url.rstrip("/")
        self._country_codes = country_codes
        self._max_attempts = max_attempts
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json", "User-Agent": _USER_AGENT},
            follow_redirects=True,
            transport=transport,
        )
        if not api_key:
            logger.warning("geocoding.api_key_missing", note="Location services will use fallback")

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get(self, url: str, params: dict[str, Any]) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                return await self._client.get(url, params=params)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _locationiq_get(self, path: str, **params: Any) -> Any:
        if not self._api_key:
            raise GeocodingError("LocationIQ API key not configured")

        try:
            response = await self._get(f"{self._base_url}{path}", {"key": self._api_key, **params})
        except httpx.HTTPError as exc:
            raise GeocodingError(f"LocationIQ request failed: {exc.__class__.__name__}") from exc

        if response.status_code == 401:
            raise GeocodingError("LocationIQ API key is invalid or expired")
        if response.status_code == 429:
            raise GeocodingError("LocationIQ API rate limit exceeded")
        if response.is_error:
            raise GeocodingError(f"LocationIQ API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise GeocodingError("LocationIQ returned invalid JSON") from exc

        if isinstance(data, dict) and data.get("error"):
            raise GeocodingError(str(data["error"]))
        return data

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def autocomplete(self, query: str, limit: int = 5) -> list[AutocompleteResult]:
        """Suggest places for a partial address.  Never raises."""
        query = query.strip()
        if not self._api_key or len(query) < _MIN_AUTOCOMPLETE_QUERY:
            return []

        try:
            data = await self._locationiq_get(
                "/autocomplete.php",
                q=query,
                limit=limit,
                format="json",
                countrycodes=self._country_codes,
                addressdetails=1,
            )
            if not isinstance(data, list):
                raise GeocodingError("Unexpected autocomplete payload")
            return [AutocompleteResult.model_validate(item) for item in data]
        except (GeocodingError, ValidationError) as exc:
            logger.warning("geocoding.autocomplete_failed", error=str(exc))
            return []

    async def reverse_geocode(self, lat: float, lng: float) -> LocationResult:
        """Convert coordinates to an address via LocationIQ.

        Raises
        ------
        GeocodingError
            When the key is missing or the provider call fails.
        """
        data = await self._locationiq_get(
            "/reverse.php",
            lat=lat,
            lon=lng,
            format="json",
            addressdetails=1,
            zoom=18,
            extratags=1,
        )
        try:
            return LocationResult.model_validate(data)
        except ValidationError as exc:
            raise GeocodingError("Unexpected reverse geocoding payload") from exc

    async def forward_geocode(self, address: str, limit: int = 5) -> list[LocationResult]:
        """Convert an address to candidate coordinates via LocationIQ."""
        data = await self._locationiq_get(
            "/search.php",
            q=address,
            format="json",
            addressdetails=1,
            limit=limit,
        )
        if not isinstance(data, list):
            raise GeocodingError("Unexpected search payload")
        try:
            return [LocationResult.model_validate(item) for item in data]
        except ValidationError as exc:
            raise GeocodingError("Unexpected search payload") from exc

    async def _nominatim_reverse(self, lat: float, lng: float) -> str | None:
        try:
            response = await self._get(
                f"{self._nominatim_url}/reverse",
                {"format": "json", "lat": lat, "lon": lng, "zoom": 18, "addressdetails": 1},
            )
            if response.is_success:
                data = response.json()
                if isinstance(data, dict) and data.get("display_name"):
                    return str(data["display_name"])
            logger.warning("geocoding.nominatim_no_result", status=response.status_code)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("geocoding.nominatim_failed", error=str(exc))
        return None

    async def fallback_reverse_geocode(self, lat: float, lng: float) -> str:
        """Reverse geocode with OpenStreetMap, else return the coordinates."""
        return await self._nominatim_reverse(lat, lng) or coordinates_label(lat, lng)

    async def resolve_address(self, lat: float, lng: float) -> ResolvedLocation:
        """Best available address for already-captured coordinates.  Never raises."""
        try:
            result = await self.reverse_geocode(lat, lng)
            address = result.display_name or format_address(result.address)
            if address:
                return ResolvedLocation(lat=lat, lng=lng, address=address, source="locationiq")
        except GeocodingError as exc:
            logger.warning("geocoding.reverse_failed", error=str(exc))

        display_name = await self._nominatim_reverse(lat, lng)
        if display_name:
            return ResolvedLocation(lat=lat, lng=lng, address=display_name, source="nominatim")
        return ResolvedLocation(lat=lat, lng=lng, address=coordinates_label(lat, lng), source="coordinates")

    def static_map_url(
        self,
        lat: float,
        lng: float,
        width: int = 400,
        height: int = 200,
        zoom: int = 15,
    ) -> str | None:
        """LocationIQ static map image URL, or ``None`` without an API key."""
        if not self._api_key:
            return None
        params = {
            "key": self._api_key,
            "center": f"{lat},{lng}",
            "zoom": zoom,
            "size": f"{width}x{height}",
            "format": "png",
            "markers": f"icon:large-red-cutout|{lat},{lng}",
        }
        return f"{self._maps_url}/staticmap?{urlencode(params, safe=',|:')}"

    @staticmethod
    def maps_link(lat: float, lng: float) -> str:
        return f"https://www.google.com/maps?q={lat},{lng}"
