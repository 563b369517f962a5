"""Tests for LocationService: LocationIQ, Nominatim fallback and map URLs."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from grievai.services.geocoding import (
    AddressComponents,
    AutocompleteResult,
    GeocodingError,
    LocationService,
    coordinates_label,
    format_address,
)

LAT, LNG = 12.9716, 77.5946

Handler = Callable[[httpx.Request], httpx.Response]


class _Router:
    """Dispatch MockTransport requests by host and record them."""

    def __init__(self, routes: dict[str, Handler]) -> None:
        self._routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self._routes.get(request.url.host)
        if handler is None:
            return httpx.Response(404)
        return handler(request)


def _service(router: _Router, api_key: str = "liq-key", **kwargs: object) -> LocationService:
    return LocationService(api_key=api_key, transport=httpx.MockTransport(router), **kwargs)


def _json(payload: object, status: int = 200) -> Handler:
    return lambda request: httpx.Response(status, json=payload)


_REVERSE_PAYLOAD = {
    "place_id": 123456,
    "lat": "12.9716",
    "lon": "77.5946",
    "display_name": "MG Road, Bengaluru, Karnataka, India",
    "address": {"road": "MG Road", "city": "Bengaluru", "state": "Karnataka", "country": "India"},
}


# -----------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------


class TestFormatting:
    def test_format_address_full(self) -> None:
        address = AddressComponents(
            house_number="12",
            road="MG Road",
            suburb="Ashok Nagar",
            city="Bengaluru",
            state="Karnataka",
            postcode="560001",
            country="India",
        )
        assert format_address(address) == "12 MG Road, Ashok Nagar, Bengaluru, Karnataka, 560001, India"

    def test_format_address_house_number_needs_road(self) -> None:
        assert format_address(AddressComponents(house_number="12", city="Pune")) == "Pune"

    def test_format_address_empty(self) -> None:
        assert format_address(AddressComponents()) == ""

    def test_coordinates_label(self) -> None:
        assert coordinates_label(LAT, LNG) == "Location: 12.971600, 77.594600"


class TestAutocompleteResult:
    def test_defaults(self) -> None:
        result = AutocompleteResult.model_validate(
            {"place_id": 1, "display_name": "Pune", "lat": 18.52, "lon": 73.85, "type": "", "importance": "high"}
        )
        assert result.place_id == "1"
        assert result.lat == "18.52"
        assert result.type == "location"
        assert result.importance == 0.5


# -----------------------------------------------------------------------
# Autocomplete
# -----------------------------------------------------------------------


class TestAutocomplete:
    async def test_without_key_returns_nothing(self) -> None:
        router = _Router({})
        service = _service(router, api_key="")
        assert await service.autocomplete("MG Road") == []
        assert router.requests == [], "No request should be made without a key"

    async def test_short_query_returns_nothing(self) -> None:
        router = _Router({})
        service = _service(router)
        assert await service.autocomplete(" MG ") == []
        assert router.requests == []

    async def test_results(self) -> None:
        router = _Router(
            {
                "us1.locationiq.com": _json(
                    [
                        {"place_id": "1", "display_name": "MG Road, Bengaluru", "lat": "12.97", "lon": "77.60", "type": "road", "importance": 0.7},
                        {"place_id": 2, "display_name": "MG Road, Pune", "lat": "18.52", "lon": "73.87"},
                    ]
                )
            }
        )
        service = _service(router)
        results = await service.autocomplete("MG Road", limit=3)
        await service.close()

        assert [r.display_name for r in results] == ["MG Road, Bengaluru", "MG Road, Pune"]
        assert results[1].type == "location"
        assert results[1].importance == 0.5

        params = router.requests[0].url.params
        assert router.requests[0].url.path == "/v1/autocomplete.php"
        assert params["q"] == "MG Road"
        assert params["limit"] == "3"
        assert params["countrycodes"] == "in"
        assert params["key"] == "liq-key"

    @pytest.mark.parametrize("status", [401, 429, 500])
    async def test_provider_errors_return_nothing(self, status: int) -> None:
        service = _service(_Router({"us1.locationiq.com": _json({"error": "nope"}, status=status)}))
        assert await service.autocomplete("MG Road") == []


# -----------------------------------------------------------------------
# Reverse and forward geocoding
# -----------------------------------------------------------------------


class TestReverseGeocode:
    async def test_success(self) -> None:
        router = _Router({"us1.locationiq.com": _json(_REVERSE_PAYLOAD)})
        service = _service(router)
        result = await service.reverse_geocode(LAT, LNG)

        assert result.display_name == "MG Road, Bengaluru, Karnataka, India"
        assert result.place_id == "123456"
        assert result.address.city == "Bengaluru"

        params = router.requests[0].url.params
        assert router.requests[0].url.path == "/v1/reverse.php"
        assert params["zoom"] == "18"
        assert params["extratags"] == "1"

    async def test_without_key(self) -> None:
        service = _service(_Router({}), api_key="")
        with pytest.raises(GeocodingError, match="API key not configured"):
            await service.reverse_geocode(LAT, LNG)

    @pytest.mark.parametrize(
        ("status", "message"),
        [
            (401, "LocationIQ API key is invalid or expired"),
            (429, "LocationIQ API rate limit exceeded"),
            (500, "LocationIQ API error: 500"),
        ],
    )
    async def test_error_messages(self, status: int, message: str) -> None:
        service = _service(_Router({"us1.locationiq.com": _json({}, status=status)}))
        with pytest.raises(GeocodingError) as exc_info:
            await service.reverse_geocode(LAT, LNG)
        assert str(exc_info.value) == message

    async def test_error_body(self) -> None:
        service = _service(_Router({"us1.locationiq.com": _json({"error": "Unable to geocode"})}))
        with pytest.raises(GeocodingError, match="Unable to geocode"):
            await service.reverse_geocode(LAT, LNG)

    async def test_transport_error_is_retried(self) -> None:
        attempts: list[int] = []

        def flaky(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection reset")
            return httpx.Response(200, json=_REVERSE_PAYLOAD)

        service = _service(_Router({"us1.locationiq.com": flaky}), max_attempts=2)
        result = await service.reverse_geocode(LAT, LNG)
        assert result.display_name.startswith("MG Road")
        assert len(attempts) == 2

    async def test_transport_error_exhausts_attempts(self) -> None:
        def down(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        router = _Router({"us1.locationiq.com": down})
        service = _service(router, max_attempts=1)
        with pytest.raises(GeocodingError, match="request failed"):
            await service.reverse_geocode(LAT, LNG)
        assert len(router.requests) == 1


class TestForwardGeocode:
    async def test_success(self) -> None:
        router = _Router({"us1.locationiq.com": _json([_REVERSE_PAYLOAD])})
        service = _service(router)
        results = await service.forward_geocode("MG Road Bengaluru")
        assert len(results) == 1
        assert results[0].lat == "12.9716"
        assert router.requests[0].url.path == "/v1/search.php"
        assert router.requests[0].url.params["limit"] == "5"

    async def test_unexpected_payload(self) -> None:
        service = _service(_Router({"us1.locationiq.com": _json({"unexpected": True})}))
        with pytest.raises(GeocodingError):
            await service.forward_geocode("MG Road")


# -----------------------------------------------------------------------
# Fallbacks
# -----------------------------------------------------------------------


class TestFallbacks:
    async def test_fallback_reverse_uses_nominatim(self) -> None:
        router = _Router({"nominatim.openstreetmap.org": _json({"display_name": "Cubbon Park, Bengaluru"})})
        service = _service(router, api_key="")
        assert await service.fallback_reverse_geocode(LAT, LNG) == "Cubbon Park, Bengaluru"
        assert router.requests[0].url.path == "/reverse"

    async def test_fallback_reverse_returns_coordinates(self) -> None:
        service = _service(_Router({"nominatim.openstreetmap.org": _json({}, status=503)}), api_key="")
        assert await service.fallback_reverse_geocode(LAT, LNG) == "Location: 12.971600, 77.594600"

    async def test_resolve_prefers_locationiq(self) -> None:
        service = _service(_Router({"us1.locationiq.com": _json(_REVERSE_PAYLOAD)}))
        resolved = await service.resolve_address(LAT, LNG)
        assert resolved.source == "locationiq"
        assert resolved.address == "MG Road, Bengaluru, Karnataka, India"

    async def test_resolve_formats_components_without_display_name(self) -> None:
        payload = {**_REVERSE_PAYLOAD, "display_name": ""}
        service = _service(_Router({"us1.locationiq.com": _json(payload)}))
        resolved = await service.resolve_address(LAT, LNG)
        assert resolved.source == "locationiq"
        assert resolved.address == "MG Road, Bengaluru, Karnataka, India"

    async def test_resolve_falls_back_to_nominatim(self) -> None:
        router = _Router(
            {
                "us1.locationiq.com": _json({}, status=429),
                "nominatim.openstreetmap.org": _json({"display_name": "Cubbon Park, Bengaluru"}),
            }
        )
        resolved = await _service(router).resolve_address(LAT, LNG)
        assert resolved.source == "nominatim"
        assert resolved.address == "Cubbon Park, Bengaluru"

    async def test_resolve_falls_back_to_coordinates(self) -> None:
        resolved = await _service(_Router({}), api_key="").resolve_address(LAT, LNG)
        assert resolved.source == "coordinates"
        assert resolved.address == "Location: 12.971600, 77.594600"
        assert (resolved.lat, resolved.lng) == (LAT, LNG)


# -----------------------------------------------------------------------
# Map URLs
# -----------------------------------------------------------------------


class TestMapUrls:
    def test_static_map_without_key(self) -> None:
        assert _service(_Router({}), api_key="").static_map_url(LAT, LNG) is None

    def test_static_map_url(self) -> None:
        url = _service(_Router({})).static_map_url(LAT, LNG, width=600, height=300, zoom=16)
        assert url is not None
        assert url.startswith("https://maps.locationiq.com/v3/staticmap?")
        assert "center=12.9716,77.5946" in url
        assert "size=600x300" in url
        assert "zoom=16" in url
        assert "markers=icon:large-red-cutout|12.9716,77.5946" in url

    def test_maps_link(self) -> None:
        assert LocationService.maps_link(LAT, LNG) == "https://www.google.com/maps?q=12.9716,77.5946"
