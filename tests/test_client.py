"""Tests for the resilient analysis client."""

from __future__ import annotations

import httpx
import orjson
import pytest

from config.settings import load_settings
from grievai.client import ANALYZE_PATH, LOCAL_ANALYSIS_NOTICE, AnalysisClient
from grievai.main import create_app
from grievai.models.classification import ClassificationInput
from grievai.models.enums import GrievanceCategory, GrievancePriority, InputMode
from grievai.services.analysis import GrievanceAnalysisService
from grievai.services.classifier import classify_grievance

_DESCRIPTION = "There is a large pothole blocking the road near my house"

_SERVER_PAYLOAD = {
    "category": "civic_infrastructure",
    "priority": "high",
    "department": "Public Works Department",
    "confidence": 0.91,
    "summary": "Pothole blocking a residential road",
    "fallback": False,
}


def _client(handler) -> AnalysisClient:
    return AnalysisClient(
        base_url="https://grievai.example.org",
        access_token="session-token",
        transport=httpx.MockTransport(handler),
    )


class TestRemoteAnalysis:
    async def test_uses_server_result(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_SERVER_PAYLOAD)

        async with _client(handler) as client:
            analysis = await client.analyze(
                _DESCRIPTION, title="Pothole", input_mode=InputMode.VOICE, location_address="Sector 9"
            )

        assert analysis.used_local_fallback is False
        assert analysis.notice is None
        assert analysis.result.priority == GrievancePriority.HIGH
        assert analysis.result.confidence == 0.91

        request = seen[0]
        assert request.url.path == ANALYZE_PATH
        assert request.headers["Authorization"] == "Bearer session-token"
        assert orjson.loads(request.content) == {
            "description": _DESCRIPTION,
            "title": "Pothole",
            "input_mode": "voice",
            "location_address": "Sector 9",
        }

    async def test_server_fallback_result_is_accepted(self) -> None:
        payload = {**_SERVER_PAYLOAD, "confidence": 0.6, "fallback": True}
        async with _client(lambda r: httpx.Response(200, json=payload)) as client:
            analysis = await client.analyze(_DESCRIPTION)
        assert analysis.used_local_fallback is False
        assert analysis.result.fallback is True


class TestLocalFallback:
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, json={"error": "Analysis failed"}),
            httpx.Response(401, json={"error": "Unauthorized"}),
            httpx.Response(200, json={"category": "sanitation"}),
            httpx.Response(200, json={"error": "Analysis failed", "priority": "medium"}),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={**_SERVER_PAYLOAD, "category": "roads"}),
        ],
        ids=["500", "401", "missing-priority", "missing-category", "non-json", "invalid-category"],
    )
    async def test_unusable_response(self, response: httpx.Response) -> None:
        async with _client(lambda r: response) as client:
            analysis = await client.analyze(_DESCRIPTION)

        assert analysis.used_local_fallback is True
        assert analysis.notice == LOCAL_ANALYSIS_NOTICE
        assert analysis.result.category == GrievanceCategory.CIVIC_INFRASTRUCTURE
        assert analysis.result.priority == GrievancePriority.CRITICAL
        assert analysis.result.confidence == 0.9
        assert analysis.result.fallback is True

    async def test_unreachable_server(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("network down")

        async with _client(handler) as client:
            analysis = await client.analyze("Garbage not collected", location_address="Ward 12")

        assert analysis.used_local_fallback is True
        assert analysis.result.category == GrievanceCategory.SANITATION

    async def test_local_result_matches_shared_classifier(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow")

        async with _client(handler) as client:
            analysis = await client.analyze("No water supply", title="Water", location_address="Block C")

        expected = classify_grievance(
            ClassificationInput(title="Water", description="No water supply", location_hint="Block C")
        )
        assert analysis.result == expected

    @pytest.mark.parametrize("description", ["", "   "])
    async def test_blank_description_is_rejected(self, description: str) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_SERVER_PAYLOAD)

        async with _client(handler) as client:
            with pytest.raises(ValueError):
                await client.analyze(description)
        assert calls == [], "Nothing should be sent for a blank description"


class TestAgainstApp:
    async def test_round_trip_through_app(self) -> None:
        app = create_app(load_settings(metrics_enabled=False, require_auth=False, llm_api_key=""))
        app.state.analysis = GrievanceAnalysisService()

        client = AnalysisClient(
            base_url="http://testserver",
            access_token="ignored",
            transport=httpx.ASGITransport(app=app),
        )
        async with client:
            analysis = await client.analyze(_DESCRIPTION)

        assert analysis.used_local_fallback is False
        assert analysis.result.category == GrievanceCategory.CIVIC_INFRASTRUCTURE
        assert analysis.result.confidence == 0.3
        assert analysis.result.fallback is True
