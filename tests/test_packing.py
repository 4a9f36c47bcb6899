"""Tests for packagent.agent.packing (assembly and an end-to-end run)."""

from __future__ import annotations

import json
from datetime import date
from typing import Any

import httpx
import pytest

from packagent.agent.orchestrator import RunOutcome
from packagent.agent.packing import plan_packing, setup_packing_agent
from packagent.config import MissingCredentialError, PackagentConfig
from packagent.model.trip import TripRequest, TripType


def _config(**agent: Any) -> PackagentConfig:
    return PackagentConfig.model_validate(
        {"weather": {"api_key": "k3y"}, "agent": agent}
    )


_GEO = [{"name": "Lisbon", "country": "PT", "lat": 38.72, "lon": -9.14}]
_FORECAST = {
    "city": {"name": "Lisbon", "country": "PT"},
    "list": [
        {
            "dt_txt": "2025-06-10 12:00:00",
            "main": {"temp_min": 19, "temp_max": 26.5},
            "weather": [{"description": "clear sky"}],
            "pop": 0.05,
        },
    ],
}


def _owm(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/geo/1.0/direct":
        return httpx.Response(200, json=_GEO)
    return httpx.Response(200, json=_FORECAST)


class TestSetup:
    def test_wiring(self, scripted: Any) -> None:
        setup = setup_packing_agent(_config(), provider=scripted([]))
        assert setup.agent.name == "packing"
        assert setup.tool_registry.names() == ["fetch_weather", "trip_context"]
        assert setup.orchestrator.max_reasks == 8
        assert setup.orchestrator.tool_names == ("fetch_weather", "trip_context")
        specs = setup.orchestrator.client.tools
        assert [s["function"]["name"] for s in specs] == [
            "fetch_weather",
            "trip_context",
        ]

    def test_cap_override(self, scripted: Any) -> None:
        setup = setup_packing_agent(_config(max_reasks=2), provider=scripted([]))
        assert setup.orchestrator.max_reasks == 2

    def test_default_provider_from_config(self) -> None:
        setup = setup_packing_agent(_config())
        assert setup.provider.config.model == "ollama_chat/llama3.1:8b"
        assert setup.provider.config.api_base == "http://localhost:11434"

    def test_missing_key(self, scripted: Any) -> None:
        with pytest.raises(MissingCredentialError):
            setup_packing_agent(PackagentConfig(), provider=scripted([]))


class TestPlanPacking:
    async def test_end_to_end(self, scripted: Any) -> None:
        trip = TripRequest(
            city="Lisbon",
            start_date=date(2025, 6, 10),
            end_date=date(2025, 6, 10),
            trip_type=TripType.CITY,
        )
        weather_args = {
            "city": "Lisbon",
            "startIso": "2025-06-10",
            "endIso": "2025-06-10",
        }
        final = {
            "MustHave": ["passport"],
            "weather": "City: Lisbon PT",
        }
        provider = scripted(
            [
                scripted.calls(("fetch_weather", weather_args)),
                scripted.calls(("trip_context", {"tripType": "city", "days": 1})),
                scripted.text(json.dumps(final)),
            ]
        )
        async with httpx.AsyncClient(transport=httpx.MockTransport(_owm)) as client:
            result = await plan_packing(
                trip, _config(), provider=provider, weather_client=client
            )

        assert result.outcome is RunOutcome.FINISHED
        assert result.answer is not None
        assert json.loads(result.answer.text) == {
            "mustHave": ["passport"],
            "weather": "City: Lisbon PT",
        }
        weather_result = result.conversation[2].tool_result
        assert weather_result is not None
        assert weather_result.content == (
            "City: Lisbon PT\n"
            "Daily:\n"
            "- 2025-06-10: min 19°C, max 26.5°C, rainProb 0.05, clear sky"
        )
        assert provider.requests[0]["system"].startswith("You are a Packing Assistant.")
