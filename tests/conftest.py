"""Shared test doubles: a scripted model backend and a canned weather service."""

from __future__ import annotations

import json
from datetime import date
from typing import Any

import pytest

from packagent.llm.provider import ProviderConfig
from packagent.weather import CityNotFoundError, DailyForecast, WeatherSummary


class ScriptedProvider:
    """ChatProvider that replays canned responses, one per ``complete`` call.

    An ``Exception`` in the script is raised instead of returned.
    """

    def __init__(
        self,
        responses: list[dict[str, Any] | Exception],
        capabilities: tuple[str, ...] = ("completion", "tools"),
    ) -> None:
        self._config = ProviderConfig(
            model="test/scripted", capabilities=capabilities
        )
        self._responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def complete(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        self.requests.append({"system": system, "messages": messages, "tools": tools})
        if not self._responses:
            raise AssertionError(f"Unscripted model call #{len(self.requests)}")
        nxt = self._responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt

    # --- response builders ---

    @staticmethod
    def text(content: str) -> dict[str, Any]:
        return {"content": content, "tool_calls": [], "finish_reason": "stop"}

    @staticmethod
    def calls(*calls: tuple[str, dict[str, Any]], content: str = "") -> dict[str, Any]:
        return {
            "content": content or None,
            "tool_calls": [
                {"id": f"call_{i}_{name}", "name": name, "arguments": json.dumps(args)}
                for i, (name, args) in enumerate(calls)
            ],
            "finish_reason": "tool_calls",
        }


class FakeWeatherService:
    """WeatherService double: knows a handful of cities, records lookups."""

    def __init__(self, known: dict[str, WeatherSummary] | None = None) -> None:
        self.known = known if known is not None else {"Lisbon": LISBON}
        self.calls: list[tuple[str, date, date]] = []

    async def fetch(self, city: str, start: date, end: date) -> WeatherSummary:
        self.calls.append((city, start, end))
        if city not in self.known:
            raise CityNotFoundError(city)
        return self.known[city]


LISBON = WeatherSummary(
    city="Lisbon",
    country="PT",
    days=[
        DailyForecast(
            date="2025-06-10",
            temp_min_c=18,
            temp_max_c=27,
            precip_prob=0.1,
            description="clear sky",
        ),
        DailyForecast(
            date="2025-06-11",
            temp_min_c=17,
            temp_max_c=23,
            precip_prob=0.8,
            description="light rain",
        ),
    ],
)


@pytest.fixture
def scripted() -> type[ScriptedProvider]:
    return ScriptedProvider


@pytest.fixture
def weather_service() -> FakeWeatherService:
    return FakeWeatherService()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell and .env out of config-loading tests."""
    for var in (
        "OPENWEATHER_API_KEY",
        "OLLAMA_BASE_URL",
        "OLLAMA_MODEL",
        "PACKAGENT_MAX_REASKS",
        "PACKAGENT_TEMPERATURE",
    ):
        monkeypatch.delenv(var, raising=False)
