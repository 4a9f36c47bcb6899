"""OpenWeatherMap client — geocode a place, fetch and fold its forecast."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import date
from typing import Any

import httpx
from pydantic import ValidationError

from packagent.weather.models import (
    DailyForecast,
    ForecastItem,
    ForecastResponse,
    GeoItem,
    WeatherSummary,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openweathermap.org"
DEFAULT_TIMEOUT = 15.0  # seconds per request
NO_DESCRIPTION = "—"


class WeatherLookupError(Exception):
    """The weather source could not answer (network, HTTP status, payload)."""


class CityNotFoundError(WeatherLookupError):
    """Geocoding returned no match for the requested place name."""

    def __init__(self, city: str) -> None:
        self.city = city
        super().__init__(f"City not found: {city}")


class WeatherService:
    """Async OpenWeatherMap client.

    Pass ``client`` to share an ``httpx.AsyncClient`` (tests inject one
    backed by ``httpx.MockTransport``); otherwise a client is created per
    lookup and closed afterwards.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        units: str = "metric",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._units = units
        self._client = client

    async def fetch(self, city: str, start: date, end: date) -> WeatherSummary:
        """Summarize the forecast for ``city`` between ``start`` and ``end``.

        Days outside the window are dropped when the window overlaps the
        forecast horizon; a window entirely beyond the horizon yields the
        whole horizon so the caller still gets the nearest data available.
        """
        if self._client is not None:
            return await self._fetch(self._client, city, start, end)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._fetch(client, city, start, end)

    async def _fetch(
        self, client: httpx.AsyncClient, city: str, start: date, end: date
    ) -> WeatherSummary:
        geo = await self.geocode(client, city)
        forecast = await self.forecast(client, geo)

        days = aggregate_daily(forecast.items)
        in_window = [d for d in days if start.isoformat() <= d.date <= end.isoformat()]
        if in_window:
            days = in_window
        else:
            logger.info(
                "No forecast days for %s in %s..%s; returning full horizon",
                city,
                start,
                end,
            )

        return WeatherSummary(
            city=forecast.city.name,
            country=forecast.city.country,
            days=days,
        )

    async def geocode(self, client: httpx.AsyncClient, city: str) -> GeoItem:
        data = await self._get_json(
            client,
            "/geo/1.0/direct",
            {"q": city, "limit": 1, "appid": self._api_key},
        )
        if not isinstance(data, list) or not data:
            raise CityNotFoundError(city)
        try:
            return GeoItem.model_validate(data[0])
        except ValidationError as e:
            raise WeatherLookupError(f"Unexpected geocoding payload: {e}") from e

    async def forecast(
        self, client: httpx.AsyncClient, geo: GeoItem
    ) -> ForecastResponse:
        data = await self._get_json(
            client,
            "/data/2.5/forecast",
            {
                "lat": geo.lat,
                "lon": geo.lon,
                "appid": self._api_key,
                "units": self._units,
            },
        )
        try:
            return ForecastResponse.model_validate(data)
        except ValidationError as e:
            raise WeatherLookupError(f"Unexpected forecast payload: {e}") from e

    async def _get_json(
        self, client: httpx.AsyncClient, path: str, params: dict[str, Any]
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            resp = await client.get(url, params=params, timeout=self._timeout)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise WeatherLookupError(
                f"Weather lookup failed: HTTP {e.response.status_code} for {path}"
            ) from e
        except httpx.HTTPError as e:
            raise WeatherLookupError(f"Weather lookup failed: {e}") from e
        except ValueError as e:
            raise WeatherLookupError(f"Weather lookup returned bad JSON: {e}") from e


def aggregate_daily(items: list[ForecastItem]) -> list[DailyForecast]:
    """Fold time-stamped samples into one record per calendar day.

    Per day: min of ``temp_min``, max of ``temp_max``, mean ``pop`` rounded
    to two decimals, and the most frequent description (first seen wins a
    tie). Ordered by date ascending.
    """
    by_day: dict[str, list[ForecastItem]] = defaultdict(list)
    for item in items:
        by_day[item.day].append(item)

    days = []
    for day, samples in by_day.items():
        descriptions = Counter(w.description for s in samples for w in s.weather)
        common = descriptions.most_common(1)
        avg_pop = sum(s.pop for s in samples) / len(samples)
        days.append(
            DailyForecast(
                date=day,
                temp_min_c=min(s.main.temp_min for s in samples),
                temp_max_c=max(s.main.temp_max for s in samples),
                precip_prob=round(avg_pop, 2),
                description=common[0][0] if common else NO_DESCRIPTION,
            )
        )
    return sorted(days, key=lambda d: d.date)
