"""Weather data shapes: upstream payloads and the per-day summary."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GeoItem(_Payload):
    """One geocoding match."""

    name: str
    country: str | None = None
    lat: float
    lon: float


class _ForecastMain(_Payload):
    temp_min: float
    temp_max: float


class _ForecastWeather(_Payload):
    description: str


class ForecastItem(_Payload):
    """One time-stamped (3-hourly) forecast sample."""

    dt_txt: str
    main: _ForecastMain
    weather: list[_ForecastWeather] = Field(default_factory=list)
    pop: float = 0.0

    @property
    def day(self) -> str:
        return self.dt_txt[:10]  # YYYY-MM-DD


class ForecastCity(_Payload):
    name: str
    country: str | None = None


class ForecastResponse(_Payload):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    items: list[ForecastItem] = Field(alias="list")
    city: ForecastCity


class DailyForecast(BaseModel):
    """All samples of one calendar day folded into a single record."""

    date: str
    temp_min_c: float
    temp_max_c: float
    precip_prob: float  # 0-1 fraction, two decimals
    description: str


class WeatherSummary(BaseModel):
    """Multi-day forecast for one place, one entry per day, date ascending."""

    city: str
    country: str | None = None
    days: list[DailyForecast] = Field(default_factory=list)

    def digest(self) -> str:
        """Compact, LLM-friendly text rendering."""
        header = f"City: {self.city} {self.country or ''}".rstrip()
        lines = [
            f"- {d.date}: min {d.temp_min_c:g}°C, max {d.temp_max_c:g}°C, "
            f"rainProb {d.precip_prob:g}, {d.description}"
            for d in self.days
        ]
        return "\n".join([header, "Daily:", *lines])
