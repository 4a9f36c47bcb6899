"""Weather source consumed by the ``fetch_weather`` tool."""

from packagent.weather.models import DailyForecast, WeatherSummary
from packagent.weather.service import (
    CityNotFoundError,
    WeatherLookupError,
    WeatherService,
    aggregate_daily,
)

__all__ = [
    "DailyForecast",
    "WeatherSummary",
    "CityNotFoundError",
    "WeatherLookupError",
    "WeatherService",
    "aggregate_daily",
]
