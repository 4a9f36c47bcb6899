"""Weather tool — multi-day forecast digest for packing decisions."""

from __future__ import annotations

from datetime import date
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from packagent.tool.base import BaseTool, ToolError, ToolOk, ToolResult
from packagent.weather import CityNotFoundError, WeatherLookupError, WeatherService


class WeatherParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    city: str = Field(min_length=1, description="Destination city name")
    start_iso: date = Field(alias="startIso", description="Start date (YYYY-MM-DD)")
    end_iso: date = Field(alias="endIso", description="End date (YYYY-MM-DD)")

    @model_validator(mode="after")
    def _check_range(self) -> WeatherParams:
        if self.end_iso < self.start_iso:
            raise ValueError("endIso must not be before startIso")
        return self


class WeatherTool(BaseTool[WeatherParams]):
    """Look up the forecast for the trip window and return a compact digest."""

    name: ClassVar[str] = "fetch_weather"
    description: ClassVar[str] = (
        "Get a concise multi-day weather summary for packing decisions"
    )
    param_model: ClassVar[type[BaseModel]] = WeatherParams

    def __init__(self, service: WeatherService) -> None:
        self._service = service

    async def execute(self, params: WeatherParams) -> ToolResult:
        try:
            summary = await self._service.fetch(
                params.city, params.start_iso, params.end_iso
            )
        except CityNotFoundError as e:
            return ToolError(output=str(e))
        except WeatherLookupError as e:
            return ToolError(output=f"Weather unavailable for {params.city}: {e}")

        return ToolOk(output=summary.digest())
