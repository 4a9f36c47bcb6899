"""Trip context tool — echoes trip type and length back to the model."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from packagent.tool.base import BaseTool, ToolOk, ToolResult


class TripContextParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    trip_type: str = Field(
        alias="tripType",
        min_length=1,
        description=(
            "Trip category (business, beach, city, hiking, ski, family, romantic…)"
        ),
    )
    days: int = Field(ge=1, description="Trip length in days")


class TripContextTool(BaseTool[TripContextParams]):
    name: ClassVar[str] = "trip_context"
    description: ClassVar[str] = (
        "Provide the trip type and length so the LLM tailors the packing list"
    )
    param_model: ClassVar[type[BaseModel]] = TripContextParams

    async def execute(self, params: TripContextParams) -> ToolResult:
        return ToolOk(
            output=f"Trip type: {params.trip_type}; Trip length (days): {params.days}"
        )
