"""PackingList — the structured object the assistant must return."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

PACKING_KEYS: tuple[str, ...] = (
    "mustHave",
    "clothing",
    "footwear",
    "accessories",
    "toiletries",
    "gadgets",
    "documents",
    "optional",
    "tips",
    "weather",
)


class PackingList(BaseModel):
    """Packing categories plus the forecast digest the answer was based on."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    must_have: list[str] = Field(default_factory=list, alias="mustHave")
    clothing: list[str] = Field(default_factory=list)
    footwear: list[str] = Field(default_factory=list)
    accessories: list[str] = Field(default_factory=list)
    toiletries: list[str] = Field(default_factory=list)
    gadgets: list[str] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)
    optional: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    weather: str = ""
