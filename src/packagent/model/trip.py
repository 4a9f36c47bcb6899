"""Trip request — what the operator asks the assistant to pack for."""

from __future__ import annotations

import enum
from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator


class TripType(str, enum.Enum):
    BUSINESS = "business"
    BEACH = "beach"
    CITY = "city"
    HIKING = "hiking"
    SKI = "ski"
    FAMILY = "family"
    ROMANTIC = "romantic"

    @classmethod
    def parse(cls, text: str | None, default: TripType | None = None) -> TripType:
        """Lenient parse: case-insensitive, unknown input falls back to CITY."""
        fallback = default or cls.CITY
        if not text:
            return fallback
        try:
            return cls(text.strip().lower())
        except ValueError:
            return fallback


class TripRequest(BaseModel):
    """A validated trip: destination, inclusive date range, trip category."""

    city: str = Field(min_length=1)
    start_date: date
    end_date: date
    trip_type: TripType = TripType.CITY

    @field_validator("city")
    @classmethod
    def _strip_city(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("city must not be blank")
        return v

    @model_validator(mode="after")
    def _check_range(self) -> TripRequest:
        if self.end_date < self.start_date:
            raise ValueError(
                f"end date {self.end_date} is before start date {self.start_date}"
            )
        return self

    @property
    def days(self) -> int:
        """Trip length in days, both ends inclusive."""
        return (self.end_date - self.start_date).days + 1

    def seed_message(self) -> str:
        """The opening user turn, with explicit tool-call hints."""
        kind = self.trip_type.value
        start = self.start_date.isoformat()
        end = self.end_date.isoformat()
        return (
            "Create a packing list for my trip.\n"
            f'City="{self.city}"\n'
            f"Dates={start}..{end}\n"
            f"TripType={kind}\n"
            "\n"
            "If you need weather or trip length, call tools:\n"
            f'- fetch_weather(city="{self.city}", startIso="{start}", endIso="{end}")\n'
            f'- trip_context(tripType="{kind}", days={self.days})'
        )
