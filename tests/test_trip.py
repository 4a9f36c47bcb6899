"""Tests for packagent.model (TripType, TripRequest, PackingList)."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from packagent.model.packing import PACKING_KEYS, PackingList
from packagent.model.trip import TripRequest, TripType


class TestTripType:
    @pytest.mark.parametrize("text", ["beach", "BEACH", "  Beach "])
    def test_case_insensitive(self, text: str) -> None:
        assert TripType.parse(text) is TripType.BEACH

    @pytest.mark.parametrize("text", ["", None, "safari"])
    def test_fallback_to_city(self, text: str | None) -> None:
        assert TripType.parse(text) is TripType.CITY

    def test_custom_default(self) -> None:
        assert TripType.parse("safari", default=TripType.HIKING) is TripType.HIKING


class TestTripRequest:
    def test_days_inclusive(self) -> None:
        trip = TripRequest(
            city="Lisbon", start_date=date(2025, 6, 10), end_date=date(2025, 6, 12)
        )
        assert trip.days == 3
        assert trip.trip_type is TripType.CITY

    def test_single_day(self) -> None:
        d = date(2025, 6, 10)
        assert TripRequest(city="Rome", start_date=d, end_date=d).days == 1

    def test_spans_month_boundary(self) -> None:
        trip = TripRequest(
            city="Oslo", start_date=date(2025, 1, 30), end_date=date(2025, 3, 2)
        )
        assert trip.days == 32

    def test_city_stripped(self) -> None:
        d = date(2025, 6, 10)
        assert TripRequest(city="  Lisbon ", start_date=d, end_date=d).city == "Lisbon"

    def test_blank_city_rejected(self) -> None:
        d = date(2025, 6, 10)
        with pytest.raises(ValidationError):
            TripRequest(city="   ", start_date=d, end_date=d)

    def test_reversed_dates_rejected(self) -> None:
        with pytest.raises(ValidationError, match="before start date"):
            TripRequest(
                city="Lisbon", start_date=date(2025, 6, 12), end_date=date(2025, 6, 10)
            )

    def test_seed_message(self) -> None:
        trip = TripRequest(
            city="Lisbon",
            start_date=date(2025, 6, 10),
            end_date=date(2025, 6, 12),
            trip_type=TripType.BEACH,
        )
        assert trip.seed_message() == (
            "Create a packing list for my trip.\n"
            'City="Lisbon"\n'
            "Dates=2025-06-10..2025-06-12\n"
            "TripType=beach\n"
            "\n"
            "If you need weather or trip length, call tools:\n"
            '- fetch_weather(city="Lisbon", '
            'startIso="2025-06-10", endIso="2025-06-12")\n'
            '- trip_context(tripType="beach", days=3)'
        )


class TestPackingList:
    def test_keys(self) -> None:
        assert PACKING_KEYS[0] == "mustHave"
        assert PACKING_KEYS[-1] == "weather"
        assert len(PACKING_KEYS) == 10

    def test_defaults(self) -> None:
        plist = PackingList()
        assert plist.must_have == []
        assert plist.weather == ""

    def test_alias_round_trip(self) -> None:
        plist = PackingList.model_validate({"mustHave": ["passport"], "extra": 1})
        dumped = plist.model_dump(by_alias=True)
        assert dumped["mustHave"] == ["passport"]
        assert set(PACKING_KEYS) <= set(dumped)
