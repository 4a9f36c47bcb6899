"""Domain models — trip requests and packing lists."""

from packagent.model.packing import PACKING_KEYS, PackingList
from packagent.model.trip import TripRequest, TripType

__all__ = [
    "PACKING_KEYS",
    "PackingList",
    "TripRequest",
    "TripType",
]
