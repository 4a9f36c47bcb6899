"""Built-in packing tools."""

from packagent.tool.builtin.trip_context import TripContextTool
from packagent.tool.builtin.weather import WeatherTool

__all__ = [
    "TripContextTool",
    "WeatherTool",
]
