"""Tool system — base classes, registry, and the packing tools."""

from packagent.tool.base import BaseTool, ToolResult, ToolOk, ToolError
from packagent.tool.registry import ToolRegistry

__all__ = [
    "BaseTool",
    "ToolResult",
    "ToolOk",
    "ToolError",
    "ToolRegistry",
]
