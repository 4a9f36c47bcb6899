"""Tool registry — the fixed tool set of one agent, and its invoker."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

from packagent.llm.message import ToolCall
from packagent.tool.base import BaseTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """A fixed, ordered set of tools keyed by name.

    The orchestrator hands it one admitted tool call at a time and gets
    back ``(content, is_error)``. Tool failures come back as error text;
    only programming errors propagate.
    """

    def __init__(self, tools: Iterable[BaseTool] = ()) -> None:
        self._tools: dict[str, BaseTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Duplicate tool name: {tool.name}")
        self._tools[tool.name] = tool

    def names(self) -> list[str]:
        return list(self._tools)

    def get_specs(self) -> list[dict[str, Any]]:
        """OpenAI function schemas, in registration order."""
        return [t.to_openai_spec() for t in self._tools.values()]

    def subset(self, names: Iterable[str]) -> ToolRegistry:
        """Registry restricted to ``names``, in that order.

        Raises:
            KeyError: a name is not registered here.
        """
        names = list(names)
        missing = [n for n in names if n not in self._tools]
        if missing:
            raise KeyError(f"Unknown tool(s): {', '.join(missing)}")
        return ToolRegistry(self._tools[n] for n in names)

    async def dispatch(self, tool_call: ToolCall) -> tuple[str, bool]:
        tool = self._tools.get(tool_call.name)
        if tool is None:
            known = ", ".join(self._tools)
            return f"Unknown tool: {tool_call.name}. Known tools: {known}", True

        started = time.monotonic()
        content, is_error = await tool(tool_call.arguments)
        logger.debug(
            "%s finished in %.2fs (error=%s)",
            tool_call.name,
            time.monotonic() - started,
            is_error,
        )
        return content, is_error
