"""Conversation turn types for the LLM abstraction."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextPart:
    """A text content part."""

    type: Literal["text"] = "text"
    text: str = ""


@dataclass(frozen=True)
class ToolCallPart:
    """A tool call content part."""

    type: Literal["tool_call"] = "tool_call"
    id: str = ""
    name: str = ""
    arguments: str = ""  # JSON string


@dataclass(frozen=True)
class ToolResultPart:
    """A tool result content part."""

    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str = ""
    name: str = ""
    content: str = ""
    is_error: bool = False


ContentPart = TextPart | ToolCallPart | ToolResultPart


@dataclass(frozen=True)
class ToolCall:
    """A complete tool call extracted from a model turn."""

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class TokenUsage:
    """Token usage stats from an LLM call."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class Message:
    """One conversation turn with typed content parts.

    Turns are immutable: a run's conversation only ever grows by appending
    new ``Message`` objects.
    """

    role: Literal["system", "user", "assistant", "tool"]
    parts: tuple[ContentPart, ...] = field(default_factory=tuple)

    @property
    def text(self) -> str:
        """Get concatenated text content."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_call_parts(self) -> list[ToolCallPart]:
        return [p for p in self.parts if isinstance(p, ToolCallPart)]

    @property
    def has_tool_calls(self) -> bool:
        return any(isinstance(p, ToolCallPart) for p in self.parts)

    @property
    def tool_calls(self) -> list[ToolCall]:
        """Get all tool calls in this turn with parsed arguments.

        Arguments that are not valid JSON (or not a JSON object) are
        replaced by an empty dict; schema validation in the tool then
        reports the problem back to the model.
        """
        calls = []
        for p in self.tool_call_parts:
            try:
                args = json.loads(p.arguments) if p.arguments else {}
            except json.JSONDecodeError:
                logger.warning(
                    "Failed to parse tool call arguments for %s: %s",
                    p.name,
                    p.arguments[:200],
                )
                args = {}
            if not isinstance(args, dict):
                args = {}
            calls.append(ToolCall(id=p.id, name=p.name, arguments=args))
        return calls

    @property
    def tool_result(self) -> ToolResultPart | None:
        for p in self.parts:
            if isinstance(p, ToolResultPart):
                return p
        return None

    # --- Convenience constructors ---

    @classmethod
    def system(cls, text: str) -> Message:
        return cls(role="system", parts=(TextPart(text=text),))

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role="user", parts=(TextPart(text=text),))

    @classmethod
    def assistant(
        cls, text: str = "", tool_calls: list[ToolCallPart] | None = None
    ) -> Message:
        parts: list[ContentPart] = []
        if text:
            parts.append(TextPart(text=text))
        if tool_calls:
            parts.extend(tool_calls)
        return cls(role="assistant", parts=tuple(parts))

    @classmethod
    def tool_result_for(
        cls, tool_call_id: str, name: str, content: str, is_error: bool = False
    ) -> Message:
        return cls(
            role="tool",
            parts=(
                ToolResultPart(
                    tool_call_id=tool_call_id,
                    name=name,
                    content=content,
                    is_error=is_error,
                ),
            ),
        )

    def with_tool_calls(self, call_ids: list[str]) -> Message:
        """Return a copy of this turn carrying only the tool calls with these ids."""
        keep = set(call_ids)
        parts = tuple(
            p for p in self.parts if not isinstance(p, ToolCallPart) or p.id in keep
        )
        return Message(role=self.role, parts=parts)

    def to_openai_dict(self) -> dict[str, Any]:
        """Convert to OpenAI API format (the format litellm expects)."""
        if self.role == "tool":
            result = self.tool_result
            if result is not None:
                return {
                    "role": "tool",
                    "tool_call_id": result.tool_call_id,
                    "name": result.name,
                    "content": result.content,
                }
            return {"role": "tool", "content": ""}

        if self.role == "assistant":
            out: dict[str, Any] = {"role": "assistant"}
            text_parts = [p for p in self.parts if isinstance(p, TextPart)]
            out["content"] = "".join(p.text for p in text_parts) if text_parts else None

            tc_parts = self.tool_call_parts
            if tc_parts:
                out["tool_calls"] = [
                    {
                        "id": p.id,
                        "type": "function",
                        "function": {"name": p.name, "arguments": p.arguments},
                    }
                    for p in tc_parts
                ]
            return out

        # system or user
        return {"role": self.role, "content": self.text}
