"""Single-turn generation primitive and the model client seam."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Sequence

from packagent.llm.message import (
    ContentPart,
    Message,
    TextPart,
    ToolCall,
    ToolCallPart,
    TokenUsage,
)
from packagent.llm.provider import ChatProvider, ModelTransportError

logger = logging.getLogger(__name__)

# Type alias for tool specs in OpenAI format
ToolSpec = dict[str, Any]


@dataclass
class GenerateResult:
    """Result of a single LLM generation."""

    message: Message
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str | None = None

    @property
    def tool_calls(self) -> list[ToolCall]:
        return self.message.tool_calls

    @property
    def has_tool_calls(self) -> bool:
        return self.message.has_tool_calls


async def generate(
    provider: ChatProvider,
    system: str,
    messages: Sequence[Message],
    tools: list[ToolSpec] | None = None,
) -> GenerateResult:
    """Request one assistant turn from the backend.

    This is the fundamental primitive: one API call, one assistant message.
    One call is outstanding at a time; the caller awaits it before doing
    anything else with the conversation.
    """
    api_messages = [m.to_openai_dict() for m in messages]

    response = await provider.complete(system, api_messages, tools)
    if not isinstance(response, dict):
        raise ModelTransportError(
            f"Malformed model response: expected dict, got {type(response).__name__}"
        )

    parts: list[ContentPart] = []

    content = response.get("content")
    if content:
        if not isinstance(content, str):
            raise ModelTransportError("Malformed model response: content is not text")
        parts.append(TextPart(text=content))

    for raw in response.get("tool_calls") or []:
        if not isinstance(raw, dict):
            raise ModelTransportError(
                f"Malformed model response: tool call is {type(raw).__name__}"
            )
        name = raw.get("name") or ""
        if not name:
            logger.warning("Dropping tool call without a name: %r", raw)
            continue
        # Ollama omits call ids; synthesize one so results can be paired
        call_id = raw.get("id") or f"call_{uuid.uuid4().hex[:12]}"
        parts.append(
            ToolCallPart(id=call_id, name=name, arguments=raw.get("arguments") or "")
        )

    usage = TokenUsage()
    u = response.get("usage")
    if u:
        usage = TokenUsage(
            input_tokens=u.get("prompt_tokens", 0),
            output_tokens=u.get("completion_tokens", 0),
            total_tokens=u.get("total_tokens", 0),
        )

    message = Message(role="assistant", parts=tuple(parts))
    return GenerateResult(
        message=message, usage=usage, finish_reason=response.get("finish_reason")
    )


@dataclass
class ModelClient:
    """Sends the conversation to the backend and returns one assistant turn.

    Bundles what stays fixed for a run: the provider (model identifier and
    capability flags), the system prompt and the declared tool schemas.
    Transport and protocol failures surface as ``ModelTransportError``.
    """

    provider: ChatProvider
    system_prompt: str
    tools: list[ToolSpec] = field(default_factory=list)

    async def request(self, conversation: Sequence[Message]) -> GenerateResult:
        tools = None
        if self.tools and self.provider.config.supports_tools:
            tools = self.tools
        result = await generate(self.provider, self.system_prompt, conversation, tools)
        logger.debug(
            "Model turn: %d chars, %d tool call(s), finish_reason=%s, tokens=%d/%d",
            len(result.message.text),
            len(result.message.tool_call_parts),
            result.finish_reason,
            result.usage.input_tokens,
            result.usage.output_tokens,
        )
        return result
