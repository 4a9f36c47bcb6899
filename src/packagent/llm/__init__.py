"""LLM abstraction layer — unified via litellm."""

from packagent.llm.message import (
    Message,
    ContentPart,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    ToolCall,
    TokenUsage,
)
from packagent.llm.provider import (
    ChatProvider,
    LiteLLMProvider,
    ModelTransportError,
    ProviderConfig,
    create_provider,
)
from packagent.llm.generate import generate, GenerateResult, ModelClient

__all__ = [
    "Message",
    "ContentPart",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "ToolCall",
    "TokenUsage",
    "ChatProvider",
    "LiteLLMProvider",
    "ModelTransportError",
    "ProviderConfig",
    "create_provider",
    "generate",
    "GenerateResult",
    "ModelClient",
]
