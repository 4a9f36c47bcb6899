"""LLM provider abstraction — unified via litellm.

litellm handles all provider-specific details (Ollama, OpenAI, Anthropic,
...) and returns OpenAI-shaped responses. We convert those to a small
normalized dict so the rest of the code never touches litellm objects:

    {
        "content": str | None,
        "tool_calls": [
            {"id": str, "name": str, "arguments": str},   # arguments: JSON
            ...
        ],
        "finish_reason": str | None,
        "usage": {
            "prompt_tokens": int,
            "completion_tokens": int,
            "total_tokens": int,
        } | None,
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

if TYPE_CHECKING:
    from litellm import ModelResponse

logger = logging.getLogger(__name__)

DEFAULT_CAPABILITIES: tuple[str, ...] = ("completion", "tools")


class ModelTransportError(Exception):
    """The text-generation backend was unreachable or answered nonsense.

    Fatal to an orchestration run: the orchestrator does not retry, the
    caller may retry the whole run.
    """


@dataclass
class ProviderConfig:
    """Configuration for an LLM provider."""

    model: str
    api_base: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    capabilities: tuple[str, ...] = DEFAULT_CAPABILITIES

    @property
    def supports_tools(self) -> bool:
        return "tools" in self.capabilities


@runtime_checkable
class ChatProvider(Protocol):
    """Protocol for LLM providers."""

    @property
    def config(self) -> ProviderConfig: ...

    async def complete(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Request one assistant turn. Returns a normalized response dict."""
        ...


# ---------------------------------------------------------------------------
# litellm provider
# ---------------------------------------------------------------------------


@dataclass
class LiteLLMProvider:
    """Unified LLM provider using litellm.

    litellm handles provider detection from the model string prefix
    (e.g. "ollama_chat/llama3.1:8b", "openai/gpt-4o") and reads API keys
    from environment variables automatically.
    """

    _config: ProviderConfig

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def complete(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        api_messages: list[dict[str, Any]] = [
            {"role": "system", "content": system},
            *messages,
        ]

        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": api_messages,
            "stream": False,
        }

        if tools and self._config.supports_tools:
            kwargs["tools"] = tools

        if self._config.api_base:
            kwargs["api_base"] = self._config.api_base

        if self._config.temperature is not None:
            kwargs["temperature"] = self._config.temperature

        if self._config.max_tokens is not None:
            kwargs["max_tokens"] = self._config.max_tokens

        try:
            response = await _acompletion_with_retry(**kwargs)
        except (ConnectionError, TimeoutError, OSError) as e:
            raise ModelTransportError(
                f"Model backend unreachable ({self._config.model}): {e}"
            ) from e
        except Exception as e:
            # litellm maps provider failures onto its own exception hierarchy
            # (APIConnectionError, BadRequestError, ...); all are fatal here.
            raise ModelTransportError(
                f"Model request failed ({self._config.model}): {e}"
            ) from e

        return _response_to_dict(response)


@retry(
    retry=retry_if_exception_type((ConnectionError, TimeoutError, OSError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=30),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def _acompletion_with_retry(**kwargs: Any) -> ModelResponse:
    """Call litellm.acompletion with retry on transient errors."""
    import litellm

    return await litellm.acompletion(**kwargs)


def _response_to_dict(response: Any) -> dict[str, Any]:
    """Convert a litellm ModelResponse to our normalized dict.

    litellm responses have the same shape as OpenAI ChatCompletion objects:
      response.choices[0].message.{content, tool_calls},
      response.choices[0].finish_reason, response.usage
    """
    choices = getattr(response, "choices", None)
    if not choices:
        raise ModelTransportError("Model response contained no choices")

    choice = choices[0]
    message = getattr(choice, "message", None)
    if message is None:
        raise ModelTransportError("Model response choice has no message")

    result: dict[str, Any] = {
        "content": getattr(message, "content", None),
        "tool_calls": [],
        "finish_reason": getattr(choice, "finish_reason", None),
    }

    for tc in getattr(message, "tool_calls", None) or []:
        func = getattr(tc, "function", None)
        if func is None:
            continue
        arguments = func.arguments
        if arguments is None:
            arguments = ""
        elif not isinstance(arguments, str):
            # Some backends hand back already-decoded argument objects
            arguments = json.dumps(arguments)
        result["tool_calls"].append(
            {
                "id": getattr(tc, "id", None) or "",
                "name": func.name or "",
                "arguments": arguments,
            }
        )

    usage = getattr(response, "usage", None)
    if usage:
        result["usage"] = {
            "prompt_tokens": getattr(usage, "prompt_tokens", 0) or 0,
            "completion_tokens": getattr(usage, "completion_tokens", 0) or 0,
            "total_tokens": getattr(usage, "total_tokens", 0) or 0,
        }
    else:
        result["usage"] = None

    return result


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_provider(
    model: str,
    api_base: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    capabilities: tuple[str, ...] = DEFAULT_CAPABILITIES,
) -> ChatProvider:
    """Create a LiteLLM provider.

    Args:
        model: Model name with provider prefix (e.g. "ollama_chat/llama3.1:8b",
               "openai/gpt-4o").
        api_base: Backend base URL (the Ollama server for local models).
        temperature: Sampling temperature.
        max_tokens: Max output tokens.
        capabilities: Declared model capabilities; tool schemas are only
            sent when "tools" is present.

    Returns:
        A ChatProvider instance.
    """
    config = ProviderConfig(
        model=model,
        api_base=api_base,
        temperature=temperature,
        max_tokens=max_tokens,
        capabilities=tuple(capabilities),
    )
    return LiteLLMProvider(_config=config)
