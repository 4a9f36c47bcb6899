"""Conversation — append-only turn history owned by one run."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from packagent.llm.message import (
    Message,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)

logger = logging.getLogger(__name__)


class Conversation:
    """Ordered, append-only sequence of immutable turns.

    Turns are never edited or removed; readers get tuple snapshots, so a
    snapshot handed to the model client cannot change under it.
    """

    def __init__(self, messages: list[Message] | None = None) -> None:
        self._messages: list[Message] = list(messages or [])

    def append(self, message: Message) -> None:
        self._messages.append(message)
        logger.debug(
            "Conversation += %s turn (%d total)", message.role, len(self._messages)
        )

    def get_messages(self) -> tuple[Message, ...]:
        """Get all turns for the LLM."""
        return tuple(self._messages)


def to_dicts(messages: Iterable[Message]) -> list[dict[str, Any]]:
    """Plain-dict transcript of a run, as printed by ``plan --verbose``."""
    return [_message_to_dict(m) for m in messages]


def _message_to_dict(msg: Message) -> dict[str, Any]:
    """Serialize a Message to a flat dict."""
    d: dict[str, Any] = {"role": msg.role}

    text_parts = [p for p in msg.parts if isinstance(p, TextPart)]
    if text_parts:
        d["content"] = "".join(p.text for p in text_parts)

    tc_parts = [p for p in msg.parts if isinstance(p, ToolCallPart)]
    if tc_parts:
        d["tool_calls"] = [
            {"id": p.id, "name": p.name, "arguments": p.arguments} for p in tc_parts
        ]

    tr_parts = [p for p in msg.parts if isinstance(p, ToolResultPart)]
    if tr_parts:
        tr = tr_parts[0]
        d["tool_call_id"] = tr.tool_call_id
        d["name"] = tr.name
        d["content"] = tr.content
        d["is_error"] = tr.is_error

    return d
