"""Completion detection — is this assistant turn the final structured answer?

Models often prepend commentary ("Sure! Here is your list:") before the
JSON object, so finality is decided by delimiter balance rather than by
parsing the whole text:

  * scan left to right tracking ``{`` / ``}`` depth;
  * each time depth returns to zero, the span just closed is a candidate;
  * the last candidate is the answer.

Unbalanced input simply has no (or an earlier) candidate; nothing here
raises on malformed text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from packagent.llm.message import Message
from packagent.model.packing import PACKING_KEYS, PackingList

logger = logging.getLogger(__name__)

OPEN = "{"
CLOSE = "}"

_CANONICAL_KEYS = {k.lower(): k for k in PACKING_KEYS}
_QUOTED_KEY = re.compile(r'"([A-Za-z_]+)"(\s*:)')


def extract_last_object(text: str | None) -> str | None:
    """Return the last balanced top-level ``{...}`` span (stripped), if any."""
    if not text:
        return None

    depth = 0
    start = -1
    last: str | None = None
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"' and depth > 0:
            in_string = True
        elif ch == OPEN:
            if depth == 0:
                start = i
            depth += 1
        elif ch == CLOSE:
            if depth == 0:
                continue  # stray closer outside any object
            depth -= 1
            if depth == 0:
                last = text[start : i + 1]

    return last.strip() if last is not None else None


def is_final_text(text: str | None) -> bool:
    """True iff the text contains a balanced top-level object."""
    span = extract_last_object(text)
    return span is not None and span.startswith(OPEN) and span.endswith(CLOSE)


def is_final_turn(message: Message) -> bool:
    """The single finality rule used at every routing point.

    A turn that requests a tool is never final, whatever its text says.
    """
    if message.role != "assistant" or message.has_tool_calls:
        return False
    return is_final_text(message.text)


def normalize_answer_keys(span: str) -> str:
    """Coerce packing-list keys to their canonical spelling.

    ``"Toiletries"`` becomes ``"toiletries"``, ``"MUSTHAVE"`` becomes
    ``"mustHave"``. Keys that are not packing-list keys are left alone.
    Lists under keys that fold to the same name are concatenated; for any
    other repeat the first value wins. Spans that are not valid JSON are fixed up textually and otherwise
    returned verbatim.
    """
    try:
        data = json.loads(span)
    except json.JSONDecodeError:
        return _QUOTED_KEY.sub(_rename_quoted_key, span)

    if not isinstance(data, dict):
        return span

    normalized: dict[str, Any] = {}
    for key, value in data.items():
        canonical = _canonical_key(key)
        if canonical not in normalized:
            normalized[canonical] = value
        elif isinstance(normalized[canonical], list) and isinstance(value, list):
            normalized[canonical] = normalized[canonical] + value
        else:
            logger.debug("Repeated key %s: keeping the first value", canonical)
    return json.dumps(normalized, indent=2, ensure_ascii=False)


def _canonical_key(key: str) -> str:
    return _CANONICAL_KEYS.get(key.lower(), key)


def _rename_quoted_key(match: re.Match[str]) -> str:
    return f'"{_canonical_key(match.group(1))}"{match.group(2)}'


@dataclass(frozen=True)
class FinalAnswer:
    """The structured object that ended a run."""

    raw: str  # candidate span as the model wrote it
    text: str  # normalized, printed verbatim

    def data(self) -> dict[str, Any] | None:
        try:
            value = json.loads(self.text)
        except json.JSONDecodeError:
            return None
        return value if isinstance(value, dict) else None

    def packing_list(self) -> PackingList | None:
        """Validate into a ``PackingList``; ``None`` when it does not fit."""
        data = self.data()
        if data is None:
            return None
        try:
            return PackingList.model_validate(data)
        except ValidationError as e:
            logger.debug("Final answer is not a valid packing list: %s", e)
            return None


def capture_final_answer(message: Message) -> FinalAnswer | None:
    """Extract and normalize the final answer from a final turn."""
    if not is_final_turn(message):
        return None
    span = extract_last_object(message.text)
    if span is None:
        return None
    return FinalAnswer(raw=span, text=normalize_answer_keys(span))
