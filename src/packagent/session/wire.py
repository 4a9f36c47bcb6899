"""Wire protocol — decouples the orchestrator from whoever renders progress.

Events flow from the orchestrator to subscribers (the CLI prints them to
stderr). Each run can have its own wire; nothing is global.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any


class EventType(enum.Enum):
    RUN_BEGIN = "run_begin"
    STATE = "state"
    MODEL_TURN = "model_turn"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    DUPLICATE_TOOL_CALL = "duplicate_tool_call"
    REASK = "reask"
    FINAL_ANSWER = "final_answer"
    ABORTED = "aborted"
    ERROR = "error"


@dataclass
class WireEvent:
    """An event on the wire."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)


class Wire:
    """Broadcast bus from one orchestrator run to any number of readers.

    Every subscriber gets its own unbounded queue; ``None`` marks the end.
    """

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue[WireEvent | None]] = []
        self._closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: WireEvent) -> None:
        """Broadcast ``event``. A no-op once the wire is closed."""
        if self._closed:
            return
        for q in self._subscribers:
            q.put_nowait(event)

    def emit(self, type_: EventType, **data: Any) -> None:
        self.send(WireEvent(type=type_, data=data))

    def send_state(self, previous: str, current: str, event: str) -> None:
        # "from" is a keyword, so build the dict directly
        self.send(
            WireEvent(
                type=EventType.STATE,
                data={"from": previous, "to": current, "event": event},
            )
        )

    def send_tool_call(self, tool_call_id: str, name: str, arguments: str) -> None:
        self.emit(EventType.TOOL_CALL, id=tool_call_id, name=name, arguments=arguments)

    def send_tool_result(
        self, tool_call_id: str, name: str, content: str, is_error: bool
    ) -> None:
        self.emit(
            EventType.TOOL_RESULT,
            id=tool_call_id,
            name=name,
            content=content,
            is_error=is_error,
        )

    def send_reask(self, reasks: int, max_reasks: int) -> None:
        self.emit(EventType.REASK, reasks=reasks, max_reasks=max_reasks)

    def send_error(self, error: str) -> None:
        self.emit(EventType.ERROR, error=error)

    def subscribe(self) -> asyncio.Queue[WireEvent | None]:
        """Return a fresh queue that receives every later event."""
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        if self._closed:
            q.put_nowait(None)
        else:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue[WireEvent | None]) -> None:
        if q in self._subscribers:
            self._subscribers.remove(q)

    def close(self) -> None:
        """End the stream for every subscriber. Idempotent."""
        if self._closed:
            return
        self._closed = True
        for q in self._subscribers:
            q.put_nowait(None)
