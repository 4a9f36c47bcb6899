"""Run state and the orchestrator's transition table.

The control flow is an explicit state machine: ``transition(phase, event)``
is a pure lookup in ``TRANSITIONS`` returning the next phase and the effect
the orchestrator must perform. Routing a model turn happens once per turn
in ``classify_turn``, which only reads state; counters and admissions are
changed by the orchestrator when it applies the resulting effect.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from packagent.agent.completion import is_final_turn
from packagent.agent.dedup import DedupPolicy
from packagent.llm.message import Message

DEFAULT_MAX_REASKS = 8


class Phase(enum.Enum):
    START = "start"
    AWAITING_MODEL = "awaiting_model"
    ROUTING_TURN = "routing_turn"
    EXECUTING_TOOL = "executing_tool"
    SENDING_TOOL_RESULT = "sending_tool_result"
    FINISHED = "finished"
    ABORTED = "aborted"

    @property
    def terminal(self) -> bool:
        return self in (Phase.FINISHED, Phase.ABORTED)


class Event(enum.Enum):
    SEED = "seed"  # initial user message appended
    TURN_RECEIVED = "turn_received"  # model answered a plain request
    FINAL_ANSWER = "final_answer"
    FRESH_TOOL_CALL = "fresh_tool_call"  # at least one admissible tool call
    NOT_FINAL = "not_final"  # chatter, duplicate or unknown tool call
    CAP_EXCEEDED = "cap_exceeded"
    TOOLS_COMPLETED = "tools_completed"


class Effect(enum.Enum):
    REQUEST_MODEL = "request_model"
    ROUTE = "route"
    CAPTURE_ANSWER = "capture_answer"
    DISPATCH_TOOLS = "dispatch_tools"
    SEND_TOOL_RESULTS = "send_tool_results"
    REASK = "reask"
    ABORT = "abort"


@dataclass(frozen=True)
class Transition:
    next_phase: Phase
    effect: Effect


class InvalidTransition(Exception):
    """An event arrived that the current phase has no edge for."""

    def __init__(self, phase: Phase, event: Event) -> None:
        self.phase = phase
        self.event = event
        super().__init__(f"No transition from {phase.value} on {event.value}")


# Routing after a tool result is the same decision as routing a fresh turn;
# both checkpoints share one rule set.
_ROUTING_EDGES: dict[Event, Transition] = {
    Event.FINAL_ANSWER: Transition(Phase.FINISHED, Effect.CAPTURE_ANSWER),
    Event.FRESH_TOOL_CALL: Transition(Phase.EXECUTING_TOOL, Effect.DISPATCH_TOOLS),
    Event.NOT_FINAL: Transition(Phase.AWAITING_MODEL, Effect.REASK),
    Event.CAP_EXCEEDED: Transition(Phase.ABORTED, Effect.ABORT),
}

TRANSITIONS: dict[tuple[Phase, Event], Transition] = {
    (Phase.START, Event.SEED): Transition(Phase.AWAITING_MODEL, Effect.REQUEST_MODEL),
    (Phase.AWAITING_MODEL, Event.TURN_RECEIVED): Transition(
        Phase.ROUTING_TURN, Effect.ROUTE
    ),
    **{(Phase.ROUTING_TURN, ev): t for ev, t in _ROUTING_EDGES.items()},
    (Phase.EXECUTING_TOOL, Event.TOOLS_COMPLETED): Transition(
        Phase.SENDING_TOOL_RESULT, Effect.SEND_TOOL_RESULTS
    ),
    **{(Phase.SENDING_TOOL_RESULT, ev): t for ev, t in _ROUTING_EDGES.items()},
}


def transition(phase: Phase, event: Event) -> Transition:
    """Pure transition function ``(phase, event) -> (next phase, effect)``."""
    try:
        return TRANSITIONS[(phase, event)]
    except KeyError:
        raise InvalidTransition(phase, event) from None


@dataclass
class RunState:
    """Mutable state of one orchestration run. Never shared between runs."""

    dedup: DedupPolicy
    max_reasks: int = DEFAULT_MAX_REASKS
    phase: Phase = Phase.START
    reasks: int = 0
    model_calls: int = 0
    tool_calls: int = 0
    history: list[Phase] = field(default_factory=list)

    @property
    def terminal(self) -> bool:
        return self.phase.terminal

    @property
    def used_tools(self) -> frozenset[str]:
        return self.dedup.used

    def advance(self, event: Event) -> Transition:
        t = transition(self.phase, event)
        self.history.append(self.phase)
        self.phase = t.next_phase
        return t

    def snapshot(self) -> RunSnapshot:
        return RunSnapshot(
            phase=self.phase,
            reasks=self.reasks,
            model_calls=self.model_calls,
            tool_calls=self.tool_calls,
            used_tools=self.used_tools,
        )


@dataclass(frozen=True)
class RunSnapshot:
    """Read-only view of a finished run's state."""

    phase: Phase
    reasks: int
    model_calls: int
    tool_calls: int
    used_tools: frozenset[str]


def classify_turn(message: Message, state: RunState) -> Event:
    """Decide, once per turn, which routing edge a model turn takes.

    Ordered decision table:
      1. final answer (no tool call, balanced object)  -> FINAL_ANSWER
      2. any tool call the dedup policy would admit    -> FRESH_TOOL_CALL
      3. re-ask budget spent                           -> CAP_EXCEEDED
      4. anything else                                 -> NOT_FINAL
    """
    if is_final_turn(message):
        return Event.FINAL_ANSWER
    if any(state.dedup.admissible(p.name) for p in message.tool_call_parts):
        return Event.FRESH_TOOL_CALL
    if state.reasks >= state.max_reasks:
        return Event.CAP_EXCEEDED
    return Event.NOT_FINAL
