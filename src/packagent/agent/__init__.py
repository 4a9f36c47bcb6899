"""Agent system — definitions, completion detection, run state, orchestrator."""

from packagent.agent.agent import Agent, AgentConfig, load_builtin_agent
from packagent.agent.completion import (
    FinalAnswer,
    extract_last_object,
    is_final_text,
    is_final_turn,
    normalize_answer_keys,
)
from packagent.agent.dedup import DedupPolicy
from packagent.agent.orchestrator import (
    Orchestrator,
    RunAbortedError,
    RunOutcome,
    RunResult,
)
from packagent.agent.state import Effect, Event, Phase, RunState, transition

__all__ = [
    "Agent",
    "AgentConfig",
    "load_builtin_agent",
    "FinalAnswer",
    "extract_last_object",
    "is_final_text",
    "is_final_turn",
    "normalize_answer_keys",
    "DedupPolicy",
    "Orchestrator",
    "RunAbortedError",
    "RunOutcome",
    "RunResult",
    "Effect",
    "Event",
    "Phase",
    "RunState",
    "transition",
]
