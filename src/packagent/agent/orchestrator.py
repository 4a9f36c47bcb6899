"""Orchestrator — drives one packing run through the state machine.

One run owns one ``Conversation`` and one ``RunState``. The loop performs
a single effect at a time and only two of them suspend: a model request
and a tool execution. Nothing is issued while either is outstanding.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from packagent.agent.completion import FinalAnswer, capture_final_answer
from packagent.agent.dedup import DedupPolicy
from packagent.agent.state import (
    DEFAULT_MAX_REASKS,
    Effect,
    Event,
    Phase,
    RunSnapshot,
    RunState,
    Transition,
    classify_turn,
)
from packagent.context import Conversation
from packagent.llm.generate import ModelClient
from packagent.llm.message import Message, ToolCall
from packagent.llm.provider import ModelTransportError
from packagent.session.wire import EventType, Wire
from packagent.tool.registry import ToolRegistry

logger = logging.getLogger(__name__)


class RunOutcome(enum.Enum):
    """How did the run end?"""

    FINISHED = "finished"  # exactly one final answer captured
    ABORTED = "aborted"  # re-ask cap exhausted without a final answer


class RunAbortedError(Exception):
    """The agent never converged on a final answer."""

    def __init__(self, reasks: int) -> None:
        self.reasks = reasks
        super().__init__(
            f"Agent did not produce a final answer after {reasks} re-asks"
        )


@dataclass(frozen=True)
class RunResult:
    outcome: RunOutcome
    answer: FinalAnswer | None
    state: RunSnapshot
    conversation: tuple[Message, ...]

    @property
    def ok(self) -> bool:
        return self.outcome is RunOutcome.FINISHED

    def raise_for_outcome(self) -> FinalAnswer:
        """Return the answer, or raise ``RunAbortedError``."""
        if self.answer is None:
            raise RunAbortedError(self.state.reasks)
        return self.answer


class Orchestrator:
    """Runs the model/tool protocol until a final answer or the re-ask cap.

    Args:
        client: Model client (system prompt, tool schemas, backend).
        tools: Tool registry used to execute admitted tool calls.
        tool_names: The fixed tool set of this agent. Calls naming anything
            else are ignored. Defaults to every registered tool.
        max_reasks: Re-ask cycles allowed before the run is aborted.
        wire: Optional progress event wire.
    """

    def __init__(
        self,
        client: ModelClient,
        tools: ToolRegistry,
        tool_names: Iterable[str] | None = None,
        max_reasks: int = DEFAULT_MAX_REASKS,
        wire: Wire | None = None,
    ) -> None:
        if max_reasks < 0:
            raise ValueError("max_reasks must be >= 0")
        self.client = client
        self.tools = tools
        self.tool_names = (
            tuple(tool_names) if tool_names is not None else tuple(tools.names())
        )
        self.max_reasks = max_reasks
        self.wire = wire

    async def run(self, seed: str) -> RunResult:
        """Run one orchestration from the seed user message.

        Raises:
            ModelTransportError: the model backend failed; fatal to the run.
        """
        conversation = Conversation()
        state = RunState(
            dedup=DedupPolicy(self.tool_names), max_reasks=self.max_reasks
        )
        answer: FinalAnswer | None = None

        self._emit(
            EventType.RUN_BEGIN,
            tools=list(self.tool_names),
            max_reasks=self.max_reasks,
        )
        conversation.append(Message.user(seed))
        self._advance(state, Event.SEED)
        # START only leads to a model request, so every later effect has a turn
        turn = await self._request(conversation, state)
        t = self._advance(state, Event.TURN_RECEIVED)

        while True:
            effect = t.effect

            if effect is Effect.CAPTURE_ANSWER:
                conversation.append(turn)
                answer = capture_final_answer(turn)
                logger.info(
                    "Final answer captured after %d model call(s)", state.model_calls
                )
                self._emit(EventType.FINAL_ANSWER, text=answer.text if answer else "")
                break

            if effect is Effect.ABORT:
                logger.warning(
                    "Aborting run: no final answer after %d re-asks", state.reasks
                )
                self._emit(EventType.ABORTED, reasks=state.reasks)
                break

            if effect is Effect.REASK:
                self._record_reask(turn, conversation, state)

            if effect in (Effect.REQUEST_MODEL, Effect.REASK):
                turn = await self._request(conversation, state)
                t = self._advance(state, Event.TURN_RECEIVED)
            elif effect is Effect.ROUTE:
                t = self._advance(state, classify_turn(turn, state))
            elif effect is Effect.DISPATCH_TOOLS:
                await self._dispatch(turn, conversation, state)
                t = self._advance(state, Event.TOOLS_COMPLETED)
            elif effect is Effect.SEND_TOOL_RESULTS:
                turn = await self._request(conversation, state)
                t = self._advance(state, classify_turn(turn, state))
            else:  # pragma: no cover - every Effect is handled above
                raise RuntimeError(f"Unhandled effect {effect}")

        return RunResult(
            outcome=(
                RunOutcome.FINISHED
                if state.phase is Phase.FINISHED
                else RunOutcome.ABORTED
            ),
            answer=answer,
            state=state.snapshot(),
            conversation=conversation.get_messages(),
        )

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    async def _request(self, conversation: Conversation, state: RunState) -> Message:
        state.model_calls += 1
        try:
            result = await self.client.request(conversation.get_messages())
        except ModelTransportError as e:
            logger.error("Model request %d failed: %s", state.model_calls, e)
            if self.wire:
                self.wire.send_error(str(e))
            raise
        message = result.message
        self._emit(
            EventType.MODEL_TURN,
            call=state.model_calls,
            text=message.text,
            tool_calls=[p.name for p in message.tool_call_parts],
        )
        return message

    async def _dispatch(
        self, turn: Message, conversation: Conversation, state: RunState
    ) -> None:
        """Admit and execute the turn's tool calls, one at a time.

        Admission happens before anything executes. Duplicates and unknown
        names are dropped without telling the model.
        """
        admitted: list[ToolCall] = []
        for call in turn.tool_calls:
            if state.dedup.admit(call.name):
                logger.info("Admitted tool call %s", call.name)
                admitted.append(call)
            elif state.dedup.is_used(call.name):
                logger.info("Ignoring duplicate tool call %s", call.name)
                self._emit(EventType.DUPLICATE_TOOL_CALL, id=call.id, name=call.name)
            else:
                logger.info("Ignoring call to unknown tool %s", call.name)

        conversation.append(turn.with_tool_calls([c.id for c in admitted]))

        for call in admitted:
            state.tool_calls += 1
            if self.wire:
                self.wire.send_tool_call(
                    call.id, call.name, _raw_arguments(turn, call.id)
                )
            content, is_error = await self.tools.dispatch(call)
            if is_error:
                logger.info("Tool %s reported an error: %s", call.name, content[:200])
            if self.wire:
                self.wire.send_tool_result(call.id, call.name, content, is_error)
            conversation.append(
                Message.tool_result_for(call.id, call.name, content, is_error)
            )

    def _record_reask(
        self, turn: Message, conversation: Conversation, state: RunState
    ) -> None:
        state.reasks += 1
        logger.info(
            "Turn was not final and requested nothing new; re-asking (%d/%d)",
            state.reasks,
            state.max_reasks,
        )
        for part in turn.tool_call_parts:
            if state.dedup.is_used(part.name):
                logger.info("Ignoring duplicate tool call %s", part.name)
                self._emit(EventType.DUPLICATE_TOOL_CALL, id=part.id, name=part.name)
            else:
                logger.info("Ignoring call to unknown tool %s", part.name)
        if turn.text:
            conversation.append(Message.assistant(turn.text))
        if self.wire:
            self.wire.send_reask(state.reasks, state.max_reasks)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _advance(self, state: RunState, event: Event) -> Transition:
        previous = state.phase
        t = state.advance(event)
        logger.debug(
            "%s --%s--> %s [%s]",
            previous.value,
            event.value,
            t.next_phase.value,
            t.effect.value,
        )
        if self.wire:
            self.wire.send_state(previous.value, t.next_phase.value, event.value)
        return t

    def _emit(self, type_: EventType, **data: object) -> None:
        if self.wire:
            self.wire.emit(type_, **data)


def _raw_arguments(turn: Message, call_id: str) -> str:
    for p in turn.tool_call_parts:
        if p.id == call_id:
            return p.arguments
    return ""
