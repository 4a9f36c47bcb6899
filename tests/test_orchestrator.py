"""Tests for packagent.agent.orchestrator (end-to-end runs over scripted turns)."""

from __future__ import annotations

import asyncio
import json
from datetime import date
from typing import Any

import pytest

from packagent.agent.orchestrator import (
    Orchestrator,
    RunAbortedError,
    RunOutcome,
)
from packagent.agent.packing import build_tool_registry
from packagent.agent.state import Phase
from packagent.llm.generate import ModelClient
from packagent.llm.provider import ModelTransportError
from packagent.model.trip import TripRequest, TripType
from packagent.session.wire import EventType, Wire, WireEvent

TOOLS = ["fetch_weather", "trip_context"]

TRIP = TripRequest(
    city="Lisbon",
    start_date=date(2025, 6, 10),
    end_date=date(2025, 6, 12),
    trip_type=TripType.BEACH,
)

WEATHER_ARGS = {"city": "Lisbon", "startIso": "2025-06-10", "endIso": "2025-06-12"}
TRIP_ARGS = {"tripType": "beach", "days": 3}

FINAL_JSON = json.dumps(
    {
        "mustHave": ["passport"],
        "clothing": ["linen shirts"],
        "footwear": ["sandals"],
        "accessories": ["sunglasses"],
        "Toiletries": ["sunscreen"],
        "gadgets": [],
        "documents": ["ID"],
        "optional": [],
        "tips": ["pack a light rain jacket"],
        "weather": "City: Lisbon PT",
    }
)


def _orchestrator(
    provider: Any,
    weather_service: Any,
    max_reasks: int = 8,
    wire: Wire | None = None,
) -> Orchestrator:
    registry = build_tool_registry(weather_service)
    client = ModelClient(
        provider=provider,
        system_prompt="You are a Packing Assistant.",
        tools=registry.get_specs(),
    )
    return Orchestrator(
        client=client,
        tools=registry,
        tool_names=TOOLS,
        max_reasks=max_reasks,
        wire=wire,
    )


def _drain(queue: asyncio.Queue[WireEvent | None]) -> list[WireEvent]:
    events = []
    while not queue.empty():
        event = queue.get_nowait()
        if event is not None:
            events.append(event)
    return events


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestFinishedRun:
    async def test_two_tools_then_answer(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [
                scripted.calls(("trip_context", TRIP_ARGS)),
                scripted.calls(("fetch_weather", WEATHER_ARGS)),
                scripted.text("Here is your list:\n" + FINAL_JSON),
            ]
        )
        result = await _orchestrator(provider, weather_service).run(TRIP.seed_message())

        assert result.outcome is RunOutcome.FINISHED
        assert result.ok
        assert result.state.phase is Phase.FINISHED
        assert result.state.model_calls == 3
        assert result.state.tool_calls == 2
        assert result.state.reasks == 0
        assert result.state.used_tools == frozenset(TOOLS)

        assert result.answer is not None
        data = result.answer.data()
        assert data is not None
        assert "toiletries" in data and "Toiletries" not in data
        assert result.raise_for_outcome() is result.answer

        roles = [m.role for m in result.conversation]
        assert roles == ["user", "assistant", "tool", "assistant", "tool", "assistant"]

    async def test_tool_results_reach_the_model(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [
                scripted.calls(("trip_context", TRIP_ARGS)),
                scripted.calls(("fetch_weather", WEATHER_ARGS)),
                scripted.text(FINAL_JSON),
            ]
        )
        await _orchestrator(provider, weather_service).run(TRIP.seed_message())

        first = provider.requests[0]["messages"]
        assert first == [{"role": "user", "content": TRIP.seed_message()}]

        last = provider.requests[2]["messages"]
        tool_contents = [m["content"] for m in last if m["role"] == "tool"]
        assert tool_contents[0] == "Trip type: beach; Trip length (days): 3"
        assert tool_contents[1].startswith("City: Lisbon PT\nDaily:\n- 2025-06-10")
        assert weather_service.calls == [
            ("Lisbon", date(2025, 6, 10), date(2025, 6, 12))
        ]

    async def test_both_tools_in_one_turn(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [
                scripted.calls(
                    ("fetch_weather", WEATHER_ARGS), ("trip_context", TRIP_ARGS)
                ),
                scripted.text(FINAL_JSON),
            ]
        )
        result = await _orchestrator(provider, weather_service).run("seed")
        assert result.ok
        assert result.state.model_calls == 2
        assert result.state.tool_calls == 2
        # results follow their calls in issue order
        tool_names = [
            m.tool_result.name for m in result.conversation if m.tool_result is not None
        ]
        assert tool_names == ["fetch_weather", "trip_context"]

    async def test_answer_without_tools(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted([scripted.text(FINAL_JSON)])
        result = await _orchestrator(provider, weather_service).run("seed")
        assert result.ok
        assert result.state.model_calls == 1
        assert result.state.tool_calls == 0

    async def test_text_alongside_tool_call_is_not_final(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [
                scripted.calls(("trip_context", TRIP_ARGS), content=FINAL_JSON),
                scripted.text(FINAL_JSON),
            ]
        )
        result = await _orchestrator(provider, weather_service).run("seed")
        assert result.state.model_calls == 2
        assert result.state.tool_calls == 1


# ---------------------------------------------------------------------------
# Duplicate suppression
# ---------------------------------------------------------------------------


class TestDuplicates:
    async def test_duplicate_in_same_turn_and_later_turn(
        self, scripted: Any, weather_service: Any
    ) -> None:
        wire = Wire()
        queue = wire.subscribe()
        provider = scripted(
            [
                scripted.calls(
                    ("fetch_weather", WEATHER_ARGS), ("fetch_weather", WEATHER_ARGS)
                ),
                scripted.calls(("fetch_weather", WEATHER_ARGS)),
                scripted.calls(("trip_context", TRIP_ARGS)),
                scripted.text(FINAL_JSON),
            ]
        )
        result = await _orchestrator(provider, weather_service, wire=wire).run("seed")

        assert result.ok
        assert len(weather_service.calls) == 1
        assert result.state.tool_calls == 2
        assert result.state.reasks == 1
        assert result.state.model_calls == 4

        # the recorded turn keeps only the admitted call
        first_turn = result.conversation[1]
        assert [p.name for p in first_turn.tool_call_parts] == ["fetch_weather"]

        events = _drain(queue)
        duplicates = [e for e in events if e.type == EventType.DUPLICATE_TOOL_CALL]
        assert [e.data["name"] for e in duplicates] == ["fetch_weather"] * 2
        reasks = [e for e in events if e.type == EventType.REASK]
        assert [e.data["reasks"] for e in reasks] == [1]

    async def test_duplicate_is_not_reported_to_model(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [
                scripted.calls(("trip_context", TRIP_ARGS)),
                scripted.calls(("trip_context", TRIP_ARGS)),
                scripted.text(FINAL_JSON),
            ]
        )
        await _orchestrator(provider, weather_service).run("seed")

        # no tool-result turn was added for the repeated call
        third = provider.requests[2]["messages"]
        assert [m["role"] for m in third] == ["user", "assistant", "tool"]

    async def test_unknown_tool_reasks(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [
                scripted.calls(("book_hotel", {"city": "Lisbon"})),
                scripted.text(FINAL_JSON),
            ]
        )
        result = await _orchestrator(provider, weather_service).run("seed")
        assert result.ok
        assert result.state.reasks == 1
        assert result.state.tool_calls == 0
        assert result.state.used_tools == frozenset()


# ---------------------------------------------------------------------------
# Tool failure
# ---------------------------------------------------------------------------


class TestToolFailure:
    async def test_city_not_found_is_relayed(
        self, scripted: Any, weather_service: Any
    ) -> None:
        args = {**WEATHER_ARGS, "city": "Atlantis"}
        provider = scripted(
            [
                scripted.calls(("fetch_weather", args)),
                scripted.calls(("fetch_weather", args)),
                scripted.text(FINAL_JSON),
            ]
        )
        result = await _orchestrator(provider, weather_service).run("seed")

        assert result.ok
        assert "fetch_weather" in result.state.used_tools
        assert len(weather_service.calls) == 1
        tool_turn = result.conversation[2].tool_result
        assert tool_turn is not None
        assert tool_turn.is_error is True
        assert tool_turn.content == "City not found: Atlantis"

    async def test_invalid_arguments_still_use_the_tool(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [
                scripted.calls(("trip_context", {"tripType": "beach"})),
                scripted.text(FINAL_JSON),
            ]
        )
        result = await _orchestrator(provider, weather_service).run("seed")
        assert result.ok
        assert "trip_context" in result.state.used_tools
        tool_turn = result.conversation[2].tool_result
        assert tool_turn is not None
        assert tool_turn.content.startswith("Invalid parameters:")


# ---------------------------------------------------------------------------
# Re-ask cap
# ---------------------------------------------------------------------------


class TestAbort:
    async def test_aborts_after_eight_reasks(
        self, scripted: Any, weather_service: Any
    ) -> None:
        wire = Wire()
        queue = wire.subscribe()
        provider = scripted([scripted.text("Let me think about it...")] * 9)
        result = await _orchestrator(provider, weather_service, wire=wire).run("seed")

        assert result.outcome is RunOutcome.ABORTED
        assert not result.ok
        assert result.answer is None
        assert result.state.phase is Phase.ABORTED
        assert result.state.reasks == 8
        assert result.state.model_calls == 9
        with pytest.raises(RunAbortedError, match="8 re-asks"):
            result.raise_for_outcome()

        events = _drain(queue)
        assert events[-1].type == EventType.ABORTED
        assert events[-1].data == {"reasks": 8}

    async def test_reask_keeps_non_empty_text(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [scripted.text("thinking"), scripted.text(""), scripted.text(FINAL_JSON)]
        )
        result = await _orchestrator(provider, weather_service).run("seed")
        assert result.ok
        assert result.state.reasks == 2
        texts = [m.text for m in result.conversation if m.role == "assistant"]
        assert texts == ["thinking", FINAL_JSON]

    async def test_unbalanced_answer_is_reasked(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [scripted.text('{"mustHave": ["passport"]'), scripted.text(FINAL_JSON)]
        )
        result = await _orchestrator(provider, weather_service).run("seed")
        assert result.ok
        assert result.state.reasks == 1

    async def test_zero_cap(self, scripted: Any, weather_service: Any) -> None:

        provider = scripted([scripted.text("hmm")])
        orchestrator = _orchestrator(provider, weather_service, max_reasks=0)
        result = await orchestrator.run("seed")
        assert result.outcome is RunOutcome.ABORTED
        assert result.state.model_calls == 1

    async def test_fresh_call_is_served_after_cap(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [
                scripted.text("hmm"),
                scripted.calls(("trip_context", TRIP_ARGS)),
                scripted.text("still hmm"),
            ]
        )
        orchestrator = _orchestrator(provider, weather_service, max_reasks=1)
        result = await orchestrator.run("seed")
        assert result.outcome is RunOutcome.ABORTED
        assert result.state.tool_calls == 1
        assert result.state.model_calls == 3

    def test_negative_cap_rejected(self, scripted: Any, weather_service: Any) -> None:
        with pytest.raises(ValueError):
            _orchestrator(scripted([]), weather_service, max_reasks=-1)


# ---------------------------------------------------------------------------
# Transport failure
# ---------------------------------------------------------------------------


class TestTransportFailure:
    async def test_error_propagates(self, scripted: Any, weather_service: Any) -> None:
        wire = Wire()
        queue = wire.subscribe()
        provider = scripted(
            [
                scripted.calls(("trip_context", TRIP_ARGS)),
                ModelTransportError("connection refused"),
            ]
        )
        with pytest.raises(ModelTransportError, match="connection refused"):
            await _orchestrator(provider, weather_service, wire=wire).run("seed")

        events = _drain(queue)
        assert events[-1].type == EventType.ERROR
        assert events[-1].data["error"] == "connection refused"

    async def test_first_request_fails(
        self, scripted: Any, weather_service: Any
    ) -> None:
        wire = Wire()
        queue = wire.subscribe()
        provider = scripted([ModelTransportError("backend down")])
        with pytest.raises(ModelTransportError):
            await _orchestrator(provider, weather_service, wire=wire).run("seed")

        events = _drain(queue)
        assert [e.type for e in events] == [
            EventType.RUN_BEGIN,
            EventType.STATE,
            EventType.ERROR,
        ]
        assert events[1].data["to"] == "awaiting_model"
        assert provider.requests[0]["messages"][0]["content"] == "seed"

    async def test_runs_are_independent(
        self, scripted: Any, weather_service: Any
    ) -> None:
        provider = scripted(
            [
                scripted.calls(("trip_context", TRIP_ARGS)),
                scripted.text(FINAL_JSON),
                scripted.calls(("trip_context", TRIP_ARGS)),
                scripted.text(FINAL_JSON),
            ]
        )
        orchestrator = _orchestrator(provider, weather_service)
        first = await orchestrator.run("seed")
        second = await orchestrator.run("seed")
        assert first.state.tool_calls == second.state.tool_calls == 1
        assert len(second.conversation) == 4


# ---------------------------------------------------------------------------
# Wire trace
# ---------------------------------------------------------------------------


class TestWireTrace:
    async def test_state_events(self, scripted: Any, weather_service: Any) -> None:
        wire = Wire()
        queue = wire.subscribe()
        provider = scripted(
            [scripted.calls(("trip_context", TRIP_ARGS)), scripted.text(FINAL_JSON)]
        )
        await _orchestrator(provider, weather_service, wire=wire).run("seed")

        events = _drain(queue)
        assert events[0].type == EventType.RUN_BEGIN
        assert events[0].data == {"tools": TOOLS, "max_reasks": 8}
        states = [
            (e.data["from"], e.data["to"]) for e in events if e.type == EventType.STATE
        ]
        assert states == [
            ("start", "awaiting_model"),
            ("awaiting_model", "routing_turn"),
            ("routing_turn", "executing_tool"),
            ("executing_tool", "sending_tool_result"),
            ("sending_tool_result", "finished"),
        ]
        kinds = [e.type for e in events if e.type != EventType.STATE]
        assert kinds == [
            EventType.RUN_BEGIN,
            EventType.MODEL_TURN,
            EventType.TOOL_CALL,
            EventType.TOOL_RESULT,
            EventType.MODEL_TURN,
            EventType.FINAL_ANSWER,
        ]
