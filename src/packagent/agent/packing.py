"""Packing agent assembly — wires config, tools, model and orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from packagent.agent.agent import Agent, load_builtin_agent
from packagent.agent.orchestrator import Orchestrator, RunResult
from packagent.config import PackagentConfig
from packagent.llm.generate import ModelClient
from packagent.llm.provider import ChatProvider, create_provider
from packagent.model.trip import TripRequest
from packagent.session.wire import Wire
from packagent.tool.builtin import TripContextTool, WeatherTool
from packagent.tool.registry import ToolRegistry
from packagent.weather import WeatherService

logger = logging.getLogger(__name__)


@dataclass
class PackingSetup:
    """Everything one packing run needs."""

    agent: Agent
    provider: ChatProvider
    tool_registry: ToolRegistry
    orchestrator: Orchestrator


def build_tool_registry(weather_service: WeatherService) -> ToolRegistry:
    return ToolRegistry([WeatherTool(weather_service), TripContextTool()])


def setup_packing_agent(
    config: PackagentConfig,
    provider: ChatProvider | None = None,
    weather_client: httpx.AsyncClient | None = None,
    wire: Wire | None = None,
) -> PackingSetup:
    """Build the packing orchestrator.

    Raises:
        MissingCredentialError: no weather API key is configured.
    """
    agent = load_builtin_agent("packing")

    weather_service = WeatherService(
        api_key=config.require_weather_key(),
        base_url=config.weather.base_url,
        timeout=config.weather.timeout,
        units=config.weather.units,
        client=weather_client,
    )
    tool_registry = build_tool_registry(weather_service).subset(agent.tools)

    if provider is None:
        provider = create_provider(
            model=agent.config.model or config.llm.litellm_model,
            api_base=config.llm.api_base,
            temperature=(
                agent.config.temperature
                if agent.config.temperature is not None
                else config.llm.temperature
            ),
            max_tokens=config.llm.max_tokens,
            capabilities=tuple(config.llm.capabilities),
        )

    client = ModelClient(
        provider=provider,
        system_prompt=agent.system_prompt,
        tools=tool_registry.get_specs(),
    )

    max_reasks = (
        config.agent.max_reasks
        if config.agent.max_reasks is not None
        else agent.max_reasks
    )
    orchestrator = Orchestrator(
        client=client,
        tools=tool_registry,
        tool_names=agent.tools,
        max_reasks=max_reasks,
        wire=wire,
    )
    logger.debug(
        "Packing agent ready: model=%s tools=%s max_reasks=%d",
        provider.config.model,
        tool_registry.names(),
        max_reasks,
    )
    return PackingSetup(
        agent=agent,
        provider=provider,
        tool_registry=tool_registry,
        orchestrator=orchestrator,
    )


async def plan_packing(
    trip: TripRequest,
    config: PackagentConfig,
    provider: ChatProvider | None = None,
    weather_client: httpx.AsyncClient | None = None,
    wire: Wire | None = None,
) -> RunResult:
    """Run the packing agent for one trip."""
    setup = setup_packing_agent(
        config, provider=provider, weather_client=weather_client, wire=wire
    )
    return await setup.orchestrator.run(trip.seed_message())
