"""Agent definition — loaded from YAML frontmatter in markdown files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from importlib import resources
from typing import Any

from packagent.agent.state import DEFAULT_MAX_REASKS


@dataclass
class AgentConfig:
    """Configuration for an agent, typically from YAML frontmatter."""

    name: str
    description: str = ""
    tools: list[str] = field(default_factory=list)
    max_reasks: int = DEFAULT_MAX_REASKS
    model: str | None = None  # Override model for this agent
    temperature: float | None = None


@dataclass
class Agent:
    """A configured agent ready to run.

    Agents are defined as markdown files with YAML frontmatter:

        ---
        name: packing
        description: Travel packing assistant
        tools: [fetch_weather, trip_context]
        max_reasks: 8
        ---

        You are a Packing Assistant...
    """

    config: AgentConfig
    system_prompt: str = ""

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def tools(self) -> list[str]:
        return self.config.tools

    @property
    def max_reasks(self) -> int:
        return self.config.max_reasks

    @classmethod
    def from_text(cls, content: str) -> Agent:
        config_dict, prompt = _parse_frontmatter(content)
        config = AgentConfig(**config_dict)
        return cls(config=config, system_prompt=prompt.strip())


def load_builtin_agent(name: str) -> Agent:
    """Load one of the agent definitions shipped in ``packagent/agents``."""
    content = (
        resources.files("packagent.agents").joinpath(f"{name}.md").read_text("utf-8")
    )
    return Agent.from_text(content)


def _parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML frontmatter from markdown content.

    Returns (config_dict, body_text).
    """
    import yaml  # lazy: only needed when loading agents

    pattern = re.compile(r"^---\s*\n(.*?)\n---\s*\n(.*)", re.DOTALL)
    match = pattern.match(content)

    if not match:
        return {}, content

    frontmatter = match.group(1)
    body = match.group(2)

    config = yaml.safe_load(frontmatter) or {}
    if not isinstance(config, dict):
        raise ValueError("Agent frontmatter must be a mapping")

    return config, body
