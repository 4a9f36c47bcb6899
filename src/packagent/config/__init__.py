"""Configuration — Pydantic models for packagent settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from packagent.weather.service import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

WEATHER_KEY_ENV = "OPENWEATHER_API_KEY"
OLLAMA_PREFIX = "ollama_chat/"


class MissingCredentialError(Exception):
    """A required credential is not configured."""

    def __init__(self, env_var: str) -> None:
        self.env_var = env_var
        super().__init__(f"Missing env var: {env_var}")


class LLMConfig(BaseModel):
    """Text-generation backend configuration.

    Model names use litellm's provider-prefix format. A bare Ollama model
    name (``llama3.1:8b``) is routed to ``ollama_chat/`` at ``base_url``.
    """

    model: str = Field(default="llama3.1:8b")
    base_url: str | None = Field(
        default="http://localhost:11434",
        description="Backend base URL (the Ollama server for local models)",
    )
    temperature: float | None = Field(default=None)
    max_tokens: int | None = Field(default=None)
    capabilities: list[str] = Field(
        default_factory=lambda: ["completion", "tools"],
        description="Declared model capabilities; 'tools' enables tool calling",
    )

    @property
    def litellm_model(self) -> str:
        if "/" in self.model.split(":", 1)[0]:
            return self.model
        return f"{OLLAMA_PREFIX}{self.model}"

    @property
    def api_base(self) -> str | None:
        """``base_url`` for Ollama models; hosted providers use their default."""
        if self.litellm_model.startswith("ollama"):
            return self.base_url
        return None


class WeatherConfig(BaseModel):
    """Weather source (OpenWeatherMap) configuration."""

    api_key: str | None = Field(default=None, repr=False)
    base_url: str = Field(default=DEFAULT_BASE_URL)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    units: str = Field(default="metric")


class AgentRunConfig(BaseModel):
    """Orchestration settings."""

    max_reasks: int | None = Field(
        default=None,
        ge=0,
        description=(
            "Re-ask cycles allowed before a run is declared non-convergent "
            "(default: the agent definition's max_reasks)"
        ),
    )


class PackagentConfig(BaseModel):
    """Top-level packagent configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    weather: WeatherConfig = Field(default_factory=WeatherConfig)
    agent: AgentRunConfig = Field(default_factory=AgentRunConfig)

    def require_weather_key(self) -> str:
        key = (self.weather.api_key or "").strip()
        if not key:
            raise MissingCredentialError(WEATHER_KEY_ENV)
        return key

    @classmethod
    def load(
        cls, config_path: str | None = None, load_env_file: bool = True
    ) -> PackagentConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            OPENWEATHER_API_KEY    - Weather source API key (required to run)
            OLLAMA_BASE_URL        - Backend base URL
            OLLAMA_MODEL           - Model name (bare Ollama name or litellm format)
            PACKAGENT_TEMPERATURE  - Sampling temperature
            PACKAGENT_MAX_REASKS   - Re-ask cap
        """
        # override=True so an edited .env wins over stale shell exports
        if load_env_file:
            load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path, encoding="utf-8") as f:
                config_data = json.load(f)

        llm = config_data.get("llm", {})
        weather = config_data.get("weather", {})
        agent = config_data.get("agent", {})

        env_model = os.environ.get("OLLAMA_MODEL")
        if env_model:
            llm["model"] = env_model

        env_base_url = os.environ.get("OLLAMA_BASE_URL")
        if env_base_url:
            llm["base_url"] = env_base_url

        env_temperature = os.environ.get("PACKAGENT_TEMPERATURE")
        if env_temperature:
            llm["temperature"] = float(env_temperature)

        env_key = os.environ.get(WEATHER_KEY_ENV)
        if env_key:
            weather["api_key"] = env_key

        env_max_reasks = os.environ.get("PACKAGENT_MAX_REASKS")
        if env_max_reasks:
            agent["max_reasks"] = int(env_max_reasks)

        if llm:
            config_data["llm"] = llm
        if weather:
            config_data["weather"] = weather
        if agent:
            config_data["agent"] = agent

        return cls.model_validate(config_data)
