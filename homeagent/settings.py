"""
homeagent.settings - Centralized Configuration

Single source of truth for all homeagent configuration.
Loads from .env files and environment variables using pydantic-settings.

Usage:
    >>> from homeagent.settings import get_settings
    >>> settings = get_settings()
    >>> settings.llm_base_url
    'http://localhost:1234/v1'

    >>> llm = LLMService(settings.build_llm_config())
    >>> engine = CommandEngine(registry, LLMPlanner(llm), policy=settings.build_policy())

MCP servers are configured as a JSON list, e.g.:

    HOMEAGENT_MCP_SERVERS='[{"name": "duckduckgo", "transport": "docker",
                             "command": ["run", "-i", "--rm", "mcp/duckduckgo"]}]'
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from homeagent.core.engine import ResiliencePolicy
from homeagent.core.tools.mcp_bridge import MCPServerConfig
from homeagent.llm.config import LLMConfig


class HomeAgentSettings(BaseSettings):
    """Centralized homeagent configuration loaded from .env / environment variables.

    All HOMEAGENT_* prefixed env vars are loaded automatically.
    API keys use standard names (no prefix) via aliases.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HOMEAGENT_",
        extra="ignore",
    )

    # -- Environment -----------------------------------------------------------
    env: str = "development"

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- LLM Defaults ----------------------------------------------------------
    llm_primary_model: str = "qwen3-coder-30b"
    llm_fallback_model: str | None = None
    # OpenAI-compatible endpoint (LM Studio by default); empty for api.openai.com
    llm_base_url: str | None = "http://localhost:1234/v1"
    llm_headers: dict[str, str] = Field(default_factory=dict)
    llm_temperature: float | None = None
    llm_max_tokens: int | None = None
    llm_timeout_seconds: int = 60

    # -- API Keys (standard names via alias, no HOMEAGENT_ prefix) -------------
    anthropic_api_key: str | None = Field(default=None, alias="ANTHROPIC_API_KEY")
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")

    # -- Command execution -----------------------------------------------------
    command_max_attempts: int = Field(default=3, ge=1)
    command_enable_validation: bool = False
    command_max_tool_rounds: int = Field(default=8, ge=1)
    command_initial_backoff_ms: int = Field(default=0, ge=0)

    # -- MCP servers -----------------------------------------------------------
    mcp_servers: list[MCPServerConfig] = Field(default_factory=list)
    mcp_concurrent_enumeration: bool = False

    # -- Helpers ---------------------------------------------------------------

    def has_llm_credentials(self) -> bool:
        """Return True if at least one LLM provider is reachable.

        A custom OpenAI-compatible endpoint (e.g. a local LM Studio server)
        counts, since it needs no key.
        """
        return bool(self.anthropic_api_key or self.openai_api_key or self.llm_base_url)

    def build_llm_config(self) -> LLMConfig:
        """Build an LLMConfig from server-level settings."""
        return LLMConfig(
            primary_model=self.llm_primary_model,
            fallback_model=self.llm_fallback_model,
            anthropic_api_key=self.anthropic_api_key,
            openai_api_key=self.openai_api_key,
            base_url=self.llm_base_url or None,
            default_headers=dict(self.llm_headers),
            temperature=self.llm_temperature,
            max_tokens=self.llm_max_tokens,
            timeout_seconds=self.llm_timeout_seconds,
        )

    def build_policy(self, **overrides: object) -> ResiliencePolicy:
        """Build the command retry policy; keyword overrides win (e.g. from CLI flags)."""
        values: dict[str, object] = {
            "max_attempts": self.command_max_attempts,
            "enable_validation": self.command_enable_validation,
            "max_tool_rounds": self.command_max_tool_rounds,
            "initial_backoff_ms": self.command_initial_backoff_ms,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ResiliencePolicy.model_validate(values)


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_settings() -> HomeAgentSettings:
    """Return the cached HomeAgentSettings singleton."""
    return HomeAgentSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
