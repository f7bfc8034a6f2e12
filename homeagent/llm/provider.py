"""
Abstract LLM provider interface.

This module defines the base interface that all LLM providers must implement.
"""

from abc import ABC, abstractmethod
from typing import Any

from homeagent.llm.models import LLMRequest, LLMResponse


class LLMProviderBase(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, api_key: str | None, model_id: str, **kwargs: Any) -> None:
        self.api_key = api_key
        self.model_id = model_id
        self.kwargs = kwargs

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion.

        Args:
            request: LLM request with messages and parameters

        Returns:
            LLM response with content and metadata
        """

    @abstractmethod
    async def generate_with_tools(self, request: LLMRequest) -> LLMResponse:
        """
        Generate a completion that may request tool calls.

        Args:
            request: LLM request; ``request.tools`` holds the tool schemas
                ({name, description, input_schema}) and the conversation may
                contain assistant tool_calls and tool result messages

        Returns:
            LLM response whose ``tool_calls`` is set when the model wants
            tools invoked, otherwise the final ``content``
        """


class LLMProviderFactory:
    """Factory for creating LLM providers."""

    @staticmethod
    def create(provider: str, api_key: str | None, model_id: str, **kwargs: Any) -> LLMProviderBase:
        """
        Create LLM provider.

        Args:
            provider: Provider name ("anthropic", "openai")
            api_key: API key for provider
            model_id: Model identifier
            **kwargs: Additional provider-specific config
                For openai: base_url, default_headers, timeout

        Returns:
            Configured LLM provider instance

        Raises:
            ValueError: If provider is unknown
        """
        from homeagent.llm.anthropic import AnthropicProvider
        from homeagent.llm.openai import OpenAIProvider

        providers: dict[str, type[LLMProviderBase]] = {
            "anthropic": AnthropicProvider,
            "openai": OpenAIProvider,
        }

        if provider not in providers:
            raise ValueError(
                f"Unknown provider: {provider}. Supported providers: {', '.join(providers.keys())}"
            )

        return providers[provider](api_key=api_key, model_id=model_id, **kwargs)
