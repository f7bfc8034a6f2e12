"""
homeagent.llm - Multi-provider LLM service.

This package provides a unified interface for working with multiple LLM providers
(a local OpenAI-compatible server, OpenAI, Anthropic) with automatic fallback.

Example:
    >>> from homeagent.llm import LLMService
    >>> from homeagent.llm.config import LLMConfig
    >>>
    >>> config = LLMConfig(
    ...     primary_model="qwen3-coder-30b",
    ...     base_url="http://localhost:1234/v1",
    ...     fallback_model="claude-sonnet-4",
    ...     anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
    ... )
    >>> llm = LLMService(config)
    >>>
    >>> # Generate text
    >>> response = await llm.generate("Is the kitchen light on?")
    >>> print(response.content)
    >>>
    >>> # Let the model call tools
    >>> response = await llm.generate_with_tools(messages, tools=registry.tool_schemas(context))
    >>> for call in response.tool_calls or []:
    ...     print(call.name, call.arguments)
"""

import logging
from typing import Any

from homeagent.llm.config import MODELS, LLMConfig, resolve_model
from homeagent.llm.models import LLMModel, LLMRequest, LLMResponse, Message
from homeagent.llm.provider import LLMProviderBase, LLMProviderFactory

logger = logging.getLogger(__name__)


class LLMService:
    """
    Multi-provider LLM service with fallback.

    This service provides a unified interface for working with multiple LLM providers.
    It automatically falls back to a secondary provider if the primary fails.

    Attributes:
        config: LLM configuration
        primary: Primary LLM provider
        fallback: Fallback LLM provider (optional)
        requests_count: Total number of successful requests made
    """

    def __init__(self, config: LLMConfig):
        """
        Initialize LLM service.

        Args:
            config: LLM configuration
        """
        self.config = config

        self.primary_model = resolve_model(config.primary_model)
        self.primary = self._create_provider(self.primary_model)

        self.fallback_model: LLMModel | None = None
        self.fallback: LLMProviderBase | None = None
        if config.fallback_model:
            self.fallback_model = resolve_model(config.fallback_model)
            self.fallback = self._create_provider(self.fallback_model)

        self.requests_count = 0

    def _create_provider(self, model: LLMModel) -> LLMProviderBase:
        """
        Create provider instance.

        Args:
            model: Model definition

        Returns:
            Configured provider instance
        """
        provider = model.provider.value
        if provider == "anthropic":
            return LLMProviderFactory.create(
                provider="anthropic",
                api_key=self.config.anthropic_api_key,
                model_id=model.model_id,
                default_headers=self.config.default_headers,
                timeout=self.config.timeout_seconds,
            )
        if provider == "openai":
            return LLMProviderFactory.create(
                provider="openai",
                api_key=self.config.openai_api_key,
                model_id=model.model_id,
                base_url=self.config.base_url,
                default_headers=self.config.default_headers,
                timeout=self.config.timeout_seconds,
            )
        raise ValueError(
            f"Unsupported LLM provider: {provider}. Supported providers: anthropic, openai"
        )

    def _request(
        self,
        messages: list[Message],
        max_tokens: int | None,
        temperature: float | None,
        **kwargs: Any,
    ) -> LLMRequest:
        return LLMRequest(
            messages=messages,
            max_tokens=max_tokens or self.config.max_tokens or self.primary_model.max_tokens,
            temperature=(
                temperature
                if temperature is not None
                else (
                    self.config.temperature
                    if self.config.temperature is not None
                    else self.primary_model.temperature
                )
            ),
            **kwargs,
        )

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """
        Generate completion.

        Automatically falls back to secondary provider if primary fails.

        Args:
            prompt: User prompt
            system: System message (optional)
            max_tokens: Maximum tokens to generate (defaults from config/model)
            temperature: Sampling temperature (0.0-2.0, defaults from config/model)

        Returns:
            LLM response

        Example:
            >>> response = await llm.generate(
            ...     "Respond only with Yes or No. ...",
            ...     system="You are a strict reviewer",
            ... )
            >>> print(response.content)
        """
        messages = []
        if system:
            messages.append(Message(role="system", content=system))
        messages.append(Message(role="user", content=prompt))

        request = self._request(messages, max_tokens, temperature)

        try:
            response = await self.primary.generate(request)
            self.requests_count += 1
            return response

        except Exception as e:
            logger.error(f"Primary provider failed: {e}")

            if self.fallback:
                logger.info("Falling back to secondary provider")
                response = await self.fallback.generate(request)
                self.requests_count += 1
                return response
            raise

    async def generate_with_tools(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]],
        tool_choice: str | None = "auto",
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """
        Generate a completion that may call tools.

        Automatically falls back to secondary provider if primary fails.

        Args:
            messages: Conversation so far (may include tool calls/results)
            tools: Tool schemas ({name, description, input_schema})
            tool_choice: "auto", "any", "none" or a specific tool name
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature

        Returns:
            LLM response with ``tool_calls`` or final ``content``

        Example:
            >>> response = await llm.generate_with_tools(
            ...     [Message(role="user", content="Turn on the kitchen lights")],
            ...     tools=registry.tool_schemas(context),
            ... )
        """
        request = self._request(
            messages,
            max_tokens,
            temperature,
            tools=tools or None,
            tool_choice=tool_choice if tools else None,
        )

        try:
            response = await self.primary.generate_with_tools(request)
            self.requests_count += 1
            return response

        except Exception as e:
            logger.error(f"Primary provider failed: {e}")

            if self.fallback:
                logger.info("Falling back to secondary provider")
                response = await self.fallback.generate_with_tools(request)
                self.requests_count += 1
                return response
            raise


# Export main classes
__all__ = [
    "MODELS",
    "LLMConfig",
    "LLMService",
    "LLMProviderFactory",
]
