"""
Anthropic Claude provider implementation.

This module implements the LLM provider interface for Anthropic's Claude models.
"""

from typing import Any

from anthropic import AsyncAnthropic

from homeagent.llm.models import LLMRequest, LLMResponse, Message, TokenUsage, ToolCall
from homeagent.llm.provider import LLMProviderBase


class AnthropicProvider(LLMProviderBase):
    """Anthropic Claude provider."""

    def __init__(self, api_key: str | None, model_id: str, **kwargs: Any) -> None:
        super().__init__(api_key, model_id, **kwargs)
        self.client = AsyncAnthropic(
            api_key=api_key,
            default_headers=kwargs.get("default_headers") or None,
            timeout=kwargs.get("timeout", 60),
        )

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion using Anthropic API.

        Args:
            request: LLM request

        Returns:
            LLM response
        """
        system_message, messages = self._convert_messages(request.messages)

        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": messages,
        }
        if system_message:
            kwargs["system"] = system_message
        if request.stop_sequences:
            kwargs["stop_sequences"] = request.stop_sequences

        response = await self.client.messages.create(**kwargs)
        return self._to_response(response)

    async def generate_with_tools(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion with tool use.

        Assistant tool_calls become ``tool_use`` blocks and tool messages
        become ``tool_result`` blocks inside user turns.

        Args:
            request: LLM request with tool schemas

        Returns:
            LLM response; ``tool_calls`` is populated from tool_use blocks
        """
        system_message, messages = self._convert_messages(request.messages)

        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": messages,
        }
        if system_message:
            kwargs["system"] = system_message
        if request.stop_sequences:
            kwargs["stop_sequences"] = request.stop_sequences
        if request.tools:
            kwargs["tools"] = [
                {
                    "name": tool["name"],
                    "description": tool.get("description", ""),
                    "input_schema": tool.get("input_schema")
                    or {"type": "object", "properties": {}},
                }
                for tool in request.tools
            ]
            if request.tool_choice in ("auto", "any"):
                kwargs["tool_choice"] = {"type": request.tool_choice}
            elif request.tool_choice and request.tool_choice != "none":
                kwargs["tool_choice"] = {"type": "tool", "name": request.tool_choice}

        response = await self.client.messages.create(**kwargs)
        return self._to_response(response)

    @staticmethod
    def _convert_messages(messages: list[Message]) -> tuple[str | None, list[dict[str, Any]]]:
        """Split out the system prompt and convert turns to Anthropic blocks."""
        system_message = None
        converted: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == "system":
                system_message = msg.content
                continue

            if msg.role == "tool":
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id,
                    "content": msg.content,
                }
                # Consecutive tool results share one user turn
                previous = converted[-1] if converted else None
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and all(b.get("type") == "tool_result" for b in previous["content"])
                ):
                    previous["content"].append(block)
                else:
                    converted.append({"role": "user", "content": [block]})
                continue

            if msg.role == "assistant" and msg.tool_calls:
                blocks: list[dict[str, Any]] = []
                if msg.content:
                    blocks.append({"type": "text", "text": msg.content})
                blocks.extend(
                    {"type": "tool_use", "id": tc.id, "name": tc.name, "input": tc.arguments}
                    for tc in msg.tool_calls
                )
                converted.append({"role": "assistant", "content": blocks})
                continue

            converted.append({"role": msg.role, "content": msg.content})

        return system_message, converted

    @staticmethod
    def _to_response(response: Any) -> LLMResponse:
        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {}))
                )

        return LLMResponse(
            content="".join(text_parts),
            model=response.model,
            usage=TokenUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            ),
            finish_reason=response.stop_reason or "end_turn",
            tool_calls=tool_calls or None,
        )
