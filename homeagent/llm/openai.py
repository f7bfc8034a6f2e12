"""
OpenAI provider implementation.

This module implements the LLM provider interface for OpenAI's GPT models and
any OpenAI-compatible server (LM Studio, Ollama) reachable through ``base_url``.
"""

import json
import logging
from typing import Any

from openai import AsyncOpenAI

from homeagent.llm.models import LLMRequest, LLMResponse, Message, TokenUsage, ToolCall
from homeagent.llm.provider import LLMProviderBase

logger = logging.getLogger(__name__)

# Local servers ignore the key but the client requires one
PLACEHOLDER_API_KEY = "lm-studio"


class OpenAIProvider(LLMProviderBase):
    """OpenAI GPT / OpenAI-compatible provider."""

    def __init__(self, api_key: str | None, model_id: str, **kwargs: Any) -> None:
        super().__init__(api_key, model_id, **kwargs)
        self.client = AsyncOpenAI(
            api_key=api_key or PLACEHOLDER_API_KEY,
            base_url=kwargs.get("base_url"),
            default_headers=kwargs.get("default_headers") or None,
            timeout=kwargs.get("timeout", 60),
        )

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion using OpenAI API.

        Args:
            request: LLM request

        Returns:
            LLM response
        """
        messages = [self._convert_message(msg) for msg in request.messages]

        response = await self.client.chat.completions.create(
            model=self.model_id,
            messages=messages,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            stop=request.stop_sequences,
        )

        choice = response.choices[0]
        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage=self._usage(response),
            finish_reason=choice.finish_reason or "stop",
        )

    async def generate_with_tools(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion with function calling.

        Args:
            request: LLM request with tool schemas

        Returns:
            LLM response; ``tool_calls`` is populated from the message's
            function calls
        """
        messages = [self._convert_message(msg) for msg in request.messages]

        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "messages": messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.stop_sequences:
            kwargs["stop"] = request.stop_sequences
        if request.tools:
            kwargs["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool["name"],
                        "description": tool.get("description", ""),
                        "parameters": tool.get("input_schema")
                        or {"type": "object", "properties": {}},
                    },
                }
                for tool in request.tools
            ]
            if request.tool_choice:
                kwargs["tool_choice"] = request.tool_choice

        response = await self.client.chat.completions.create(**kwargs)

        choice = response.choices[0]
        tool_calls = [
            ToolCall(
                id=tc.id,
                name=tc.function.name,
                arguments=self._parse_arguments(tc.function.name, tc.function.arguments),
            )
            for tc in choice.message.tool_calls or []
        ]

        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage=self._usage(response),
            finish_reason=choice.finish_reason or "stop",
            tool_calls=tool_calls or None,
        )

    @staticmethod
    def _convert_message(msg: Message) -> dict[str, Any]:
        if msg.role == "tool":
            return {"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content}

        converted: dict[str, Any] = {"role": msg.role, "content": msg.content}
        if msg.tool_calls:
            converted["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                }
                for tc in msg.tool_calls
            ]
        return converted

    @staticmethod
    def _parse_arguments(tool_name: str, raw: str | None) -> dict[str, Any]:
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(
                f"Model sent malformed arguments for tool '{tool_name}'",
                extra={"tool_name": tool_name, "raw_arguments": raw},
            )
            return {}
        return parsed if isinstance(parsed, dict) else {}

    @staticmethod
    def _usage(response: Any) -> TokenUsage:
        usage = response.usage
        if usage is None:
            return TokenUsage(input_tokens=0, output_tokens=0, total_tokens=0)
        return TokenUsage(
            input_tokens=usage.prompt_tokens,
            output_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
        )
