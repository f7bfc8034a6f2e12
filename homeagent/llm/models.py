"""
Shared LLM models and types.

This module defines common data models used across all LLM providers,
including the tool-calling shapes exchanged with the command engine.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class LLMModel(BaseModel):
    """LLM model configuration."""

    provider: LLMProvider
    model_id: str  # e.g., "claude-sonnet-4-20250514", "gpt-4o", "qwen/qwen3-coder-30b"
    max_tokens: int = 4096
    temperature: float = 0.7


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str = Field(..., description="Provider-assigned call id, echoed back in the tool message")
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """Chat message."""

    role: Literal["system", "user", "assistant", "tool"]
    content: str

    # Assistant turns that request tools
    tool_calls: list[ToolCall] | None = None

    # Tool result turns
    tool_call_id: str | None = None

    @model_validator(mode="after")
    def _check_tool_fields(self) -> "Message":
        if self.role == "tool":
            if not self.tool_call_id:
                raise ValueError("tool messages must have tool_call_id")
            if self.tool_calls:
                raise ValueError("tool messages cannot have tool_calls")
            return self

        if self.tool_calls and self.role != "assistant":
            raise ValueError(f"{self.role} messages cannot have tool_calls")
        if self.tool_call_id is not None:
            raise ValueError(f"{self.role} messages cannot have tool_call_id")
        return self


class LLMRequest(BaseModel):
    """LLM generation request."""

    messages: list[Message]
    max_tokens: int = 4096
    temperature: float = 0.7
    stop_sequences: list[str] | None = None

    # Tool calling (optional); schemas use {name, description, input_schema}
    tools: list[dict[str, Any]] | None = None
    tool_choice: str | None = None


class TokenUsage(BaseModel):
    """Token usage tracking."""

    input_tokens: int
    output_tokens: int
    total_tokens: int


class LLMResponse(BaseModel):
    """LLM generation response."""

    content: str
    model: str
    usage: TokenUsage
    finish_reason: str

    tool_calls: list[ToolCall] | None = None
