"""
LLM provider configuration.

This module provides configuration for LLM providers and pre-configured model definitions.
"""

from pydantic import BaseModel, Field

from homeagent.llm.models import LLMModel, LLMProvider

# Pre-configured models
MODELS = {
    # Local OpenAI-compatible server (LM Studio / Ollama)
    "qwen3-coder-30b": LLMModel(
        provider=LLMProvider.OPENAI,
        model_id="qwen/qwen3-coder-30b",
        max_tokens=4096,
        temperature=0.2,
    ),
    # Anthropic Claude
    "claude-sonnet-4": LLMModel(
        provider=LLMProvider.ANTHROPIC,
        model_id="claude-sonnet-4-20250514",
        max_tokens=8192,
        temperature=0.7,
    ),
    # OpenAI GPT
    "gpt-4o": LLMModel(
        provider=LLMProvider.OPENAI,
        model_id="gpt-4o",
        max_tokens=4096,
        temperature=0.7,
    ),
    "gpt-4o-mini": LLMModel(
        provider=LLMProvider.OPENAI,
        model_id="gpt-4o-mini",
        max_tokens=4096,
        temperature=0.7,
    ),
}


def resolve_model(name: str) -> LLMModel:
    """
    Look up a model by its configured key.

    Names that are not pre-configured are treated as model ids served by an
    OpenAI-compatible endpoint (e.g. whatever LM Studio has loaded).

    Args:
        name: Key in MODELS or a raw model id

    Returns:
        Model definition
    """
    model = MODELS.get(name)
    if model is not None:
        return model
    return LLMModel(provider=LLMProvider.OPENAI, model_id=name)


class LLMConfig(BaseModel):
    """LLM configuration."""

    # Primary model (plans tool calls and answers)
    primary_model: str = "qwen3-coder-30b"

    # Fallback model (different provider for redundancy)
    fallback_model: str | None = None

    # API keys (exclude from serialization for security)
    anthropic_api_key: str | None = Field(default=None, exclude=True)
    openai_api_key: str | None = Field(default=None, exclude=True)

    # OpenAI-compatible endpoint; None means api.openai.com
    base_url: str | None = "http://localhost:1234/v1"
    default_headers: dict[str, str] = Field(default_factory=dict)

    # Generation settings
    temperature: float | None = Field(
        default=None, ge=0.0, le=2.0, description="Overrides the model's default temperature"
    )
    max_tokens: int | None = Field(
        default=None, gt=0, description="Overrides the model's default max_tokens"
    )

    # Performance settings
    timeout_seconds: int = 60
