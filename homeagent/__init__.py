"""
homeagent - Tool-Orchestrating Home Assistant

Executes natural-language home commands with an LLM planner that can call
local device tools and tools on external MCP servers.

This package provides:
1. Tool registry unifying local and MCP tool providers
2. Total normalization of heterogeneous tool results into text
3. Command engine with bounded retry and optional yes/no self-validation
4. Multi-provider LLM service (LM Studio / OpenAI / Anthropic)

Example:
    >>> from homeagent import CommandEngine, Device, LocalToolProvider, ToolRegistry
    >>> from homeagent.core.planner import LLMPlanner
    >>> from homeagent.llm import LLMService
    >>> from homeagent.settings import get_settings

    >>> devices = [Device(name="Kitchen lights"), Device(name="TV")]
    >>> registry = ToolRegistry(LocalToolProvider(devices))
    >>> llm = LLMService(get_settings().build_llm_config())
    >>> engine = CommandEngine(registry, LLMPlanner(llm))
    >>> response = await engine.execute_command("Turn on the kitchen lights", devices)

Architecture:
    - core.tools: providers, registry, normalizer, MCP bridge
    - core.engine: resilience wrapper around planner and validator
    - llm: model providers with fallback and tool calling
    - utils: model output cleanup, friendly error messages
"""

__version__ = "0.1.0"

from homeagent.core.engine import CommandEngine, ResiliencePolicy
from homeagent.core.tools import LocalToolProvider, ProviderConnectionSet, ToolRegistry, normalize
from homeagent.core.trace import TraceEvent, TraceEventKind, TraceLog
from homeagent.models import CommandResponse, Device, DeviceAction

__all__ = [
    "CommandEngine",
    "CommandResponse",
    "Device",
    "DeviceAction",
    "LocalToolProvider",
    "ProviderConnectionSet",
    "ResiliencePolicy",
    "ToolRegistry",
    "TraceEvent",
    "TraceEventKind",
    "TraceLog",
    "normalize",
]
