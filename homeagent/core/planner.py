"""
homeagent.core.planner - Planner and Validator Collaborators

The command engine does not talk to a model directly. It drives a Planner,
which turns the conversation so far into either tool-call requests or a
final answer, and optionally a Validator, which judges whether a final
answer makes sense.

Two planning strategies are provided:
- LLMPlanner: native tool calling through LLMService.generate_with_tools
- JsonActionPlanner: asks for a JSON list of device actions and replays
  them as ExecuteDeviceAction calls (for models without tool calling)
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import ValidationError

from homeagent.core.tools.base import ToolDescriptor
from homeagent.core.tools.local import EXECUTE_DEVICE_ACTION
from homeagent.exceptions import PlannerResponseError
from homeagent.llm.models import LLMResponse, Message, TokenUsage, ToolCall
from homeagent.models import Device, DeviceAction
from homeagent.utils.json_cleanup import clean_json_array

if TYPE_CHECKING:
    from homeagent.llm import LLMService

logger = logging.getLogger(__name__)

# Speak actions may omit the device
DEFAULT_SPEAKER = "Speaker"

VALIDATION_SYSTEM_PROMPT = (
    "Respond only with Yes or No if the response makes sense based on original system "
    "prompt, user input and LLM's response.\n"
    "Do not hallucinate.\n"
    "Response example: Yes"
)


# ============================================================================
# Prompts
# ============================================================================


def build_system_prompt(devices: Sequence[Device], tools: Sequence[ToolDescriptor]) -> str:
    """
    Default instructions for a tool-calling planner.

    Args:
        devices: Devices the user can control
        tools: Tools enumerated for this attempt

    Returns:
        System prompt text
    """
    device_list = ", ".join(d.name for d in devices) or "none"
    tool_list = ", ".join(t.name for t in tools) or "none"
    return (
        "You're a smart home assistant with tool calling capabilities. "
        f"Available devices: {device_list}. "
        f"Available tools: {tool_list}. "
        f"Control local devices using {EXECUTE_DEVICE_ACTION} "
        "(actions: 'On', 'Off', 'Set' with value for temperature, 'Speak' with text). "
        "Use the other tools for current information such as news, weather or transcripts. "
        "For multiple actions, call tools multiple times. "
        "Always explain what you're doing."
    )


def build_json_system_prompt(devices: Sequence[Device]) -> str:
    """Instructions asking for a bare JSON list of device actions."""
    device_list = ", ".join(d.name for d in devices)
    return (
        f"You're a home assistant AI. Here are the list of supported devices: {device_list}. "
        "Available commands: On, Off, Speak, Set\n"
        "You always reply only with a JSON response with a list of commands, "
        "do not add any additional text. Example: \n"
        "```json"
        '[{ "Device": "TV", "Action": "On" }, {"Action": "Speak", "Text": "Dinner is ready"}, '
        '{"Action": "Set", "Device": "A/C", "Value": 18 }]'
        "```"
    )


# ============================================================================
# Protocols
# ============================================================================


@runtime_checkable
class Planner(Protocol):
    """
    Produces the next turn of a command conversation.

    ``next_turn`` returns an LLMResponse carrying ``tool_calls`` when tools
    should be invoked, otherwise the final answer in ``content``. Any
    exception it raises fails the current attempt.
    """

    def system_prompt(self, devices: Sequence[Device], tools: Sequence[ToolDescriptor]) -> str:
        """Default system prompt when the caller supplies none."""
        ...

    async def next_turn(self, messages: list[Message], tools: list[dict[str, Any]]) -> LLMResponse:
        """
        Args:
            messages: Conversation so far (system, user, assistant, tool)
            tools: Planner-facing tool schemas

        Returns:
            Tool-call request or final answer
        """
        ...


@runtime_checkable
class Validator(Protocol):
    """Judges whether an answer makes sense for a command."""

    async def judge(self, command: str, system_prompt: str, answer: str) -> bool | None:
        """
        Returns:
            True (makes sense), False (does not) or None (verdict unparseable)
        """
        ...


# ============================================================================
# Tool-calling planner
# ============================================================================


class LLMPlanner:
    """
    Planner backed by native model tool calling.

    Example:
        >>> planner = LLMPlanner(LLMService(config))
        >>> turn = await planner.next_turn(messages, registry.tool_schemas(context))
    """

    def __init__(self, llm: LLMService, tool_choice: str = "auto") -> None:
        self.llm = llm
        self.tool_choice = tool_choice

    def system_prompt(self, devices: Sequence[Device], tools: Sequence[ToolDescriptor]) -> str:
        return build_system_prompt(devices, tools)

    async def next_turn(self, messages: list[Message], tools: list[dict[str, Any]]) -> LLMResponse:
        return await self.llm.generate_with_tools(
            messages=messages,
            tools=tools,
            tool_choice=self.tool_choice,
        )


# ============================================================================
# JSON action planner
# ============================================================================


def parse_device_actions(text: str | None) -> list[DeviceAction]:
    """
    Parse raw model output into device actions.

    Args:
        text: Model reply (may be fenced, chatty or missing brackets)

    Returns:
        Parsed actions

    Raises:
        PlannerResponseError: If no JSON list of actions can be recovered
    """
    cleaned = clean_json_array(text)
    if cleaned is None:
        raise PlannerResponseError("Incorrect response from chat API")

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise PlannerResponseError(f"Model reply is not a JSON list of actions: {e}") from e

    try:
        return [DeviceAction.model_validate(item) for item in payload if item]
    except ValidationError as e:
        raise PlannerResponseError(f"Model reply contains an invalid action: {e}") from e


class JsonActionPlanner:
    """
    Planner for models without tool calling.

    The first turn asks the model for a JSON list of device actions and
    returns them as ExecuteDeviceAction tool calls. Once their results come
    back, the cleaned JSON is returned as the final answer.

    Example:
        >>> planner = JsonActionPlanner(LLMService(config))
        >>> turn = await planner.next_turn(messages, tools)
        >>> [call.arguments["action"] for call in turn.tool_calls]
        ['On']
    """

    def __init__(self, llm: LLMService) -> None:
        self.llm = llm

    def system_prompt(self, devices: Sequence[Device], tools: Sequence[ToolDescriptor]) -> str:
        return build_json_system_prompt(devices)

    async def next_turn(self, messages: list[Message], tools: list[dict[str, Any]]) -> LLMResponse:
        if messages and messages[-1].role == "tool":
            return self._final_answer(messages)

        system = next((m.content for m in messages if m.role == "system"), None)
        prompt = next((m.content for m in reversed(messages) if m.role == "user"), "")

        response = await self.llm.generate(prompt, system=system)
        actions = parse_device_actions(response.content)
        cleaned = clean_json_array(response.content) or "[]"

        if not actions:
            return response.model_copy(update={"content": cleaned, "tool_calls": None})

        tool_calls = [
            ToolCall(
                id=f"action_{index}",
                name=EXECUTE_DEVICE_ACTION,
                arguments=self._arguments(action),
            )
            for index, action in enumerate(actions, start=1)
        ]
        return response.model_copy(update={"content": cleaned, "tool_calls": tool_calls})

    @staticmethod
    def _arguments(action: DeviceAction) -> dict[str, Any]:
        device = action.device
        if not device and action.action.lower() == "speak":
            device = DEFAULT_SPEAKER
        arguments: dict[str, Any] = {"deviceName": device, "action": action.action}
        if action.value is not None:
            arguments["value"] = action.value
        if action.text:
            arguments["text"] = action.text
        return arguments

    @staticmethod
    def _final_answer(messages: list[Message]) -> LLMResponse:
        planned = next((m for m in reversed(messages) if m.role == "assistant"), None)
        return LLMResponse(
            content=planned.content if planned is not None else "[]",
            model="json-actions",
            usage=TokenUsage(input_tokens=0, output_tokens=0, total_tokens=0),
            finish_reason="stop",
        )


# ============================================================================
# Validator
# ============================================================================

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_WORD = re.compile(r"[a-z]+")


def parse_verdict(text: str | None) -> bool | None:
    """
    Read a yes/no verdict from the leading word of a reply.

    Example:
        >>> parse_verdict("Yes.")
        True
        >>> parse_verdict("**No**, the TV is not a device")
        False
        >>> parse_verdict("Maybe") is None
        True
    """
    if not text:
        return None
    match = _WORD.search(_THINK_BLOCK.sub("", text).lower())
    if match is None:
        return None
    word = match.group(0)
    if word == "yes":
        return True
    if word == "no":
        return False
    return None


class LLMValidator:
    """Asks the model whether an answer makes sense for the command."""

    def __init__(self, llm: LLMService) -> None:
        self.llm = llm

    async def judge(self, command: str, system_prompt: str, answer: str) -> bool | None:
        prompt = (
            f"User Request:\n{command}\n\n"
            f"System Prompt:\n{system_prompt}\n\n"
            f"Response:\n{answer}\n\n"
            "Does the response make sense? Answer with yes or no."
        )
        response = await self.llm.generate(prompt, system=VALIDATION_SYSTEM_PROMPT)
        verdict = parse_verdict(response.content)
        logger.debug(
            f"Validation verdict: {verdict}",
            extra={"verdict": verdict, "raw_verdict": response.content},
        )
        return verdict
