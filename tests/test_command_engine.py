"""
Tests for homeagent.core.engine - Command Engine.

Planners and validators are scripted; the registry is real, backed by the
local provider and fake MCP sessions.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from homeagent.core.engine import CommandEngine, ResiliencePolicy
from homeagent.core.tools import (
    EXECUTE_DEVICE_ACTION,
    LocalToolProvider,
    ProviderConnectionSet,
    ToolRegistry,
)
from homeagent.core.trace import TraceEventKind
from homeagent.llm.models import LLMResponse, TokenUsage, ToolCall
from homeagent.utils.api_errors import CONNECTION_REFUSED


def turn(content="", *calls):
    return LLMResponse(
        content=content,
        model="test-model",
        usage=TokenUsage(input_tokens=10, output_tokens=5, total_tokens=15),
        finish_reason="tool_use" if calls else "stop",
        tool_calls=list(calls) or None,
    )


def call(name, call_id="call_1", **arguments):
    return ToolCall(id=call_id, name=name, arguments=arguments)


class ScriptedPlanner:
    """Returns (or raises) the scripted turns in order."""

    def __init__(self, *turns):
        self.turns = list(turns)
        self.seen = []

    def system_prompt(self, devices, tools):
        return f"devices={len(devices)} tools={len(tools)}"

    async def next_turn(self, messages, tools):
        self.seen.append(list(messages))
        step = self.turns.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step


def summaries(response, kind):
    return [e.summary for e in response.trace if e.kind == kind]


@pytest.fixture
def registry(devices):
    return ToolRegistry(LocalToolProvider(devices))


# ============================================================================
# ResiliencePolicy
# ============================================================================


class TestResiliencePolicy:
    def test_defaults(self):
        policy = ResiliencePolicy()
        assert policy.max_attempts == 3
        assert policy.enable_validation is False
        assert policy.backoff_seconds(1) == 0.0

    def test_exponential_backoff_is_capped(self):
        policy = ResiliencePolicy(initial_backoff_ms=100, backoff_multiplier=2, max_backoff_ms=250)
        assert policy.backoff_seconds(1) == pytest.approx(0.1)
        assert policy.backoff_seconds(2) == pytest.approx(0.2)
        assert policy.backoff_seconds(3) == pytest.approx(0.25)

    def test_at_least_one_attempt(self):
        with pytest.raises(ValueError):
            ResiliencePolicy(max_attempts=0)


# ============================================================================
# Single attempt
# ============================================================================


class TestExecuteCommand:
    async def test_turn_on_kitchen_lights(self, registry, devices):
        planner = ScriptedPlanner(
            turn("", call(EXECUTE_DEVICE_ACTION, deviceName="kitchen lights", action="on")),
            turn("I turned on the kitchen lights."),
        )
        engine = CommandEngine(registry, planner)

        response = await engine.execute_command("Turn on the kitchen lights", devices)

        assert response.error is None
        assert response.answer == "I turned on the kitchen lights."
        assert response.attempts == 1
        assert response.validated is None
        assert len(response.actions) == 1
        assert response.actions[0].device == "kitchen lights"
        assert response.actions[0].action == "on"

        kinds = {e.kind for e in response.trace}
        assert {
            TraceEventKind.TOOL_AVAILABLE,
            TraceEventKind.TOOL_CALL,
            TraceEventKind.TOOL_RESPONSE,
            TraceEventKind.ACTION_QUEUED,
        } <= kinds

    async def test_tool_results_fed_back_to_planner(self, registry, devices):
        planner = ScriptedPlanner(
            turn("Working on it", call(EXECUTE_DEVICE_ACTION, "c-42", deviceName="TV", action="Off")),
            turn("Done"),
        )
        await CommandEngine(registry, planner).execute_command("Turn off the TV", devices)

        second = planner.seen[1]
        assert [m.role for m in second] == ["system", "user", "assistant", "tool"]
        assert second[2].tool_calls[0].id == "c-42"
        assert second[3].tool_call_id == "c-42"
        assert second[3].content == "TV turned off successfully"

    async def test_default_system_prompt_from_planner(self, registry, devices):
        planner = ScriptedPlanner(turn("ok"))
        response = await CommandEngine(registry, planner).execute_command("hi", devices)

        system = [e for e in response.trace if e.kind == TraceEventKind.SYSTEM_PROMPT][0]
        assert system.details == "devices=3 tools=2"
        assert planner.seen[0][0].content == "devices=3 tools=2"

    async def test_custom_system_prompt(self, registry, devices):
        planner = ScriptedPlanner(turn("ok"))
        await CommandEngine(registry, planner).execute_command(
            "hi", devices, system_prompt="Answer like a pirate"
        )
        assert planner.seen[0][0].content == "Answer like a pirate"

    async def test_user_prompt_recorded(self, registry, devices):
        response = await CommandEngine(registry, ScriptedPlanner(turn("ok"))).execute_command(
            "What's the weather?", devices
        )
        user = [e for e in response.trace if e.kind == TraceEventKind.USER_PROMPT][0]
        assert user.details == "What's the weather?"

    async def test_unknown_tool_does_not_fail_attempt(self, registry, devices):
        planner = ScriptedPlanner(
            turn("", call("nonexistent-tool")),
            turn("Sorry, that tool is not available."),
        )
        response = await CommandEngine(registry, planner).execute_command("do it", devices)

        assert response.error is None
        assert response.attempts == 1
        assert "not found" in planner.seen[1][-1].content

    async def test_collision_dispatches_to_winner(self, devices, fake_session, text_result):
        alpha = fake_session("search", result=text_result("from alpha"))
        beta = fake_session("search", result=text_result("from beta"))
        registry = ToolRegistry(
            LocalToolProvider(devices),
            ProviderConnectionSet.from_handles({"alpha": alpha, "beta": beta}),
        )
        planner = ScriptedPlanner(turn("", call("search", query="news")), turn("Here is the news"))

        response = await CommandEngine(registry, planner).execute_command("news?", devices)

        assert response.error is None
        beta.call_tool.assert_called_once_with("search", arguments={"query": "news"})
        alpha.call_tool.assert_not_called()
        assert "Tool name collision: search" in summaries(response, TraceEventKind.ERROR)

    async def test_failing_remote_does_not_fail_command(self, devices, fake_session):
        registry = ToolRegistry(
            LocalToolProvider(devices),
            ProviderConnectionSet.from_handles(
                {"youtube": fake_session(list_error=ConnectionError("down"))}
            ),
        )
        response = await CommandEngine(registry, ScriptedPlanner(turn("ok"))).execute_command(
            "hi", devices
        )

        assert response.error is None
        assert summaries(response, TraceEventKind.ERROR) == ["Failed to load tools from youtube"]


# ============================================================================
# Retries
# ============================================================================


class TestRetries:
    async def test_fails_twice_then_succeeds(self, registry, devices):
        planner = ScriptedPlanner(
            RuntimeError("model crashed"),
            RuntimeError("model crashed again"),
            turn("All good"),
        )
        response = await CommandEngine(registry, planner).execute_command("hi", devices)

        assert response.error is None
        assert response.answer == "All good"
        assert response.attempts == 3
        assert len(summaries(response, TraceEventKind.SYSTEM_PROMPT)) == 3
        assert len(summaries(response, TraceEventKind.USER_PROMPT)) == 3
        errors = summaries(response, TraceEventKind.ERROR)
        assert errors == ["Attempt 1 failed", "Attempt 2 failed"]
        assert summaries(response, TraceEventKind.INFO) == [
            "Attempt 1/3",
            "Attempt 2/3",
            "Attempt 3/3",
        ]

    async def test_all_attempts_fail(self, registry, devices):
        planner = ScriptedPlanner(*(ConnectionRefusedError() for _ in range(3)))
        response = await CommandEngine(registry, planner).execute_command("hi", devices)

        assert response.error == CONNECTION_REFUSED
        assert response.answer == ""
        assert response.attempts == 3
        assert len(summaries(response, TraceEventKind.ERROR)) == 3

    async def test_error_keeps_actions_of_last_attempt(self, registry, devices):
        planner = ScriptedPlanner(
            turn("", call(EXECUTE_DEVICE_ACTION, deviceName="TV", action="On")),
            RuntimeError("lost connection mid-command"),
        )
        engine = CommandEngine(registry, planner, policy=ResiliencePolicy(max_attempts=1))

        response = await engine.execute_command("TV on then summarize", devices)

        assert response.error == "lost connection mid-command"
        assert [a.device for a in response.actions] == ["TV"]

    async def test_tool_round_limit(self, registry, devices):
        looping = [
            turn("", call(EXECUTE_DEVICE_ACTION, f"c{i}", deviceName="TV", action="On"))
            for i in range(5)
        ]
        engine = CommandEngine(
            registry,
            ScriptedPlanner(*looping),
            policy=ResiliencePolicy(max_attempts=1, max_tool_rounds=2),
        )

        response = await engine.execute_command("loop forever", devices)

        assert response.error == "Planner requested tools for more than 2 rounds"
        assert len(response.actions) == 2

    async def test_each_attempt_starts_with_fresh_actions(self, registry, devices):
        planner = ScriptedPlanner(
            turn("", call(EXECUTE_DEVICE_ACTION, deviceName="TV", action="On")),
            RuntimeError("boom"),
            turn("", call(EXECUTE_DEVICE_ACTION, deviceName="A/C", action="Off")),
            turn("done"),
        )
        response = await CommandEngine(registry, planner).execute_command("hi", devices)

        assert response.attempts == 2
        assert [a.device for a in response.actions] == ["A/C"]

    async def test_backoff_between_attempts(self, registry, devices):
        planner = ScriptedPlanner(*(RuntimeError("x") for _ in range(3)))
        policy = ResiliencePolicy(initial_backoff_ms=100, backoff_multiplier=2, max_backoff_ms=150)
        engine = CommandEngine(registry, planner, policy=policy)

        with patch("homeagent.core.engine.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await engine.execute_command("hi", devices)

        delays = [c.args[0] for c in sleep.await_args_list]
        assert delays == [pytest.approx(0.1), pytest.approx(0.15)]

    async def test_cancellation_propagates(self, registry, devices):
        planner = ScriptedPlanner(asyncio.CancelledError(), turn("never"))
        with pytest.raises(asyncio.CancelledError):
            await CommandEngine(registry, planner).execute_command("hi", devices)


# ============================================================================
# Validation
# ============================================================================


class TestValidation:
    @pytest.fixture
    def policy(self):
        return ResiliencePolicy(enable_validation=True)

    async def test_approved_on_second_attempt(self, registry, devices, policy):
        validator = AsyncMock()
        validator.judge = AsyncMock(side_effect=[False, True])
        planner = ScriptedPlanner(turn("first"), turn("second"))

        response = await CommandEngine(registry, planner, validator, policy).execute_command(
            "hi", devices
        )

        assert response.answer == "second"
        assert response.validated is True
        assert response.attempts == 2
        info = summaries(response, TraceEventKind.INFO)
        assert "Validation rejected answer" in info
        assert "Validation passed" in info

    async def test_never_approved_returns_last_answer(self, registry, devices, policy):
        validator = AsyncMock()
        validator.judge = AsyncMock(return_value=False)
        planner = ScriptedPlanner(turn("a1"), turn("a2"), turn("a3"))

        response = await CommandEngine(registry, planner, validator, policy).execute_command(
            "hi", devices
        )

        assert response.error is None
        assert response.answer == "a3"
        assert response.validated is False
        assert response.attempts == 3
        assert validator.judge.await_count == 3

    async def test_unparseable_verdict_counts_as_rejection(self, registry, devices, policy):
        validator = AsyncMock()
        validator.judge = AsyncMock(side_effect=[None, True])
        planner = ScriptedPlanner(turn("a1"), turn("a2"))

        response = await CommandEngine(registry, planner, validator, policy).execute_command(
            "hi", devices
        )

        assert response.answer == "a2"
        assert "Validation verdict unparseable" in summaries(response, TraceEventKind.INFO)

    async def test_validator_exception_counts_as_rejection(self, registry, devices, policy):
        validator = AsyncMock()
        validator.judge = AsyncMock(side_effect=[RuntimeError("judge offline"), True])
        planner = ScriptedPlanner(turn("a1"), turn("a2"))

        response = await CommandEngine(registry, planner, validator, policy).execute_command(
            "hi", devices
        )

        assert response.answer == "a2"
        assert response.validated is True
        assert "Validation failed" in summaries(response, TraceEventKind.ERROR)

    async def test_validator_receives_system_prompt(self, registry, devices, policy):
        validator = AsyncMock()
        validator.judge = AsyncMock(return_value=True)
        engine = CommandEngine(registry, ScriptedPlanner(turn("yes sir")), validator, policy)

        await engine.execute_command("hi", devices, system_prompt="Be brief")

        validator.judge.assert_awaited_once_with("hi", "Be brief", "yes sir")

    async def test_validator_ignored_when_disabled(self, registry, devices):
        validator = AsyncMock()
        validator.judge = AsyncMock(return_value=False)
        engine = CommandEngine(registry, ScriptedPlanner(turn("ok")), validator)

        response = await engine.execute_command("hi", devices)

        assert engine.validation_enabled is False
        assert response.validated is None
        validator.judge.assert_not_called()
