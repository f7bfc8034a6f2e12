"""
homeagent.core.engine - Command Engine

Drives one end-to-end command: enumerate tools, let the planner call tools
through the registry until it produces an answer, optionally ask a validator
whether the answer makes sense, and retry the whole attempt under a bounded
policy.

Per attempt:
    Start -> Enumerate -> Plan/Invoke (loop) -> Respond -> Validate? -> Retry? -> Done

Every attempt gets a fresh ExecutionContext (trace + queued actions). The
registry is shared and only read. All attempts' trace events are
concatenated into the final CommandResponse so callers see the full retry
history.

Example:
    >>> engine = CommandEngine(registry, LLMPlanner(llm), LLMValidator(llm),
    ...                        ResiliencePolicy(enable_validation=True))
    >>> response = await engine.execute_command("Turn on the kitchen lights", devices)
    >>> response.actions
    [DeviceAction(device='kitchen lights', action='on', value=None, text=None)]
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence

from pydantic import BaseModel, Field

from homeagent.core.context import ExecutionContext
from homeagent.core.planner import Planner, Validator
from homeagent.core.tools.registry import ToolRegistry
from homeagent.core.trace import TraceEventKind, TraceLog
from homeagent.exceptions import ToolRoundLimitError
from homeagent.llm.models import LLMResponse, Message
from homeagent.models import CommandResponse, Device, DeviceAction
from homeagent.utils.api_errors import describe_exception

logger = logging.getLogger(__name__)

NO_SUCCESSFUL_ATTEMPT = "Command failed without a successful attempt"


class ResiliencePolicy(BaseModel):
    """Retry and validation settings for command execution."""

    max_attempts: int = Field(default=3, ge=1, description="Attempts per command, including the first")
    enable_validation: bool = Field(
        default=False, description="Ask the validator to approve each answer"
    )
    max_tool_rounds: int = Field(
        default=8, ge=1, description="Planner tool-call rounds allowed within one attempt"
    )
    initial_backoff_ms: int = Field(default=0, ge=0, description="Delay before the first retry")
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    max_backoff_ms: int = Field(default=2000, ge=0)

    def backoff_seconds(self, failed_attempt: int) -> float:
        """Delay to wait after ``failed_attempt`` (1-based) before retrying."""
        if self.initial_backoff_ms <= 0:
            return 0.0
        delay_ms = self.initial_backoff_ms * self.backoff_multiplier ** (failed_attempt - 1)
        return min(delay_ms, self.max_backoff_ms) / 1000


class _AttemptResult(BaseModel):
    answer: str
    system_prompt: str


class CommandEngine:
    """
    Resilience wrapper around planner, registry and validator.

    ``execute_command`` never raises (cancellation excepted). Only when
    every attempt fails does the response carry ``error``; negative or
    unparseable validation keeps the answer as best-known and retries,
    preferring a later approved answer.

    Example:
        >>> engine = CommandEngine(registry, planner)
        >>> response = await engine.execute_command("Is the TV on?", devices)
        >>> print(response.answer)
    """

    def __init__(
        self,
        registry: ToolRegistry,
        planner: Planner,
        validator: Validator | None = None,
        policy: ResiliencePolicy | None = None,
    ) -> None:
        """
        Initialize command engine.

        Args:
            registry: Tool registry shared by all commands
            planner: Produces tool calls and final answers
            validator: Judges answers (used only when the policy enables validation)
            policy: Retry/validation policy (defaults to ResiliencePolicy())
        """
        self.registry = registry
        self.planner = planner
        self.validator = validator
        self.policy = policy or ResiliencePolicy()

    @property
    def validation_enabled(self) -> bool:
        return self.policy.enable_validation and self.validator is not None

    async def execute_command(
        self,
        command: str,
        devices: Sequence[Device],
        system_prompt: str | None = None,
    ) -> CommandResponse:
        """
        Execute a natural-language command.

        Args:
            command: User's command
            devices: Devices visible to the planner
            system_prompt: Overrides the planner's default instructions

        Returns:
            CommandResponse with answer, queued actions and full trace
        """
        max_attempts = self.policy.max_attempts
        trace = TraceLog()
        best: CommandResponse | None = None
        last_error: BaseException | None = None
        last_actions: list[DeviceAction] = []

        for attempt in range(1, max_attempts + 1):
            context = ExecutionContext(devices=list(devices))
            context.trace.add(TraceEventKind.INFO, f"Attempt {attempt}/{max_attempts}", command)

            try:
                result = await self._run_attempt(command, system_prompt, context)
            except Exception as e:
                last_error = e
                last_actions = list(context.actions)
                context.trace.add(
                    TraceEventKind.ERROR,
                    f"Attempt {attempt} failed",
                    str(e) or type(e).__name__,
                )
                logger.warning(
                    f"Command attempt {attempt}/{max_attempts} failed: {e!r}",
                    exc_info=True,
                    extra={"attempt": attempt, "max_attempts": max_attempts},
                )
                trace.extend(context.trace)
                await self._backoff(attempt)
                continue

            response = CommandResponse(
                answer=result.answer,
                actions=list(context.actions),
                attempts=attempt,
            )

            if not self.validation_enabled:
                trace.extend(context.trace)
                return response.model_copy(update={"trace": trace.events})

            verdict = await self._validate(command, result, context)
            trace.extend(context.trace)

            if verdict is True:
                logger.info(
                    f"Command answer approved on attempt {attempt}",
                    extra={"attempt": attempt},
                )
                return response.model_copy(update={"trace": trace.events, "validated": True})

            best = response.model_copy(update={"validated": False})
            await self._backoff(attempt)

        if best is not None:
            logger.info(
                f"Returning unvalidated answer from attempt {best.attempts} after {max_attempts} attempts",
                extra={"attempt": best.attempts, "max_attempts": max_attempts},
            )
            return best.model_copy(update={"trace": trace.events})

        error = describe_exception(last_error) if last_error is not None else NO_SUCCESSFUL_ATTEMPT
        logger.error(
            f"Command failed after {max_attempts} attempts: {error}",
            extra={"max_attempts": max_attempts},
        )
        return CommandResponse(
            actions=last_actions,
            error=error,
            trace=trace.events,
            attempts=max_attempts,
        )

    # ========================================================================
    # Attempt
    # ========================================================================

    async def _run_attempt(
        self,
        command: str,
        system_prompt: str | None,
        context: ExecutionContext,
    ) -> _AttemptResult:
        """Enumerate, then alternate planner turns and tool dispatch until an answer."""
        trace = context.trace

        tools = await self.registry.enumerate(context)
        schemas = [t.to_schema() for t in tools]

        system_text = system_prompt or self.planner.system_prompt(context.devices, tools)
        trace.add(TraceEventKind.SYSTEM_PROMPT, "System prompt sent", system_text)
        trace.add(TraceEventKind.USER_PROMPT, "User command", command)

        messages = [
            Message(role="system", content=system_text),
            Message(role="user", content=command),
        ]

        rounds = 0
        while True:
            turn = await self.planner.next_turn(messages, schemas)
            trace.add(TraceEventKind.MODEL_RESPONSE, "Model response", self._describe_turn(turn))

            if not turn.tool_calls:
                return _AttemptResult(answer=turn.content, system_prompt=system_text)

            rounds += 1
            if rounds > self.policy.max_tool_rounds:
                raise ToolRoundLimitError(
                    f"Planner requested tools for more than {self.policy.max_tool_rounds} rounds"
                )

            messages.append(Message(role="assistant", content=turn.content, tool_calls=turn.tool_calls))
            for call in turn.tool_calls:
                text = await self.registry.dispatch(call.name, call.arguments, context)
                messages.append(Message(role="tool", content=text, tool_call_id=call.id))

    @staticmethod
    def _describe_turn(turn: LLMResponse) -> str:
        if not turn.tool_calls:
            return turn.content
        calls = [{"name": c.name, "arguments": c.arguments} for c in turn.tool_calls]
        return json.dumps({"content": turn.content, "tool_calls": calls}, default=str)

    # ========================================================================
    # Validation / retry
    # ========================================================================

    async def _validate(
        self,
        command: str,
        result: _AttemptResult,
        context: ExecutionContext,
    ) -> bool | None:
        """Ask the validator; failures count as a negative verdict."""
        if self.validator is None:
            return None
        try:
            verdict = await self.validator.judge(command, result.system_prompt, result.answer)
        except Exception as e:
            context.trace.add(
                TraceEventKind.ERROR,
                "Validation failed",
                str(e) or type(e).__name__,
            )
            logger.warning(f"Validator raised: {e!r}", exc_info=True)
            return None

        if verdict is True:
            context.trace.add(TraceEventKind.INFO, "Validation passed", result.answer)
        elif verdict is False:
            context.trace.add(TraceEventKind.INFO, "Validation rejected answer", result.answer)
        else:
            context.trace.add(TraceEventKind.INFO, "Validation verdict unparseable", result.answer)
        return verdict

    async def _backoff(self, failed_attempt: int) -> None:
        if failed_attempt >= self.policy.max_attempts:
            return
        delay = self.policy.backoff_seconds(failed_attempt)
        if delay > 0:
            logger.debug(f"Backing off {delay:.3f}s before retry", extra={"delay_seconds": delay})
            await asyncio.sleep(delay)
