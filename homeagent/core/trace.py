"""
homeagent.core.trace - Command Trace Log

Append-only record of typed events for one command execution. The trace is
what a caller (or the UI) shows to explain how a command was handled:
prompts sent, tools discovered and called, actions queued, and errors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class TraceEventKind(str, Enum):
    """Fixed vocabulary of trace event kinds."""

    SYSTEM_PROMPT = "SystemPrompt"
    USER_PROMPT = "UserPrompt"
    MODEL_RESPONSE = "ModelResponse"
    TOOL_CALL = "ToolCall"
    TOOL_AVAILABLE = "ToolAvailable"
    TOOL_RESPONSE = "ToolResponse"
    ACTION_QUEUED = "ActionQueued"
    ERROR = "Error"
    INFO = "Info"


class TraceEvent(BaseModel):
    """
    One notable step of a command execution.

    Example:
        >>> event = TraceEvent(
        ...     kind=TraceEventKind.TOOL_CALL,
        ...     summary="Calling tool: ExecuteDeviceAction on local",
        ...     details='{"deviceName": "TV", "action": "On"}',
        ... )
    """

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    kind: TraceEventKind
    summary: str = Field(..., description="Short human-readable summary")
    details: str | None = Field(default=None, description="Longer payload, often JSON")


class TraceLog:
    """
    Ordered, append-only list of TraceEvents.

    A TraceLog belongs to exactly one command execution. Events are never
    removed individually; ``clear()`` resets the whole log for a new command.

    Example:
        >>> trace = TraceLog()
        >>> trace.add(TraceEventKind.INFO, "Attempt 1/3")
        >>> trace.count(TraceEventKind.INFO)
        1
    """

    def __init__(self) -> None:
        self._events: list[TraceEvent] = []

    def add(
        self,
        kind: TraceEventKind,
        summary: str,
        details: str | None = None,
    ) -> TraceEvent:
        """
        Append a new event.

        Args:
            kind: Event kind
            summary: Short human string
            details: Optional longer payload

        Returns:
            The appended TraceEvent
        """
        event = TraceEvent(kind=kind, summary=summary, details=details)
        self._events.append(event)

        level = logging.WARNING if kind is TraceEventKind.ERROR else logging.DEBUG
        logger.log(
            level,
            f"[{kind.value}] {summary}",
            extra={"trace_kind": kind.value, "trace_details": details},
        )
        return event

    def extend(self, events: Iterable[TraceEvent]) -> None:
        """Append existing events in order (used to concatenate attempts)."""
        self._events.extend(events)

    def clear(self) -> None:
        """Drop all events. Called at the start of a new top-level command."""
        self._events.clear()

    @property
    def events(self) -> list[TraceEvent]:
        """Copy of all events, oldest first."""
        return list(self._events)

    def of_kind(self, kind: TraceEventKind) -> list[TraceEvent]:
        """Events of a single kind, in order."""
        return [e for e in self._events if e.kind is kind]

    def count(self, kind: TraceEventKind) -> int:
        """Number of events of a single kind."""
        return sum(1 for e in self._events if e.kind is kind)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[TraceEvent]:
        return iter(list(self._events))
