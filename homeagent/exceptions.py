"""
homeagent.exceptions - Custom exceptions for command execution

Provides a small hierarchy of domain-specific exceptions. Most failures in
homeagent are recovered locally and turned into trace events plus descriptive
strings; these exceptions cover the cases that must travel up to the
CommandEngine retry policy or out of the connection bridge.

Example:
    >>> from homeagent.exceptions import PlannerResponseError
    >>>
    >>> try:
    ...     turn = await planner.next_turn(messages, tools)
    ... except PlannerResponseError as e:
    ...     logger.warning(f"Planner returned garbage: {e}")
"""


class HomeAgentError(Exception):
    """Base exception for all homeagent errors."""


class PlannerError(HomeAgentError):
    """
    Raised when a planner round-trip cannot produce a usable turn.

    The CommandEngine treats this (and any other exception raised by the
    planner) as a failed attempt and retries while attempts remain.
    """


class PlannerResponseError(PlannerError):
    """
    Raised when the planner's reply cannot be parsed.

    This can occur due to:
    - Model output that is not a JSON list of actions
    - Empty model output
    """


class ToolRoundLimitError(PlannerError):
    """Raised when the planner keeps requesting tools past the round limit."""


class ProviderConnectionError(HomeAgentError):
    """
    Raised when an external tool server cannot be connected.

    This can occur due to:
    - The server process failing to start
    - An unreachable HTTP/SSE endpoint
    - A failed protocol handshake
    """
