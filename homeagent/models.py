"""
homeagent.models - Device and Command Models

Data models shared between the command engine and its callers: the devices
known to the household, the side-effect records queued for them, and the
externally visible result of one command.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from homeagent.core.trace import TraceEvent


class Device(BaseModel):
    """
    A controllable device as seen by the assistant.

    Example:
        >>> Device(name="Kitchen lights")
        >>> Device(name="A/C", value=21.5)
    """

    name: str = Field(..., description="Device name (e.g., 'Kitchen lights')")
    is_on: bool = Field(default=False, description="Last known power state")
    value: float | None = Field(default=None, description="Last known value (e.g., temperature)")


class DeviceAction(BaseModel):
    """
    Side-effect record: a requested real-world action.

    Actions are only recorded here; applying them to devices is the job of
    the device/UI collaborator that consumes the CommandResponse.

    Accepts both snake_case field names and the capitalized JSON spelling
    models tend to produce ({"Device": "TV", "Action": "On"}).

    Example:
        >>> DeviceAction(device="TV", action="On")
        >>> DeviceAction.model_validate({"Device": "A/C", "Action": "Set", "Value": 18})
    """

    model_config = ConfigDict(populate_by_name=True)

    device: str = Field(default="", alias="Device", description="Target device name")
    action: str = Field(..., alias="Action", description="Action (On, Off, Set, Speak, ...)")
    value: float | None = Field(default=None, alias="Value", description="Value for Set actions")
    text: str | None = Field(default=None, alias="Text", description="Text for Speak actions")


class CommandResponse(BaseModel):
    """
    Result of one command execution.

    The engine always returns one of these, never raises. ``error`` is set
    only when every attempt failed; ``actions`` may still be non-empty
    alongside an error (partial success).

    Example:
        >>> response = await engine.execute_command("Turn on the TV", devices)
        >>> if response.error:
        ...     print(f"Failed: {response.error}")
        >>> for action in response.actions:
        ...     print(f"{action.action} -> {action.device}")
    """

    answer: str = Field(default="", description="Final answer text from the planner")
    actions: list[DeviceAction] = Field(
        default_factory=list, description="Side-effects to apply to device state"
    )
    error: str | None = Field(default=None, description="Human-readable failure, if any")
    trace: list[TraceEvent] = Field(
        default_factory=list, description="All trace events, across every attempt"
    )
    attempts: int = Field(default=0, ge=0, description="Number of attempts used")
    validated: bool | None = Field(
        default=None,
        description="True if self-validation approved the answer; None when validation is off",
    )
