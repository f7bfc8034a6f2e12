"""
homeagent.core.context - Per-Execution State

Everything mutable that belongs to a single command attempt lives here, so
that the registry and providers can stay shared and read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from homeagent.core.trace import TraceLog
from homeagent.models import Device, DeviceAction

if TYPE_CHECKING:
    from homeagent.core.tools.base import ToolDescriptor


@dataclass
class ExecutionContext:
    """
    Trace, queued side-effects, visible devices and tool routes for one attempt.

    A fresh context is created for every attempt of every command; it is
    never shared between concurrent executions.

    Example:
        >>> context = ExecutionContext(devices=[Device(name="TV")])
        >>> await registry.enumerate(context)
        >>> await registry.dispatch("ExecuteDeviceAction", {"deviceName": "TV", "action": "On"}, context)
        >>> context.actions
        [DeviceAction(device='TV', action='On', value=None, text=None)]
    """

    trace: TraceLog = field(default_factory=TraceLog)
    actions: list[DeviceAction] = field(default_factory=list)
    devices: list[Device] = field(default_factory=list)
    routes: dict[str, ToolDescriptor] = field(default_factory=dict)

    @property
    def device_names(self) -> list[str]:
        return [d.name for d in self.devices]
