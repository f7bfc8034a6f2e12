"""
homeagent.core.tools.local - Local Tool Provider

In-process provider for the household's own tools: device control and a
status report. Local tools cannot fail on transport grounds; argument
problems come back as descriptive strings so the planner can recover
conversationally.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from homeagent.core.context import ExecutionContext
from homeagent.core.trace import TraceEventKind
from homeagent.models import Device, DeviceAction

from .base import LOCAL_PROVIDER_ID, ToolDescriptor

logger = logging.getLogger(__name__)

EXECUTE_DEVICE_ACTION = "ExecuteDeviceAction"
GET_STATUS = "GetMcpStatus"

_EXECUTE_DEVICE_ACTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "deviceName": {
            "type": "string",
            "description": "Name of the device to control (e.g., 'TV', 'A/C', 'Kitchen lights')",
        },
        "action": {
            "type": "string",
            "description": "'On' to turn on, 'Off' to turn off, 'Set' to set a value, "
            "'Speak' to say something",
        },
        "value": {
            "type": "number",
            "description": "Numeric value for 'Set' actions (e.g., temperature: 23)",
        },
        "text": {"type": "string", "description": "Text for 'Speak' actions"},
    },
    "required": ["deviceName", "action"],
}


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_float(value: Any) -> float | None:
    """Coerce a loosely typed argument to float, or None when it isn't numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _format_value(value: float) -> str:
    return str(int(value)) if value.is_integer() else str(value)


class LocalToolProvider:
    """
    Provider for the fixed set of in-process tools.

    Tools:
    - ExecuteDeviceAction(deviceName, action, value?, text?): queue a device action
    - GetMcpStatus(): report devices, queued actions and local tools

    The device list shown in tool descriptions comes from ``devices`` given
    at construction; at invocation time the context's devices take
    precedence when present.

    Example:
        >>> provider = LocalToolProvider(devices=[Device(name="TV")])
        >>> context = ExecutionContext()
        >>> await provider.invoke("ExecuteDeviceAction", {"deviceName": "TV", "action": "On"}, context)
        'TV turned on successfully'
    """

    provider_id = LOCAL_PROVIDER_ID

    def __init__(self, devices: list[Device] | None = None) -> None:
        self._devices: list[Device] = list(devices or [])

    def set_devices(self, devices: list[Device]) -> None:
        """Replace the device list used in tool descriptions."""
        self._devices = list(devices)

    def _device_names(self, context: ExecutionContext | None = None) -> list[str]:
        if context is not None and context.devices:
            return context.device_names
        return [d.name for d in self._devices]

    def describe_tools(self, context: ExecutionContext | None = None) -> list[ToolDescriptor]:
        """Build descriptors, listing the devices visible in ``context``."""
        device_list = ", ".join(self._device_names(context)) or "none configured"
        return [
            ToolDescriptor(
                name=EXECUTE_DEVICE_ACTION,
                description=(
                    f"Controls smart home devices. Available devices: {device_list}. "
                    "Actions: 'On', 'Off', 'Set' with value for temperature, "
                    "'Speak' with text."
                ),
                provider_id=self.provider_id,
                input_schema=_EXECUTE_DEVICE_ACTION_SCHEMA,
            ),
            ToolDescriptor(
                name=GET_STATUS,
                description="Gets the status of connected tools and available devices",
                provider_id=self.provider_id,
            ),
        ]

    async def list_tools(self) -> list[ToolDescriptor]:
        return self.describe_tools()

    async def invoke(
        self,
        name: str,
        arguments: dict[str, Any],
        context: ExecutionContext,
    ) -> str:
        """
        Invoke a local tool.

        Returns:
            Confirmation or validation-failure text (never raises for bad input)
        """
        if name == EXECUTE_DEVICE_ACTION:
            return self._execute_device_action(arguments or {}, context)
        if name == GET_STATUS:
            return self._status(context)
        return f"Unknown local tool: {name}"

    def _execute_device_action(self, arguments: dict[str, Any], context: ExecutionContext) -> str:
        device_name = _as_text(arguments.get("deviceName"))
        action = _as_text(arguments.get("action"))
        value = _as_float(arguments.get("value"))
        text = _as_text(arguments.get("text")) or None

        if not device_name:
            return "Device name is required"
        if not action:
            return "Action is required"

        device_action = DeviceAction(device=device_name, action=action, value=value, text=text)
        context.actions.append(device_action)
        context.trace.add(
            TraceEventKind.ACTION_QUEUED,
            f"{action} -> {device_name}",
            device_action.model_dump_json(),
        )

        logger.info(
            f"Queued device action: {action} -> {device_name}",
            extra={"device": device_name, "action": action, "value": value},
        )

        match action.lower():
            case "on":
                return f"{device_name} turned on successfully"
            case "off":
                return f"{device_name} turned off successfully"
            case "set" if value is not None:
                return f"{device_name} set to {_format_value(value)}"
            case "speak" if text:
                return f"{device_name} speaking: {text}"
            case _:
                return f"Unknown action {action} for {device_name}"

    def _status(self, context: ExecutionContext) -> str:
        status = {
            "AvailableDevices": [{"Name": n} for n in self._device_names(context)],
            "ExecutedActions": len(context.actions),
            "LocalTools": [
                {"Name": t.name, "Description": t.description}
                for t in self.describe_tools(context)
            ],
        }
        return json.dumps(status, indent=2)
