"""
Unit tests for homeagent.core.tools.local - Local Tool Provider.
"""

import json

import pytest

from homeagent.core.context import ExecutionContext
from homeagent.core.tools.local import EXECUTE_DEVICE_ACTION, GET_STATUS, LocalToolProvider
from homeagent.core.trace import TraceEventKind
from homeagent.models import Device


@pytest.fixture
def provider(devices):
    return LocalToolProvider(devices)


@pytest.fixture
def context(devices):
    return ExecutionContext(devices=devices)


# ============================================================================
# Tool descriptions
# ============================================================================


class TestDescribeTools:
    def test_fixed_tool_set(self, provider):
        names = [t.name for t in provider.describe_tools()]
        assert names == [EXECUTE_DEVICE_ACTION, GET_STATUS]

    def test_descriptions_list_devices(self, provider):
        execute = provider.describe_tools()[0]
        assert "kitchen lights" in execute.description
        assert "A/C" in execute.description
        assert execute.provider_id == "local"
        assert execute.input_schema["required"] == ["deviceName", "action"]

    def test_context_devices_take_precedence(self, provider):
        context = ExecutionContext(devices=[Device(name="Garage door")])
        execute = provider.describe_tools(context)[0]
        assert "Garage door" in execute.description
        assert "TV" not in execute.description

    async def test_list_tools_matches_describe(self, provider):
        listed = await provider.list_tools()
        assert [t.name for t in listed] == [t.name for t in provider.describe_tools()]


# ============================================================================
# ExecuteDeviceAction
# ============================================================================


class TestExecuteDeviceAction:
    async def test_turn_on(self, provider, context):
        result = await provider.invoke(
            EXECUTE_DEVICE_ACTION, {"deviceName": "kitchen lights", "action": "On"}, context
        )
        assert result == "kitchen lights turned on successfully"
        assert len(context.actions) == 1
        assert context.actions[0].device == "kitchen lights"
        assert context.actions[0].action == "On"

    async def test_turn_off(self, provider, context):
        result = await provider.invoke(
            EXECUTE_DEVICE_ACTION, {"deviceName": "TV", "action": "off"}, context
        )
        assert result == "TV turned off successfully"

    async def test_set_with_value(self, provider, context):
        result = await provider.invoke(
            EXECUTE_DEVICE_ACTION, {"deviceName": "A/C", "action": "Set", "value": 23}, context
        )
        assert result == "A/C set to 23"
        assert context.actions[0].value == 23.0

    async def test_set_with_fractional_string_value(self, provider, context):
        result = await provider.invoke(
            EXECUTE_DEVICE_ACTION, {"deviceName": "A/C", "action": "Set", "value": "21.5"}, context
        )
        assert result == "A/C set to 21.5"

    async def test_speak_with_text(self, provider, context):
        result = await provider.invoke(
            EXECUTE_DEVICE_ACTION,
            {"deviceName": "Speaker", "action": "Speak", "text": "Dinner is ready"},
            context,
        )
        assert result == "Speaker speaking: Dinner is ready"
        assert context.actions[0].text == "Dinner is ready"

    async def test_unknown_action_is_explicit(self, provider, context):
        result = await provider.invoke(
            EXECUTE_DEVICE_ACTION, {"deviceName": "TV", "action": "Dance"}, context
        )
        assert result == "Unknown action Dance for TV"

    async def test_set_without_value_is_unknown(self, provider, context):
        result = await provider.invoke(
            EXECUTE_DEVICE_ACTION, {"deviceName": "A/C", "action": "Set"}, context
        )
        assert result == "Unknown action Set for A/C"

    async def test_missing_device_name(self, provider, context):
        result = await provider.invoke(EXECUTE_DEVICE_ACTION, {"action": "On"}, context)
        assert result == "Device name is required"
        assert context.actions == []

    async def test_blank_action(self, provider, context):
        result = await provider.invoke(
            EXECUTE_DEVICE_ACTION, {"deviceName": "TV", "action": "   "}, context
        )
        assert result == "Action is required"
        assert context.actions == []

    async def test_action_queued_trace_event(self, provider, context):
        await provider.invoke(EXECUTE_DEVICE_ACTION, {"deviceName": "TV", "action": "On"}, context)
        queued = context.trace.of_kind(TraceEventKind.ACTION_QUEUED)
        assert len(queued) == 1
        assert queued[0].summary == "On -> TV"


# ============================================================================
# Status / unknown tools
# ============================================================================


class TestStatusAndUnknown:
    async def test_status_reports_devices_and_actions(self, provider, context):
        await provider.invoke(EXECUTE_DEVICE_ACTION, {"deviceName": "TV", "action": "On"}, context)
        status = json.loads(await provider.invoke(GET_STATUS, {}, context))

        assert {"Name": "TV"} in status["AvailableDevices"]
        assert status["ExecutedActions"] == 1
        assert [t["Name"] for t in status["LocalTools"]] == [EXECUTE_DEVICE_ACTION, GET_STATUS]

    async def test_unknown_local_tool(self, provider, context):
        result = await provider.invoke("SelfDestruct", {}, context)
        assert result == "Unknown local tool: SelfDestruct"
