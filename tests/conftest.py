"""
Shared fixtures: a demo household and fake MCP sessions.

Fake sessions mimic ``mcp.ClientSession``: ``list_tools()`` returns an object
with ``.tools`` and ``call_tool(name, arguments=...)`` returns a result with
``content`` blocks.
"""

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest

from homeagent.models import Device


def make_tool(name: str, description: str = "", schema: dict[str, Any] | None = None) -> Any:
    return SimpleNamespace(
        name=name,
        description=description,
        inputSchema=schema or {"type": "object", "properties": {}},
    )


def make_text_result(*texts: str, is_error: bool = False) -> Any:
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=t) for t in texts],
        isError=is_error,
        structuredContent=None,
    )


@pytest.fixture
def devices() -> list[Device]:
    return [
        Device(name="kitchen lights"),
        Device(name="TV"),
        Device(name="A/C", value=21),
    ]


@pytest.fixture
def fake_session():
    """Factory for fake MCP sessions advertising the given tool names."""

    def _make(*tool_names: str, result: Any = None, list_error: Exception | None = None):
        session = AsyncMock()
        if list_error is not None:
            session.list_tools = AsyncMock(side_effect=list_error)
        else:
            session.list_tools = AsyncMock(
                return_value=SimpleNamespace(
                    tools=[make_tool(n, f"{n} tool") for n in tool_names]
                )
            )
        session.call_tool = AsyncMock(
            return_value=result if result is not None else make_text_result("ok")
        )
        return session

    return _make


@pytest.fixture
def text_result():
    return make_text_result
