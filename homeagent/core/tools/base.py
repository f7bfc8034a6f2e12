"""
homeagent.core.tools.base - Base Tool Definitions

Core interfaces and data models for tool discovery and dispatch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from homeagent.core.context import ExecutionContext

LOCAL_PROVIDER_ID = "local"


def _empty_object_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


class ToolDescriptor(BaseModel):
    """
    Identity of one invocable tool in the merged registry.

    ``provider_id`` is a lookup-only reference: the registry resolves it to
    the owning provider at dispatch time, it never owns providers.

    Example:
        >>> descriptor = ToolDescriptor(
        ...     name="search",
        ...     description="Search the web using DuckDuckGo",
        ...     provider_id="duckduckgo",
        ...     input_schema={
        ...         "type": "object",
        ...         "properties": {"query": {"type": "string"}},
        ...         "required": ["query"],
        ...     },
        ... )
    """

    name: str = Field(..., description="Tool name, unique across the merged registry")
    description: str = Field(default="", description="What this tool does (shown to the planner)")
    provider_id: str = Field(..., description="Identifier of the owning provider")
    input_schema: dict[str, Any] = Field(
        default_factory=_empty_object_schema, description="JSON schema for tool arguments"
    )

    def to_schema(self) -> dict[str, Any]:
        """Planner-facing schema in the shape LLM providers accept."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema or _empty_object_schema(),
        }


class ToolProvider(Protocol):
    """
    Protocol shared by every tool provider (local and remote).

    Example:
        >>> class EchoProvider:
        ...     provider_id = "echo"
        ...     async def list_tools(self) -> list[ToolDescriptor]:
        ...         return [ToolDescriptor(name="echo", provider_id="echo")]
        ...     async def invoke(self, name, arguments, context) -> Any:
        ...         return arguments.get("text", "")
    """

    provider_id: str

    async def list_tools(self) -> list[ToolDescriptor]:
        """
        Enumerate the provider's tools.

        Raises:
            Any transport-level failure (remote providers only)
        """
        ...

    async def invoke(
        self,
        name: str,
        arguments: dict[str, Any],
        context: ExecutionContext,
    ) -> Any:
        """
        Invoke one tool.

        Args:
            name: Tool name as advertised by list_tools()
            arguments: Tool arguments (loosely typed values)
            context: Current execution context

        Returns:
            Raw, provider-specific result (normalized by the registry)
        """
        ...


class RemoteToolHandle(Protocol):
    """
    Capability required from an external tool-server connection.

    Matches ``mcp.ClientSession``; any object with these two coroutines works.
    """

    async def list_tools(self) -> Any: ...

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any: ...
