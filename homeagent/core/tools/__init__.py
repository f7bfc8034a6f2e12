"""
homeagent.core.tools - Tool Discovery and Dispatch

Unifies an in-process tool provider and any number of external tool servers
behind one naming/dispatch surface for the planner.

Architecture:
- base.py: ToolDescriptor, ToolProvider protocol, RemoteToolHandle protocol
- local.py: LocalToolProvider (device control, status)
- remote.py: RemoteToolProvider, ProviderConnectionSet
- normalizer.py: normalize() for heterogeneous tool results
- registry.py: ToolRegistry (enumerate, dispatch)
- mcp_bridge.py: MCPBridge for connecting MCP servers

Example Usage:
    >>> from homeagent.core.tools import LocalToolProvider, ProviderConnectionSet, ToolRegistry
    >>>
    >>> registry = ToolRegistry(
    ...     LocalToolProvider(devices),
    ...     ProviderConnectionSet.from_handles({"duckduckgo": session}),
    ... )
    >>> tools = await registry.enumerate(context)
    >>> text = await registry.dispatch("search", {"query": "weather in Oslo"}, context)
"""

from .base import LOCAL_PROVIDER_ID, RemoteToolHandle, ToolDescriptor, ToolProvider
from .local import EXECUTE_DEVICE_ACTION, GET_STATUS, LocalToolProvider
from .normalizer import NO_CONTENT, normalize
from .registry import ToolRegistry
from .remote import ProviderConnectionSet, RemoteToolProvider

__all__ = [
    # Base types
    "LOCAL_PROVIDER_ID",
    "RemoteToolHandle",
    "ToolDescriptor",
    "ToolProvider",
    # Providers
    "EXECUTE_DEVICE_ACTION",
    "GET_STATUS",
    "LocalToolProvider",
    "ProviderConnectionSet",
    "RemoteToolProvider",
    # Dispatch
    "NO_CONTENT",
    "ToolRegistry",
    "normalize",
]
