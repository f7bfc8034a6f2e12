"""
homeagent.core.tools.remote - Remote Tool Providers

Adapts external tool-server connections (``mcp.ClientSession`` or anything
with the same two coroutines) to the ToolProvider protocol, and groups them
into a read-only, deterministically ordered ProviderConnectionSet.

How a connection was established (process pipe, container, HTTP stream) is
not this module's concern; see mcp_bridge.py.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Mapping
from typing import Any

from homeagent.core.context import ExecutionContext

from .base import LOCAL_PROVIDER_ID, RemoteToolHandle, ToolDescriptor

logger = logging.getLogger(__name__)


def _field(obj: Any, *names: str) -> Any:
    """First non-None attribute or key among ``names``."""
    for name in names:
        if isinstance(obj, Mapping):
            value = obj.get(name)
        else:
            value = getattr(obj, name, None)
        if value is not None:
            return value
    return None


class RemoteToolProvider:
    """
    ToolProvider backed by an external tool-server connection.

    Transport failures and timeouts propagate to the caller; the registry is
    responsible for isolating them per provider.

    Example:
        >>> provider = RemoteToolProvider("duckduckgo", session, timeout_seconds=30)
        >>> tools = await provider.list_tools()
        >>> raw = await provider.invoke("search", {"query": "weather"}, context)
    """

    def __init__(
        self,
        provider_id: str,
        handle: RemoteToolHandle,
        timeout_seconds: float | None = None,
    ) -> None:
        if provider_id == LOCAL_PROVIDER_ID:
            raise ValueError(f"Provider id '{LOCAL_PROVIDER_ID}' is reserved for local tools")
        self.provider_id = provider_id
        self._handle = handle
        self._timeout = timeout_seconds

    @property
    def handle(self) -> RemoteToolHandle:
        return self._handle

    async def _bounded(self, coro: Any) -> Any:
        if self._timeout:
            return await asyncio.wait_for(coro, timeout=self._timeout)
        return await coro

    async def list_tools(self) -> list[ToolDescriptor]:
        """Enumerate tools advertised by the server."""
        result = await self._bounded(self._handle.list_tools())
        advertised = _field(result, "tools")
        if advertised is None:
            advertised = result if isinstance(result, list | tuple) else []

        descriptors: list[ToolDescriptor] = []
        for entry in advertised:
            name = _field(entry, "name")
            if not isinstance(name, str) or not name:
                logger.warning(
                    f"Skipping nameless tool advertised by {self.provider_id}",
                    extra={"provider_id": self.provider_id},
                )
                continue

            schema = _field(entry, "inputSchema", "input_schema")
            description = _field(entry, "description")
            descriptors.append(
                ToolDescriptor(
                    name=name,
                    description=description if isinstance(description, str) else "",
                    provider_id=self.provider_id,
                    input_schema=schema if isinstance(schema, dict) and schema else {
                        "type": "object",
                        "properties": {},
                    },
                )
            )
        return descriptors

    async def invoke(
        self,
        name: str,
        arguments: dict[str, Any],
        context: ExecutionContext,
    ) -> Any:
        """Call a tool on the server and return its raw result."""
        return await self._bounded(self._handle.call_tool(name, arguments=dict(arguments)))

    def __repr__(self) -> str:
        return f"RemoteToolProvider(provider_id={self.provider_id!r})"


class ProviderConnectionSet(Mapping[str, RemoteToolProvider]):
    """
    Read-only mapping of provider id -> RemoteToolProvider.

    Iteration is lexicographic by provider id, which fixes both enumeration
    order and the "last registered wins" outcome of tool-name collisions.

    Example:
        >>> connections = ProviderConnectionSet.from_handles(
        ...     {"duckduckgo": ddg_session, "youtube": yt_session}
        ... )
        >>> list(connections)
        ['duckduckgo', 'youtube']
    """

    def __init__(self, providers: list[RemoteToolProvider] | None = None) -> None:
        by_id: dict[str, RemoteToolProvider] = {}
        for provider in providers or []:
            if provider.provider_id in by_id:
                raise ValueError(f"Duplicate provider id: {provider.provider_id}")
            by_id[provider.provider_id] = provider
        self._providers = {pid: by_id[pid] for pid in sorted(by_id)}

    @classmethod
    def from_handles(
        cls,
        handles: Mapping[str, RemoteToolHandle],
        timeout_seconds: float | None = None,
    ) -> ProviderConnectionSet:
        """Wrap raw connection handles keyed by provider id."""
        return cls(
            [
                RemoteToolProvider(pid, handle, timeout_seconds=timeout_seconds)
                for pid, handle in handles.items()
            ]
        )

    @classmethod
    def empty(cls) -> ProviderConnectionSet:
        return cls()

    def __getitem__(self, provider_id: str) -> RemoteToolProvider:
        return self._providers[provider_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._providers)

    def __len__(self) -> int:
        return len(self._providers)

    def __repr__(self) -> str:
        return f"ProviderConnectionSet({list(self._providers)})"
