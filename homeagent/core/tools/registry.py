"""
homeagent.core.tools.registry - Tool Registry

Unifies the local provider and every remote provider into one namespace:
tool name -> owning provider. The registry enumerates tools (isolating
per-provider failures), dispatches tool calls to the owning provider, and
normalizes results into text. Every step lands in the caller's trace.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from homeagent.core.context import ExecutionContext
from homeagent.core.trace import TraceEventKind

from .base import ToolDescriptor, ToolProvider
from .local import LocalToolProvider
from .normalizer import normalize
from .remote import ProviderConnectionSet

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Merged registry of local and remote tools.

    Features:
    - Local tools first, then remote providers in connection-set order
    - Per-provider failure isolation during enumeration
    - Last-registered-wins on name collisions, recorded as an Error event
    - Dispatch that never raises: missing tools and provider failures come
      back as descriptive text

    The provider mapping is fixed at construction and read-only afterwards.
    Routing tables are per execution: ``enumerate(context)`` stores the
    merged table on ``context.routes`` and ``dispatch`` reads it from there,
    so overlapping commands never see each other's tools.

    Example:
        >>> registry = ToolRegistry(LocalToolProvider(devices), connections)
        >>> context = ExecutionContext(devices=devices)
        >>> tools = await registry.enumerate(context)
        >>> text = await registry.dispatch("search", {"query": "weather"}, context)
    """

    def __init__(
        self,
        local_provider: LocalToolProvider,
        connections: ProviderConnectionSet | None = None,
        concurrent: bool = False,
    ) -> None:
        """
        Initialize tool registry.

        Args:
            local_provider: In-process provider, always enumerated first
            connections: Remote providers (may be empty)
            concurrent: Fetch remote tool lists concurrently; results are
                still merged in connection-set order
        """
        self._local = local_provider
        self._connections = connections if connections is not None else ProviderConnectionSet()
        self._concurrent = concurrent
        self._providers: dict[str, ToolProvider] = {local_provider.provider_id: local_provider}
        self._providers.update(self._connections)

    @property
    def provider_ids(self) -> list[str]:
        """Provider ids in enumeration order (local first)."""
        return list(self._providers)

    # ========================================================================
    # Enumeration
    # ========================================================================

    async def enumerate(self, context: ExecutionContext | None = None) -> list[ToolDescriptor]:
        """
        Enumerate tools from every provider.

        A remote provider that fails (exception or timeout) is recorded as
        one Error event and excluded; its siblings are still enumerated.

        Args:
            context: Execution context receiving trace events

        Returns:
            Merged descriptors, one per tool name
        """
        context = context or ExecutionContext()
        trace = context.trace
        merged: dict[str, ToolDescriptor] = {}

        self._merge(merged, self._local.describe_tools(context), context)

        for provider_id, outcome in await self._fetch_remote_tools():
            if isinstance(outcome, BaseException):
                trace.add(
                    TraceEventKind.ERROR,
                    f"Failed to load tools from {provider_id}",
                    str(outcome) or type(outcome).__name__,
                )
                logger.warning(
                    f"Tool enumeration failed for provider '{provider_id}': {outcome!r}",
                    extra={"provider_id": provider_id},
                )
                continue
            self._merge(merged, outcome, context)

        context.routes = merged

        logger.info(
            f"Enumerated {len(merged)} tools from {len(self._providers)} providers",
            extra={"tool_count": len(merged), "providers": self.provider_ids},
        )
        return list(merged.values())

    async def _fetch_remote_tools(
        self,
    ) -> list[tuple[str, list[ToolDescriptor] | BaseException]]:
        """List tools of every remote provider, capturing failures per provider."""
        provider_ids = list(self._connections)

        if self._concurrent:
            results = await asyncio.gather(
                *(self._connections[pid].list_tools() for pid in provider_ids),
                return_exceptions=True,
            )
            for outcome in results:
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
            return list(zip(provider_ids, results, strict=True))

        outcomes: list[tuple[str, list[ToolDescriptor] | BaseException]] = []
        for pid in provider_ids:
            try:
                outcomes.append((pid, await self._connections[pid].list_tools()))
            except Exception as e:
                outcomes.append((pid, e))
        return outcomes

    def _merge(
        self,
        merged: dict[str, ToolDescriptor],
        descriptors: list[ToolDescriptor],
        context: ExecutionContext,
    ) -> None:
        for descriptor in descriptors:
            existing = merged.get(descriptor.name)
            if existing is not None:
                context.trace.add(
                    TraceEventKind.ERROR,
                    f"Tool name collision: {descriptor.name}",
                    f"'{descriptor.name}' from {descriptor.provider_id} replaces the one "
                    f"from {existing.provider_id}",
                )
            merged[descriptor.name] = descriptor
            context.trace.add(
                TraceEventKind.TOOL_AVAILABLE,
                f"{descriptor.provider_id}:{descriptor.name}",
                descriptor.description,
            )

    # ========================================================================
    # Dispatch
    # ========================================================================

    async def dispatch(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        context: ExecutionContext | None = None,
    ) -> str:
        """
        Invoke a tool on its owning provider and normalize the result.

        This method never raises for tool-level problems: an unknown tool or
        a provider failure comes back as descriptive text the planner can
        react to.

        Args:
            tool_name: Tool to call
            arguments: Tool arguments
            context: Execution context receiving trace events and side-effects

        Returns:
            Normalized text result
        """
        context = context or ExecutionContext()
        arguments = dict(arguments or {})
        trace = context.trace

        descriptor = context.routes.get(tool_name)
        provider = self._providers.get(descriptor.provider_id) if descriptor else None
        if descriptor is None or provider is None:
            message = f"Tool '{tool_name}' not found in registry"
            trace.add(TraceEventKind.ERROR, f"Tool not found: {tool_name}", message)
            return message

        trace.add(
            TraceEventKind.TOOL_CALL,
            f"Calling tool: {tool_name} on {descriptor.provider_id}",
            json.dumps(arguments, default=str),
        )

        try:
            raw = await provider.invoke(tool_name, arguments, context)
        except Exception as e:
            message = f"Error calling tool '{tool_name}': {str(e) or type(e).__name__}"
            trace.add(TraceEventKind.ERROR, f"Tool call failed: {tool_name}", message)
            logger.error(
                f"Tool '{tool_name}' failed on provider '{descriptor.provider_id}': {e!r}",
                exc_info=True,
                extra={"tool_name": tool_name, "provider_id": descriptor.provider_id},
            )
            return message

        text = normalize(raw)
        trace.add(
            TraceEventKind.TOOL_RESPONSE,
            f"Tool response: {tool_name} from {descriptor.provider_id}",
            text,
        )
        return text

    # ========================================================================
    # Lookup
    # ========================================================================

    def tool_schemas(self, context: ExecutionContext) -> list[dict[str, Any]]:
        """Planner-facing schemas for the tools enumerated into ``context``."""
        return [d.to_schema() for d in context.routes.values()]

    def get_descriptor(self, name: str, context: ExecutionContext) -> ToolDescriptor | None:
        return context.routes.get(name)

    def __repr__(self) -> str:
        return f"ToolRegistry(providers={self.provider_ids})"
