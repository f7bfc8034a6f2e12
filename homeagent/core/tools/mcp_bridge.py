"""
homeagent.core.tools.mcp_bridge - MCP Server Bridge

Opens connections to external MCP (Model Context Protocol) tool servers and
exposes them as a ProviderConnectionSet for the ToolRegistry.

Requires the `mcp` package (imported lazily so the rest of homeagent works
without it).

Example:
    >>> bridge = MCPBridge()
    >>> await bridge.connect_all([
    ...     MCPServerConfig(
    ...         name="duckduckgo",
    ...         transport="docker",
    ...         command=["run", "-i", "--rm", "mcp/duckduckgo"],
    ...     ),
    ...     MCPServerConfig(name="hass-proxy", transport="http", url="http://localhost:8080/mcp"),
    ... ])
    >>> registry = ToolRegistry(LocalToolProvider(devices), bridge.connection_set())
    >>> await bridge.disconnect_all()
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import Any

from pydantic import BaseModel, Field

from homeagent.exceptions import ProviderConnectionError

from .remote import ProviderConnectionSet, RemoteToolProvider

logger = logging.getLogger(__name__)


class MCPServerConfig(BaseModel):
    """Configuration for connecting to an MCP server."""

    name: str = Field(..., description="Server name, used as the provider id (e.g., 'duckduckgo')")
    transport: str = Field(default="stdio", description="Transport: stdio, docker, http or sse")
    command: list[str] | None = Field(
        default=None,
        description="Command for stdio/docker transport (e.g., ['node', 'server.js'])",
    )
    url: str | None = Field(
        default=None,
        description="Endpoint for http/sse transport (e.g., 'http://localhost:8080/mcp')",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment variables for the stdio subprocess",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra HTTP headers for http/sse transport",
    )
    enabled: bool = Field(default=True, description="Disabled servers are skipped by connect_all()")
    timeout_seconds: float | None = Field(
        default=None, gt=0, description="Per-call timeout for list/call requests"
    )


_TRANSPORTS: tuple[str, ...] = ("stdio", "docker", "http", "sse")


class MCPBridge:
    """
    Manages connections to external MCP servers.

    Each connection owns an AsyncExitStack holding the transport and the
    ClientSession, so ``disconnect()`` tears both down in order.

    Example:
        >>> async with MCPBridge() as bridge:
        ...     await bridge.connect(MCPServerConfig(name="yt", command=["uvx", "yt-mcp"]))
        ...     connections = bridge.connection_set()
    """

    def __init__(self) -> None:
        # server_name -> {"stack", "session", "provider", "config"}
        self._connections: dict[str, dict[str, Any]] = {}

    @property
    def connected_servers(self) -> list[str]:
        """Names of currently connected servers."""
        return sorted(self._connections)

    async def __aenter__(self) -> MCPBridge:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect_all()

    async def connect(self, config: MCPServerConfig) -> RemoteToolProvider:
        """Connect to an MCP server.

        Args:
            config: Server connection configuration

        Returns:
            RemoteToolProvider wrapping the initialized session

        Raises:
            ValueError: If transport config is invalid
            ImportError: If the mcp package is not installed
            ProviderConnectionError: If the connection or handshake fails
        """
        if config.transport not in _TRANSPORTS:
            raise ValueError(
                f"Unknown transport '{config.transport}'. Use one of: {', '.join(_TRANSPORTS)}."
            )
        if config.transport in ("stdio", "docker") and not config.command:
            raise ValueError(f"{config.transport} transport requires 'command' in config")
        if config.transport in ("http", "sse") and not config.url:
            raise ValueError(f"{config.transport} transport requires 'url' in config")

        existing = self._connections.get(config.name)
        if existing is not None:
            logger.warning(f"Already connected to MCP server: {config.name}")
            return existing["provider"]

        from mcp import ClientSession

        stack = AsyncExitStack()
        try:
            read_stream, write_stream = await self._open_transport(stack, config)
            session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
            await session.initialize()
        except Exception as e:
            await stack.aclose()
            raise ProviderConnectionError(
                f"Failed to connect to MCP server '{config.name}': {e}"
            ) from e
        except BaseException:
            # Cancelled mid-handshake: still tear down the transport
            await stack.aclose()
            raise

        provider = RemoteToolProvider(config.name, session, timeout_seconds=config.timeout_seconds)
        self._connections[config.name] = {
            "stack": stack,
            "session": session,
            "provider": provider,
            "config": config,
        }

        logger.info(
            f"Connected to MCP server '{config.name}' via {config.transport}",
            extra={"server_name": config.name, "transport": config.transport},
        )
        return provider

    async def _open_transport(self, stack: AsyncExitStack, config: MCPServerConfig) -> tuple[Any, Any]:
        """Enter the transport context and return its (read, write) streams."""
        if config.transport in ("stdio", "docker"):
            from mcp import StdioServerParameters
            from mcp.client.stdio import stdio_client

            command = list(config.command or [])
            if config.transport == "docker" and command[0] != "docker":
                command = ["docker", *command]

            params = StdioServerParameters(
                command=command[0],
                args=command[1:],
                env=config.env or None,
            )
            read_stream, write_stream = await stack.enter_async_context(stdio_client(params))
            return read_stream, write_stream

        if config.transport == "sse":
            from mcp.client.sse import sse_client

            read_stream, write_stream = await stack.enter_async_context(
                sse_client(config.url, headers=config.headers or None)
            )
            return read_stream, write_stream

        from mcp.client.streamable_http import streamablehttp_client

        read_stream, write_stream, _ = await stack.enter_async_context(
            streamablehttp_client(config.url, headers=config.headers or None)
        )
        return read_stream, write_stream

    async def connect_all(self, configs: list[MCPServerConfig]) -> ProviderConnectionSet:
        """Connect every enabled server; failures are logged and skipped.

        Args:
            configs: Server configurations

        Returns:
            ProviderConnectionSet of the servers that connected
        """
        for config in configs:
            if not config.enabled:
                logger.info(f"Skipping disabled MCP server: {config.name}")
                continue
            try:
                await self.connect(config)
            except (ValueError, ImportError, ProviderConnectionError) as e:
                logger.warning(
                    f"Failed to create MCP client for server {config.name}: {e}",
                    exc_info=True,
                    extra={"server_name": config.name, "transport": config.transport},
                )
        return self.connection_set()

    def connection_set(self) -> ProviderConnectionSet:
        """Snapshot of the current connections."""
        return ProviderConnectionSet([conn["provider"] for conn in self._connections.values()])

    async def disconnect(self, server_name: str) -> None:
        """Disconnect from an MCP server.

        Args:
            server_name: Name of the server to disconnect
        """
        conn = self._connections.pop(server_name, None)
        if conn is None:
            logger.warning(f"No connection found for MCP server: {server_name}")
            return

        try:
            await conn["stack"].aclose()
        except Exception:
            logger.warning(
                f"Error closing MCP session for {server_name}",
                exc_info=True,
            )

        logger.info(
            f"Disconnected from MCP server: {server_name}",
            extra={"server_name": server_name},
        )

    async def disconnect_all(self) -> None:
        """Disconnect from all MCP servers."""
        for name in list(self._connections):
            await self.disconnect(name)
