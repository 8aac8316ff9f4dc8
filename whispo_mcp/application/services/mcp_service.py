"""
MCP Service - host-facing API of the MCP subsystem.

Holds the current McpConfiguration, applies typed updates to it (closing
connections the update invalidates), and fronts the connection manager
and context aggregator. With ``enabled=false`` every operation is a no-op
and no process is spawned.
"""

import asyncio
import logging
from typing import Any

from whispo_mcp.application.services.context_aggregator import ContextAggregator
from whispo_mcp.configuration.config import Settings
from whispo_mcp.domain.exceptions.mcp import MCPError, MCPServerNotFoundError
from whispo_mcp.domain.model.mcp.config import (
    ContextAwarenessConfig,
    McpConfiguration,
    ServerConfig,
)
from whispo_mcp.domain.model.mcp.connection import ConnectionInfo
from whispo_mcp.domain.model.mcp.context import TranscriptionContext
from whispo_mcp.domain.model.mcp.tool import ToolDefinition, ToolResult
from whispo_mcp.domain.ports.host_ports import (
    ActiveWindowPort,
    ConfigurationStorePort,
    EventPublisherPort,
)
from whispo_mcp.infrastructure.mcp.connection_manager import (
    InitializationReport,
    MCPConnectionManager,
)

logger = logging.getLogger(__name__)


class MCPService:
    """
    Entry point the host uses for everything MCP.

    Usage:
        async with MCPService(config, publisher=publisher) as mcp:
            await mcp.initialize()
            text = await mcp.enhance_transcript("Call the API now")
    """

    def __init__(
        self,
        config: McpConfiguration | None = None,
        *,
        config_store: ConfigurationStorePort | None = None,
        connections: MCPConnectionManager | None = None,
        active_window: ActiveWindowPort | None = None,
        publisher: EventPublisherPort | None = None,
        settings: Settings | None = None,
    ) -> None:
        """
        Args:
            config: Initial configuration; loaded from ``config_store`` (or
                the disabled default) when omitted.
            config_store: Persists configuration updates when given.
            connections: Connection manager (one is created when omitted).
            active_window: OS layer for the active application context.
            publisher: Sink for connection lifecycle events.
            settings: Process settings.
        """
        if config is None:
            config = config_store.load() if config_store is not None else McpConfiguration()
        self._config = config
        self._config_store = config_store
        self._connections = connections or MCPConnectionManager(settings, publisher)
        self._aggregator = ContextAggregator(self._connections, active_window)
        self._update_lock = asyncio.Lock()

    async def __aenter__(self) -> "MCPService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    @property
    def connections(self) -> MCPConnectionManager:
        return self._connections

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def is_enabled(self) -> bool:
        return self._config.enabled

    def get_config(self) -> McpConfiguration:
        return self._config

    async def initialize(self) -> InitializationReport:
        """Connect every enabled server that is not already READY."""
        if not self._config.enabled:
            logger.debug("MCP is disabled; skipping initialization")
            return InitializationReport()
        return await self._connections.initialize_all(self._config)

    async def update_config(self, config: McpConfiguration) -> None:
        """
        Replace the configuration.

        Connections whose server entry changed, was removed or was disabled
        are closed; disabling the subsystem closes all of them. New or
        changed servers are connected by the next ``initialize()``.

        Raises:
            MCPConfigurationError: The new configuration is invalid.
        """
        config.validate_servers()
        async with self._update_lock:
            self._config = config
            if self._config_store is not None:
                self._config_store.save(config)

            if not config.enabled:
                logger.info("MCP disabled; closing all connections")
                await self._connections.shutdown()
                return

            await self._connections.close_stale(config)

    async def set_enabled(self, enabled: bool) -> None:
        await self.update_config(self._config.with_enabled(enabled))

    async def upsert_server(self, server: ServerConfig) -> None:
        await self.update_config(self._config.with_server(server))

    async def remove_server(self, name: str) -> None:
        """
        Raises:
            MCPServerNotFoundError: No server by that name is configured.
        """
        if name not in self._config.servers:
            raise MCPServerNotFoundError(name)
        await self.update_config(self._config.without_server(name))

    async def set_context_awareness(self, context_awareness: ContextAwarenessConfig) -> None:
        await self.update_config(self._config.with_context_awareness(context_awareness))

    # ------------------------------------------------------------------
    # Tools and context
    # ------------------------------------------------------------------

    async def list_tools(self) -> list[ToolDefinition]:
        if not self._config.enabled:
            return []
        return await self._connections.list_tools()

    async def call_tool(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        server_name: str | None = None,
    ) -> ToolResult:
        """Call a tool on a connected server; every failure is an isError result."""
        if not self._config.enabled:
            return ToolResult.error("MCP is disabled")
        try:
            return await self._connections.call_tool(tool_name, arguments, server_name=server_name)
        except MCPError as e:
            logger.warning(f"MCP tool call '{tool_name}' failed: {e}")
            return ToolResult.error(str(e))

    async def get_transcription_context(self) -> TranscriptionContext:
        return await self._aggregator.get_transcription_context(self._config)

    async def enhance_transcript(self, text: str) -> str:
        return await self._aggregator.enhance_transcript(text, self._config)

    async def connection_states(self) -> dict[str, ConnectionInfo]:
        return await self._connections.connection_states()

    async def shutdown(self) -> None:
        await self._connections.shutdown()
