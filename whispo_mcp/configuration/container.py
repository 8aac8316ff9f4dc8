"""Wiring for the MCP subsystem.

``MCPContainer`` is built once by the host at startup and hands each
component the ports it needs. Nothing in the package reaches for a
process-wide sender or registry.
"""

from whispo_mcp.application.services.mcp_service import MCPService
from whispo_mcp.configuration.config import Settings, get_settings
from whispo_mcp.domain.model.mcp.config import McpConfiguration
from whispo_mcp.domain.ports.host_ports import (
    ActiveWindowPort,
    ConfigurationStorePort,
    EventPublisherPort,
    HostStatePort,
    TranscriptionServicePort,
)
from whispo_mcp.infrastructure.adapters.secondary.event_publisher import LoggingEventPublisher
from whispo_mcp.infrastructure.adapters.secondary.host_state import InMemoryHostState
from whispo_mcp.infrastructure.mcp.connection_manager import MCPConnectionManager
from whispo_mcp.infrastructure.mcp.server import MCPRequestDispatcher
from whispo_mcp.infrastructure.mcp.tool_registry import ToolRegistry
from whispo_mcp.infrastructure.mcp.whispo_tools import build_tool_registry


class MCPContainer:
    """Container for the client and server roles.

    Ports the host does not supply fall back to the in-process defaults:
    a logging event publisher and in-memory host state.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        config: McpConfiguration | None = None,
        config_store: ConfigurationStorePort | None = None,
        publisher: EventPublisherPort | None = None,
        host_state: HostStatePort | None = None,
        transcription: TranscriptionServicePort | None = None,
        active_window: ActiveWindowPort | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config = config
        self._config_store = config_store
        self._publisher = publisher or LoggingEventPublisher()
        self._host_state = host_state or InMemoryHostState()
        self._transcription = transcription
        self._active_window = active_window

        self._connection_manager: MCPConnectionManager | None = None
        self._mcp_service: MCPService | None = None
        self._tool_registry: ToolRegistry | None = None
        self._dispatcher: MCPRequestDispatcher | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def publisher(self) -> EventPublisherPort:
        return self._publisher

    @property
    def host_state(self) -> HostStatePort:
        return self._host_state

    def connection_manager(self) -> MCPConnectionManager:
        """Get the client-role connection manager."""
        if self._connection_manager is None:
            self._connection_manager = MCPConnectionManager(
                settings=self._settings, publisher=self._publisher
            )
        return self._connection_manager

    def mcp_service(self) -> MCPService:
        """Get the host-facing MCP service."""
        if self._mcp_service is None:
            self._mcp_service = MCPService(
                self._config,
                config_store=self._config_store,
                connections=self.connection_manager(),
                active_window=self._active_window,
                settings=self._settings,
            )
        return self._mcp_service

    def tool_registry(self) -> ToolRegistry:
        """Get the registry of tools exposed in the server role."""
        if self._tool_registry is None:
            self._tool_registry = build_tool_registry(
                self._host_state, self._publisher, self._transcription
            )
        return self._tool_registry

    def request_dispatcher(self) -> MCPRequestDispatcher:
        """Get the server-role request dispatcher."""
        if self._dispatcher is None:
            self._dispatcher = MCPRequestDispatcher(
                self.tool_registry(), self._host_state, settings=self._settings
            )
        return self._dispatcher
