"""
MCP Connection Manager.

Owns every client-role connection: spawns them from configuration, routes
requests and tool calls to them, and tears them all down on shutdown.
The registry lock guards membership only; no request round trip ever
runs while it is held.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from whispo_mcp.configuration.config import Settings, get_settings
from whispo_mcp.domain.events.mcp_events import (
    MCPEvent,
    ServerClosedEvent,
    ServerConnectedEvent,
    ServerFailedEvent,
)
from whispo_mcp.domain.exceptions.mcp import (
    MCPConnectionClosedError,
    MCPError,
    MCPServerNotConnectedError,
    MCPServerNotFoundError,
    MCPToolNotFoundError,
)
from whispo_mcp.domain.model.mcp.config import McpConfiguration, ServerConfig
from whispo_mcp.domain.model.mcp.connection import ConnectionInfo
from whispo_mcp.domain.model.mcp.tool import ToolDefinition, ToolResult
from whispo_mcp.domain.ports.host_ports import EventPublisherPort
from whispo_mcp.infrastructure.mcp.connection import ServerConnection

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[..., ServerConnection]


@dataclass
class InitializationReport:
    """Outcome of connecting the configured servers."""

    connected: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        return {"connected": self.connected, "failed": self.failed, "skipped": self.skipped}


class MCPConnectionManager:
    """
    Registry of client-role MCP connections.

    Usage:
        async with MCPConnectionManager(publisher=publisher) as manager:
            report = await manager.initialize_all(config)
            result = await manager.call_tool("get_active_file", {})
    """

    def __init__(
        self,
        settings: Settings | None = None,
        publisher: EventPublisherPort | None = None,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._publisher = publisher
        self._connection_factory = connection_factory or ServerConnection
        self._lock = asyncio.Lock()
        self._connections: dict[str, ServerConnection] = {}
        # Connections still spawning or handshaking, so shutdown can reach them
        self._connecting: dict[str, ServerConnection] = {}
        self._failures: dict[str, ConnectionInfo] = {}

    async def __aenter__(self) -> "MCPConnectionManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    def _publish(self, event: MCPEvent) -> None:
        if self._publisher is None:
            return
        try:
            self._publisher.publish(event)
        except Exception as e:
            logger.warning(f"Failed to publish {event.event_type.value} event: {e}")

    def _handle_connection_closed(self, connection: ServerConnection) -> None:
        self._publish(ServerClosedEvent(server_name=connection.name))

    # ------------------------------------------------------------------
    # Connecting
    # ------------------------------------------------------------------

    async def connect_server(self, config: ServerConfig) -> ServerConnection:
        """
        Connect one server, replacing any connection registered under its name.

        Raises:
            MCPConnectionError: Spawn or handshake failed (already logged,
                recorded and published as server_failed).
            MCPConnectionClosedError: shutdown() or close_stale() withdrew the
                connection before it was registered; it has been closed.
        """
        async with self._lock:
            previous = self._connections.pop(config.name, None)
        if previous is not None:
            logger.info(f"Replacing MCP connection '{config.name}'")
            await previous.close()

        connection = self._connection_factory(
            config, self._settings, on_closed=self._handle_connection_closed
        )
        async with self._lock:
            self._connecting[config.name] = connection
        try:
            await connection.connect()
        except MCPError as e:
            async with self._lock:
                # Not ours any more once shutdown or a config update withdrew it
                current = self._withdraw_connecting(connection)
                if current:
                    self._failures[config.name] = connection.info()
            if current:
                self._publish(ServerFailedEvent(server_name=config.name, error=str(e)))
            raise
        except BaseException:
            async with self._lock:
                self._withdraw_connecting(connection)
            raise

        # Leaving _connecting and entering _connections is one step, so a
        # concurrent shutdown always sees the connection in one of them
        async with self._lock:
            registered = self._withdraw_connecting(connection)
            if registered:
                self._connections[config.name] = connection
                self._failures.pop(config.name, None)
        if not registered:
            logger.info(f"MCP server '{config.name}' was withdrawn while connecting; closing it")
            await connection.close()
            raise MCPConnectionClosedError(config.name, "Connection withdrawn while connecting")

        self._publish(
            ServerConnectedEvent(server_name=config.name, tool_count=len(connection.tools))
        )
        return connection

    def _withdraw_connecting(self, connection: ServerConnection) -> bool:
        """Drop ``connection`` from _connecting; False if it was already gone. Lock held."""
        if self._connecting.get(connection.name) is connection:
            del self._connecting[connection.name]
            return True
        return False

    async def _connect_for_report(self, config: ServerConfig) -> str | None:
        try:
            await self.connect_server(config)
        except MCPError as e:
            logger.error(f"Failed to connect MCP server '{config.name}': {e}")
            return str(e)
        return None

    async def initialize_all(self, config: McpConfiguration) -> InitializationReport:
        """
        Connect every enabled server concurrently.

        Servers already READY with an unchanged configuration are kept.
        One server failing never affects the others.

        Raises:
            MCPConfigurationError: The configuration itself is invalid.
        """
        config.validate_servers()
        report = InitializationReport()

        targets: list[ServerConfig] = []
        async with self._lock:
            for name, server in config.servers.items():
                if not server.enabled:
                    report.skipped.append(name)
                    continue
                existing = self._connections.get(name)
                if existing is not None and existing.is_ready and existing.config == server:
                    continue
                targets.append(server)

        if targets:
            logger.info(f"Connecting {len(targets)} MCP server(s): {[s.name for s in targets]}")
            results = await asyncio.gather(
                *(self._connect_for_report(server) for server in targets),
                return_exceptions=True,
            )
            for server, outcome in zip(targets, results):
                if isinstance(outcome, BaseException):
                    logger.error(f"Unexpected error connecting MCP server '{server.name}': {outcome}")
                    report.failed[server.name] = str(outcome) or type(outcome).__name__
                elif outcome is not None:
                    report.failed[server.name] = outcome

        order = {name: index for index, name in enumerate(config.servers)}
        async with self._lock:
            # Completion order is arbitrary; keep routing order stable
            self._connections = dict(
                sorted(self._connections.items(), key=lambda item: order.get(item[0], len(order)))
            )
            report.connected = [
                name
                for name in config.enabled_servers
                if name in self._connections and self._connections[name].is_ready
            ]

        logger.info(
            f"MCP initialization complete: {len(report.connected)} connected, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )
        return report

    async def close_stale(self, config: McpConfiguration) -> list[str]:
        """
        Close connections whose server entry changed, was removed or was disabled.

        Connections still spawning or handshaking are included; their
        ``connect_server`` call fails with MCPConnectionClosedError.

        Returns:
            Names of the closed connections.
        """
        wanted = config.enabled_servers
        async with self._lock:
            stale = [
                connection
                for connection in (*self._connections.values(), *self._connecting.values())
                if wanted.get(connection.name) != connection.config
            ]
            for connection in stale:
                if self._connections.get(connection.name) is connection:
                    del self._connections[connection.name]
                self._withdraw_connecting(connection)
            for name in [name for name in self._failures if name not in wanted]:
                del self._failures[name]

        for connection in stale:
            logger.info(f"MCP server '{connection.name}' changed or removed; closing it")
        results = await asyncio.gather(
            *(connection.close() for connection in stale), return_exceptions=True
        )
        for connection, outcome in zip(stale, results):
            if isinstance(outcome, BaseException):
                logger.error(f"Error closing MCP server '{connection.name}': {outcome}")
        return [connection.name for connection in stale]

    async def disconnect_server(self, name: str) -> bool:
        """Close and unregister one connection. Returns False if unknown."""
        async with self._lock:
            connection = self._connections.pop(name, None)
            self._failures.pop(name, None)
        if connection is None:
            return False
        await connection.close()
        return True

    # ------------------------------------------------------------------
    # Lookups and routing
    # ------------------------------------------------------------------

    async def get_connection(self, name: str) -> ServerConnection:
        async with self._lock:
            connection = self._connections.get(name)
        if connection is None:
            raise MCPServerNotFoundError(name)
        return connection

    async def _ready_connection(self, name: str) -> ServerConnection:
        connection = await self.get_connection(name)
        if not connection.is_ready:
            raise MCPServerNotConnectedError(name, connection.state.value)
        return connection

    async def request(
        self,
        connection_name: str,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Forward a request to a named connection.

        Raises:
            MCPServerNotFoundError: No connection by that name.
            MCPServerNotConnectedError: The connection is not READY.
        """
        connection = await self._ready_connection(connection_name)
        return await connection.request(method, params, timeout=timeout)

    async def _snapshot(self) -> list[ServerConnection]:
        async with self._lock:
            return list(self._connections.values())

    async def list_tools(self) -> list[ToolDefinition]:
        """Tools of every READY connection, in registry order."""
        tools: list[ToolDefinition] = []
        for connection in await self._snapshot():
            if connection.is_ready:
                tools.extend(connection.tools)
        return tools

    async def find_tool_server(self, tool_name: str) -> str | None:
        for connection in await self._snapshot():
            if connection.is_ready and connection.has_tool(tool_name):
                return connection.name
        return None

    async def call_tool(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        server_name: str | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """
        Call a tool on ``server_name`` or on the first READY server listing it.

        Raises:
            MCPToolNotFoundError: No READY server lists the tool.
            MCPServerNotFoundError / MCPServerNotConnectedError: For an
                explicit ``server_name``.
        """
        if server_name is not None:
            connection = await self._ready_connection(server_name)
        else:
            target = await self.find_tool_server(tool_name)
            if target is None:
                raise MCPToolNotFoundError(tool_name)
            connection = await self._ready_connection(target)
        return await connection.call_tool(tool_name, arguments, timeout=timeout)

    async def connection_states(self) -> dict[str, ConnectionInfo]:
        """Snapshot of every known server, failed ones included."""
        async with self._lock:
            states = dict(self._failures)
            states.update({name: conn.info() for name, conn in self._connecting.items()})
            states.update({name: conn.info() for name, conn in self._connections.items()})
        return states

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Close every connection concurrently. Safe to call repeatedly."""
        async with self._lock:
            connections = list(self._connections.values()) + list(self._connecting.values())
            self._connections.clear()
            self._connecting.clear()
        if not connections:
            return

        logger.info(f"Shutting down {len(connections)} MCP connection(s)")
        results = await asyncio.gather(
            *(connection.close() for connection in connections), return_exceptions=True
        )
        for connection, outcome in zip(connections, results):
            if isinstance(outcome, BaseException):
                logger.error(f"Error closing MCP server '{connection.name}': {outcome}")
