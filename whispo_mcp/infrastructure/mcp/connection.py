"""
One connection to an external MCP server over stdio.

A ``ServerConnection`` spawns the server process, performs the initialize
handshake, caches the server's tool/resource/prompt catalogs and forwards
requests through its ``StdioTransport``. Its lifecycle follows
``ConnectionState``; a failed or closed connection is never reused.
"""

import asyncio
import logging
import os
import shlex
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from opentelemetry.trace import SpanKind

from whispo_mcp.configuration.config import Settings, get_settings
from whispo_mcp.domain.exceptions.mcp import (
    MCPError,
    MCPHandshakeError,
    MCPProtocolError,
    MCPRequestTimeoutError,
    MCPServerNotConnectedError,
    MCPSpawnError,
)
from whispo_mcp.domain.model.mcp.config import ServerConfig
from whispo_mcp.domain.model.mcp.connection import (
    ConnectionInfo,
    ConnectionState,
    ServerCapabilities,
    ServerInfo,
)
from whispo_mcp.domain.model.mcp.resource import McpPrompt, McpResource
from whispo_mcp.domain.model.mcp.tool import ToolDefinition, ToolResult
from whispo_mcp.infrastructure.mcp.transport.stdio import NotificationCallback, StdioTransport
from whispo_mcp.infrastructure.telemetry import add_span_attributes, async_with_tracer

logger = logging.getLogger(__name__)

# Guard against servers that keep returning the same cursor
MAX_LIST_PAGES = 50


class ServerConnection:
    """
    Client-role connection to one MCP server.

    Usage:
        connection = ServerConnection(config)
        await connection.connect()
        result = await connection.call_tool("get_active_file", {})
        await connection.close()
    """

    def __init__(
        self,
        config: ServerConfig,
        settings: Settings | None = None,
        on_notification: NotificationCallback | None = None,
        on_closed: Callable[["ServerConnection"], None] | None = None,
    ) -> None:
        self.config = config
        self.name = config.name
        self._settings = settings or get_settings()
        self._on_notification = on_notification
        self._on_closed = on_closed

        self._state = ConnectionState.DISCONNECTED
        self._process: asyncio.subprocess.Process | None = None
        self._transport: StdioTransport | None = None
        self._close_lock = asyncio.Lock()

        self.capabilities = ServerCapabilities()
        self.server_info: ServerInfo | None = None
        self.protocol_version: str | None = None
        self.tools: list[ToolDefinition] = []
        self.resources: list[McpResource] = []
        self.prompts: list[McpPrompt] = []
        self.error: str | None = None
        self.connected_at: datetime | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == ConnectionState.READY

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def stderr_tail(self) -> list[str]:
        return self._transport.stderr_tail if self._transport else []

    def has_tool(self, tool_name: str) -> bool:
        return any(tool.name == tool_name for tool in self.tools)

    def _transition(self, target: ConnectionState) -> None:
        if not self._state.can_transition_to(target):
            raise RuntimeError(
                f"MCP server '{self.name}': illegal state transition "
                f"{self._state.value} -> {target.value}"
            )
        logger.debug(f"MCP server '{self.name}': {self._state.value} -> {target.value}")
        self._state = target

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Spawn the server and complete the initialize handshake.

        Raises:
            MCPSpawnError: The process could not be started.
            MCPHandshakeError: The server did not answer initialize properly.
            RuntimeError: The connection was already used.
        """
        self._transition(ConnectionState.SPAWNING)
        try:
            await self._spawn()
        except MCPSpawnError as e:
            self._fail(str(e))
            raise

        try:
            self._ensure_not_closed(ConnectionState.SPAWNING)
            self._transition(ConnectionState.INITIALIZING)
            await self._handshake()
            await self._load_catalogs()
            if self._transport is None or self._transport.is_closed:
                message = self._with_stderr("server exited during initialization")
                raise MCPHandshakeError(self.name, message)
            self._ensure_not_closed(ConnectionState.INITIALIZING)
        except MCPHandshakeError as e:
            await self._abort(str(e))
            raise
        except (Exception, asyncio.CancelledError) as e:
            await self._abort(str(e) or type(e).__name__)
            if isinstance(e, asyncio.CancelledError):
                raise
            raise MCPHandshakeError(self.name, str(e), e) from e

        self.connected_at = datetime.now(UTC)
        self._transition(ConnectionState.READY)
        logger.info(
            f"MCP server '{self.name}' ready: {self.server_info.name if self.server_info else '?'} "
            f"({len(self.tools)} tools, {len(self.resources)} resources, {len(self.prompts)} prompts)"
        )

    async def _spawn(self) -> None:
        env = os.environ.copy()
        if self.config.env:
            env.update(self.config.env)

        logger.info(f"Starting MCP server '{self.name}': {shlex.join(self.config.command_line)}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.config.command,
                *self.config.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                limit=self._settings.stream_buffer_limit,
            )
        except (OSError, ValueError) as e:
            raise MCPSpawnError(self.name, self.config.command, e) from e

        self._transport = StdioTransport(
            self.name,
            self._process,
            on_notification=self._on_notification,
            on_close=self._handle_transport_closed,
        )
        self._transport.start()

    async def _handshake(self) -> None:
        settings = self._settings
        params = {
            "protocolVersion": settings.protocol_version,
            "capabilities": {"tools": {}, "resources": {"subscribe": True}},
            "clientInfo": {"name": settings.client_name, "version": settings.client_version},
        }
        timeout = settings.handshake_timeout_seconds
        try:
            result = await self._transport.request("initialize", params, timeout=timeout)
        except MCPRequestTimeoutError as e:
            raise MCPHandshakeError(
                self.name, self._with_stderr(f"no initialize response within {timeout}s"), e
            ) from e
        except MCPProtocolError as e:
            raise MCPHandshakeError(
                self.name, f"initialize returned error {e.code}: {e.message}", e
            ) from e
        except MCPError as e:
            raise MCPHandshakeError(
                self.name, self._with_stderr("server exited during initialize"), e
            ) from e

        if not isinstance(result, dict) or not isinstance(result.get("protocolVersion"), str):
            raise MCPHandshakeError(self.name, "initialize result has no protocolVersion")
        capabilities = result.get("capabilities")
        if not isinstance(capabilities, dict):
            raise MCPHandshakeError(self.name, "initialize result has no capabilities object")

        self.protocol_version = result["protocolVersion"]
        if self.protocol_version != settings.protocol_version:
            logger.warning(
                f"MCP server '{self.name}' speaks protocol {self.protocol_version}, "
                f"requested {settings.protocol_version}"
            )
        self.capabilities = ServerCapabilities.from_dict(capabilities)
        self.server_info = ServerInfo.from_dict(result.get("serverInfo"))

        await self._transport.notify("notifications/initialized")

    async def _load_catalogs(self) -> None:
        if self.capabilities.tools is not None:
            self.tools = [
                ToolDefinition.from_dict(item)
                for item in await self._fetch_list("tools/list", "tools")
                if item.get("name")
            ]
        if self.capabilities.resources is not None:
            self.resources = [
                McpResource.from_dict(item)
                for item in await self._fetch_list("resources/list", "resources")
                if item.get("uri")
            ]
        if self.capabilities.prompts is not None:
            self.prompts = [
                McpPrompt.from_dict(item)
                for item in await self._fetch_list("prompts/list", "prompts")
                if item.get("name")
            ]

    async def _fetch_list(self, method: str, key: str) -> list[dict[str, Any]]:
        """Fetch every page of a catalog; a failure yields an empty catalog."""
        items: list[dict[str, Any]] = []
        cursor: str | None = None
        for _ in range(MAX_LIST_PAGES):
            params = {"cursor": cursor} if cursor else {}
            try:
                result = await self._transport.request(
                    method, params, timeout=self._settings.request_timeout_seconds
                )
            except MCPError as e:
                logger.warning(f"MCP server '{self.name}': {method} failed: {e}")
                return []
            if not isinstance(result, dict):
                logger.warning(f"MCP server '{self.name}': {method} returned {type(result).__name__}")
                return []
            items.extend(item for item in result.get(key) or [] if isinstance(item, dict))
            cursor = result.get("nextCursor")
            if not cursor:
                break
        return items

    def _ensure_not_closed(self, expected: ConnectionState) -> None:
        # close() may run while connect() is suspended
        if self._state != expected:
            raise MCPHandshakeError(self.name, "connection closed during startup")

    def _with_stderr(self, reason: str) -> str:
        tail = self.stderr_tail[-3:]
        if tail:
            return f"{reason}; stderr: {' | '.join(tail)}"
        return reason

    def _fail(self, message: str) -> None:
        self.error = message
        if self._state != ConnectionState.FAILED:
            self._transition(ConnectionState.FAILED)
        logger.error(f"MCP server '{self.name}' failed: {message}")

    async def _abort(self, message: str) -> None:
        """Kill the process of a connection that never became READY."""
        self._fail(message)
        await self._terminate_process(grace=0)
        if self._transport is not None:
            await self._transport.stop()

    def _handle_transport_closed(self) -> None:
        # During startup the pending handshake call reports the failure
        if self._state == ConnectionState.READY:
            exit_code = self._process.returncode if self._process else None
            logger.warning(f"MCP server '{self.name}' closed its connection (exit code {exit_code})")
            self._enter_closed()

    def _enter_closed(self) -> None:
        was_ready = self._state == ConnectionState.READY
        self._transition(ConnectionState.CLOSED)
        if was_ready and self._on_closed is not None:
            try:
                self._on_closed(self)
            except Exception:
                logger.exception(f"MCP server '{self.name}': on_closed callback failed")

    async def close(self) -> None:
        """
        Close the connection: terminate, wait for the grace period, then kill.

        Safe to call more than once; only the first call touches the process.
        """
        async with self._close_lock:
            if self._state in (ConnectionState.READY, ConnectionState.DISCONNECTED):
                self._enter_closed()
            elif self._state in (ConnectionState.SPAWNING, ConnectionState.INITIALIZING):
                self._fail("closed during startup")

            await self._terminate_process(grace=self._settings.shutdown_grace_seconds)
            if self._transport is not None:
                await self._transport.stop()

    async def _terminate_process(self, grace: float) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return

        logger.info(f"Stopping MCP server '{self.name}' (pid {process.pid})")
        try:
            if process.stdin is not None and not process.stdin.is_closing():
                process.stdin.close()
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning(f"MCP server '{self.name}' did not terminate, killing")
                process.kill()
                await process.wait()
        except ProcessLookupError:
            # Exited between the returncode check and the signal
            pass

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Forward a request to the server.

        Raises:
            MCPServerNotConnectedError: The connection is not READY.
        """
        if self._state != ConnectionState.READY or self._transport is None:
            raise MCPServerNotConnectedError(self.name, self._state.value)
        return await self._transport.request(
            method,
            params,
            timeout=timeout if timeout is not None else self._settings.request_timeout_seconds,
        )

    @async_with_tracer("mcp.connection", kind=SpanKind.CLIENT)
    async def call_tool(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """Call a tool on this server and parse its result."""
        add_span_attributes({"mcp.server": self.name, "mcp.tool": tool_name})
        logger.info(f"Calling MCP tool '{tool_name}' on '{self.name}'")
        result = await self.request(
            "tools/call", {"name": tool_name, "arguments": arguments or {}}, timeout=timeout
        )
        if not isinstance(result, dict):
            return ToolResult.error(f"Tool '{tool_name}' returned a malformed result")
        return ToolResult.from_dict(result)

    async def ping(self, timeout: float | None = None) -> bool:
        """Check that the server still answers."""
        try:
            await self.request("ping", {}, timeout=timeout)
            return True
        except MCPError as e:
            logger.warning(f"Ping to MCP server '{self.name}' failed: {e}")
            return False

    def info(self) -> ConnectionInfo:
        return ConnectionInfo(
            name=self.name,
            state=self._state,
            server_info=self.server_info,
            tool_count=len(self.tools),
            resource_count=len(self.resources),
            prompt_count=len(self.prompts),
            error_message=self.error,
            connected_at=self.connected_at,
            pid=self.pid,
        )
