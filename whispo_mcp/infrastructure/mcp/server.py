"""
Server role: answers JSON-RPC requests from external MCP clients.

``MCPRequestDispatcher`` routes one decoded message at a time through a
method table and always produces a well-formed response for requests;
notifications never get one. It is transport-agnostic; see
``stdio_server`` for the stdio loop.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from opentelemetry.trace import SpanKind

from whispo_mcp.configuration.config import Settings, get_settings
from whispo_mcp.domain.exceptions.mcp import (
    MCPDomainError,
    MCPInvalidParamsError,
    MCPPromptNotFoundError,
    MCPProtocolError,
    MCPResourceNotFoundError,
)
from whispo_mcp.domain.model.mcp.connection import ServerInfo
from whispo_mcp.domain.model.mcp.protocol import (
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    parse_message,
)
from whispo_mcp.domain.model.mcp.resource import (
    McpPrompt,
    McpResource,
    PromptArgument,
    ResourceContents,
)
from whispo_mcp.domain.ports.host_ports import HostStatePort
from whispo_mcp.infrastructure.mcp.tool_registry import ToolRegistry
from whispo_mcp.infrastructure.telemetry import add_span_attributes, async_with_tracer

logger = logging.getLogger(__name__)

HISTORY_RESOURCE_LIMIT = 100

WHISPO_RESOURCES: tuple[McpResource, ...] = (
    McpResource(
        uri="whispo://config",
        name="Whispo Configuration",
        description="Current Whispo configuration",
        mime_type="application/json",
    ),
    McpResource(
        uri="whispo://history",
        name="Transcription History",
        description="Recent transcription history",
        mime_type="application/json",
    ),
    McpResource(
        uri="whispo://glossary",
        name="User Glossary",
        description="Custom terms and replacements",
        mime_type="application/json",
    ),
)

WHISPO_PROMPTS: tuple[McpPrompt, ...] = (
    McpPrompt(
        name="transcription_help",
        description="Get help improving transcription accuracy",
    ),
    McpPrompt(
        name="format_transcript",
        description="Format a transcript for specific context",
        arguments=(
            PromptArgument(name="transcript", description="The transcript to format", required=True),
            PromptArgument(
                name="context", description="Target context (code, email, etc.)", required=True
            ),
        ),
    ),
)

MethodHandler = Callable[[dict[str, Any]], Awaitable[Any]]


def _request_id_of(data: Any) -> Any:
    """Best-effort id of a malformed request, for echoing in the error."""
    if isinstance(data, dict):
        value = data.get("id")
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return value
    return None


class MCPRequestDispatcher:
    """
    Routes inbound MCP requests to local handlers.

    Every method either has a handler or is answered with -32601; handler
    failures become JSON-RPC error responses, tool failures become
    ``isError`` tool results.
    """

    def __init__(
        self,
        tool_registry: ToolRegistry,
        host_state: HostStatePort,
        settings: Settings | None = None,
    ) -> None:
        self._tools = tool_registry
        self._host_state = host_state
        self._settings = settings or get_settings()
        self._resources = {resource.uri: resource for resource in WHISPO_RESOURCES}
        self._prompts = {prompt.name: prompt for prompt in WHISPO_PROMPTS}

        self.initialized = False
        self.client_info: ServerInfo | None = None
        self.client_capabilities: dict[str, Any] = {}

        self._methods: dict[str, MethodHandler] = {
            "initialize": self._handle_initialize,
            "ping": self._handle_ping,
            "tools/list": self._handle_list_tools,
            "tools/call": self._handle_call_tool,
            "resources/list": self._handle_list_resources,
            "resources/read": self._handle_read_resource,
            "prompts/list": self._handle_list_prompts,
            "prompts/get": self._handle_get_prompt,
        }

    @property
    def methods(self) -> list[str]:
        return list(self._methods)

    @async_with_tracer("mcp.server", kind=SpanKind.SERVER)
    async def handle_message(self, data: Any) -> dict[str, Any] | None:
        """
        Handle one decoded JSON-RPC message.

        Args:
            data: The decoded JSON value of one frame.

        Returns:
            The response object, or None for notifications and stray
            responses.
        """
        try:
            message = parse_message(data)
        except MCPProtocolError as e:
            logger.warning(f"[MCP] Invalid request: {e.message}")
            return JsonRpcResponse.failure(_request_id_of(data), e.code, e.message, e.data).to_dict()

        if isinstance(message, JsonRpcNotification):
            await self._handle_notification(message)
            return None
        if isinstance(message, JsonRpcResponse):
            logger.debug(f"[MCP] Ignoring response from client (id={message.id!r})")
            return None
        return (await self._handle_request(message)).to_dict()

    async def _handle_request(self, request: JsonRpcRequest) -> JsonRpcResponse:
        add_span_attributes({"mcp.method": request.method})
        handler = self._methods.get(request.method)
        if handler is None:
            logger.warning(f"[MCP] Method not found: {request.method}")
            return JsonRpcResponse.failure(
                request.id, METHOD_NOT_FOUND, f"Method not found: {request.method}"
            )

        try:
            result = await handler(request.params)
        except MCPProtocolError as e:
            logger.warning(f"[MCP] {request.method} rejected: {e.message}")
            return JsonRpcResponse.failure(request.id, e.code, e.message, e.data)
        except MCPDomainError as e:
            error = e.to_protocol_error()
            logger.warning(f"[MCP] {request.method} failed: {error.message}")
            return JsonRpcResponse.failure(request.id, error.code, error.message, error.data)
        except Exception as e:
            logger.error(f"Error handling method {request.method}: {e}", exc_info=True)
            return JsonRpcResponse.failure(request.id, INTERNAL_ERROR, "Internal error", str(e))
        return JsonRpcResponse.success(request.id, result)

    async def _handle_notification(self, notification: JsonRpcNotification) -> None:
        """Handle JSON-RPC notifications."""
        if notification.method == "notifications/initialized":
            self.initialized = True
            logger.info("Client initialized")
        else:
            logger.debug(f"Received notification: {notification.method}")

    # ------------------------------------------------------------------
    # Method handlers
    # ------------------------------------------------------------------

    async def _handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        client_info = params.get("clientInfo")
        capabilities = params.get("capabilities")
        self.client_info = ServerInfo.from_dict(client_info if isinstance(client_info, dict) else None)
        self.client_capabilities = dict(capabilities) if isinstance(capabilities, dict) else {}
        self.initialized = True

        logger.info(
            f"[MCP] initialize - client={self.client_info.name} "
            f"version={self.client_info.version} "
            f"protocol={params.get('protocolVersion', 'unknown')}"
        )
        return {
            "protocolVersion": self._settings.protocol_version,
            "capabilities": {
                "tools": {"listChanged": False},
                "resources": {"subscribe": False, "listChanged": False},
                "prompts": {"listChanged": False},
                "logging": {},
            },
            "serverInfo": {
                "name": self._settings.server_name,
                "version": self._settings.server_version,
            },
        }

    async def _handle_ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def _handle_list_tools(self, params: dict[str, Any]) -> dict[str, Any]:
        tools = [definition.to_dict() for definition in self._tools.list_definitions()]
        logger.info(f"[MCP] tools/list - Returning {len(tools)} tools")
        return {"tools": tools}

    async def _handle_call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        tool_name = params.get("name")
        if not isinstance(tool_name, str) or not tool_name:
            raise MCPInvalidParamsError("tools/call requires a string 'name'")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        elif not isinstance(arguments, dict):
            raise MCPInvalidParamsError("'arguments' must be an object")

        result = await self._tools.call(tool_name, arguments)
        return result.to_dict()

    async def _handle_list_resources(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"resources": [resource.to_dict() for resource in self._resources.values()]}

    async def _handle_read_resource(self, params: dict[str, Any]) -> dict[str, Any]:
        uri = params.get("uri")
        if not isinstance(uri, str) or not uri:
            raise MCPInvalidParamsError("resources/read requires a string 'uri'")
        resource = self._resources.get(uri)
        if resource is None:
            raise MCPResourceNotFoundError(uri)

        if uri == "whispo://config":
            payload: Any = self._host_state.settings_snapshot()
        elif uri == "whispo://history":
            payload = {"items": self._host_state.history(limit=HISTORY_RESOURCE_LIMIT)}
        else:
            payload = {"entries": [entry.to_dict() for entry in self._host_state.glossary()]}

        contents = ResourceContents(
            uri=uri,
            mime_type=resource.mime_type or "application/json",
            text=json.dumps(payload, indent=2, ensure_ascii=False),
        )
        return {"contents": [contents.to_dict()]}

    async def _handle_list_prompts(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"prompts": [prompt.to_dict() for prompt in self._prompts.values()]}

    async def _handle_get_prompt(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise MCPInvalidParamsError("prompts/get requires a string 'name'")
        prompt = self._prompts.get(name)
        if prompt is None:
            raise MCPPromptNotFoundError(name)

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        elif not isinstance(arguments, dict):
            raise MCPInvalidParamsError("'arguments' must be an object")
        missing = [arg for arg in prompt.required_arguments if not arguments.get(arg)]
        if missing:
            raise MCPInvalidParamsError(
                f"prompt '{name}' is missing required argument(s): {', '.join(missing)}"
            )

        if name == "transcription_help":
            text = "Help me improve my voice dictation accuracy"
        else:
            text = (
                f"Format the following transcript for a {arguments['context']} context. "
                f"Fix punctuation and casing, keep the wording.\n\n{arguments['transcript']}"
            )
        return {
            "description": prompt.description,
            "messages": [{"role": "user", "content": {"type": "text", "text": text}}],
        }
