"""Registry of the tools Whispo exposes to external MCP clients."""

import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from whispo_mcp.domain.model.mcp.tool import ToolDefinition, ToolResult
from whispo_mcp.infrastructure.mcp.validation import MCPValidationError, MCPValidator
from whispo_mcp.infrastructure.telemetry import add_span_attributes, async_with_tracer

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Awaitable[Any] | Any]


@dataclass(frozen=True)
class LocalTool:
    """A tool definition bound to the handler that implements it."""

    definition: ToolDefinition
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.definition.name


def normalize_result(result: Any) -> ToolResult:
    """Convert a handler's return value into a ToolResult."""
    if isinstance(result, ToolResult):
        return result
    if isinstance(result, str):
        return ToolResult.success(result)
    if isinstance(result, dict) and isinstance(result.get("content"), list):
        return ToolResult.from_dict(result)
    if isinstance(result, (dict, list)):
        return ToolResult.json(result)
    if result is None:
        return ToolResult(content=[])
    return ToolResult.success(str(result))


class ToolRegistry:
    """
    Static catalog of local tools with argument validation.

    Handlers receive validated arguments as keyword arguments and may be
    sync or async. Whatever happens inside ``call``, the caller gets a
    ToolResult back.
    """

    def __init__(self) -> None:
        self._tools: dict[str, LocalTool] = {}
        self._validator = MCPValidator()

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        """
        Register a tool.

        Args:
            definition: Name, description and JSON Schema of the tool.
            handler: Callable invoked with the validated arguments.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if definition.name in self._tools:
            raise ValueError(f"Tool already registered: {definition.name}")
        self._validator.register_schema(definition.name, definition.input_schema)
        self._tools[definition.name] = LocalTool(definition=definition, handler=handler)
        logger.debug(f"[MCP] Registered tool: {definition.name}")

    def get(self, name: str) -> LocalTool | None:
        return self._tools.get(name)

    def list_definitions(self) -> list[ToolDefinition]:
        return [tool.definition for tool in self._tools.values()]

    def list_names(self) -> list[str]:
        return list(self._tools)

    @async_with_tracer("mcp.tool_registry")
    async def call(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Validate arguments, run the handler and normalize its result."""
        add_span_attributes({"mcp.tool": name})
        tool = self._tools.get(name)
        if tool is None:
            logger.warning(f"[MCP] tools/call FAILED - Unknown tool: {name}")
            return ToolResult.error(f"Unknown tool: {name}")

        try:
            validated = self._validator.validate(name, arguments or {})
        except MCPValidationError as e:
            logger.warning(f"[MCP] tools/call FAILED - {e}")
            return ToolResult.error(f"Invalid arguments for {name}: " + "; ".join(e.messages))

        logger.info(f"[MCP] tools/call START - tool={name}")
        start_time = time.monotonic()
        try:
            result = tool.handler(**validated)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.error(
                f"[MCP] tools/call EXCEPTION - tool={name} elapsed={elapsed_ms:.1f}ms error={e}",
                exc_info=True,
            )
            return ToolResult.error(f"Error: {e}")

        response = normalize_result(result)
        elapsed_ms = (time.monotonic() - start_time) * 1000
        status = "ERROR" if response.is_error else "OK"
        logger.info(f"[MCP] tools/call END - tool={name} status={status} elapsed={elapsed_ms:.1f}ms")
        return response
