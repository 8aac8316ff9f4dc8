"""
MCP (Model Context Protocol) Domain Models.

Key entities:
- Protocol: JSON-RPC 2.0 envelopes
- Tool: tool definition and execution result
- Resource / Prompt: catalog entries
- Connection: connection state machine and capabilities
- Config: typed MCP configuration
- Context: transcription context value objects
"""

from whispo_mcp.domain.model.mcp.config import (
    ContextAwarenessConfig,
    McpConfiguration,
    ServerConfig,
    load_configuration,
)
from whispo_mcp.domain.model.mcp.connection import (
    ConnectionInfo,
    ConnectionState,
    ServerCapabilities,
    ServerInfo,
)
from whispo_mcp.domain.model.mcp.context import (
    ActiveAppContext,
    ActiveApplication,
    CursorPosition,
    FileContext,
    GlossaryEntry,
    ProjectContext,
    TranscriptionContext,
)
from whispo_mcp.domain.model.mcp.protocol import (
    JsonRpcError,
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
from whispo_mcp.domain.model.mcp.tool import (
    ImageContent,
    ResourceContent,
    TextContent,
    ToolDefinition,
    ToolResult,
)

__all__ = [
    # Config
    "McpConfiguration",
    "ServerConfig",
    "ContextAwarenessConfig",
    "load_configuration",
    # Connection
    "ConnectionState",
    "ConnectionInfo",
    "ServerCapabilities",
    "ServerInfo",
    # Context
    "ActiveApplication",
    "ActiveAppContext",
    "CursorPosition",
    "FileContext",
    "GlossaryEntry",
    "ProjectContext",
    "TranscriptionContext",
    # Protocol
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "parse_message",
    # Resource / Prompt
    "McpPrompt",
    "McpResource",
    "PromptArgument",
    "ResourceContents",
    # Tool
    "ImageContent",
    "ResourceContent",
    "TextContent",
    "ToolDefinition",
    "ToolResult",
]
