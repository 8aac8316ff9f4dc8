"""
MCP domain exceptions.

Exception hierarchy for the MCP subsystem covering both roles: the client
side (spawning context providers and talking to them) and the server side
(answering requests from external MCP clients).

Exception Hierarchy:
    MCPError (base)
    ├── MCPConfigurationError           - Invalid McpConfiguration
    ├── MCPConnectionError              - Connection lifecycle failure
    │   ├── MCPSpawnError               - Server process could not start
    │   ├── MCPHandshakeError           - Bad/missing initialize response
    │   └── MCPConnectionClosedError    - Peer went away with calls pending
    ├── MCPTransportError               - Framing/stream failure
    │   ├── MCPTransportWriteError      - Write to a closed stream
    │   └── MCPTransportParseError      - Unparseable frame
    ├── MCPRequestTimeoutError          - A single call timed out
    ├── MCPProtocolError                - JSON-RPC error object
    │   └── MCPInvalidParamsError       - Missing/invalid request params
    ├── MCPServerError
    │   ├── MCPServerNotFoundError      - No connection registered by name
    │   └── MCPServerNotConnectedError  - Connection not in READY state
    └── MCPDomainError                  - Unknown tool/resource/prompt
        ├── MCPToolNotFoundError
        ├── MCPToolExecutionError       - Remote tool answered isError
        ├── MCPResourceNotFoundError
        └── MCPPromptNotFoundError
"""

from typing import Any

from whispo_mcp.domain.exceptions.codes import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    PROMPT_NOT_FOUND,
    RESOURCE_NOT_FOUND,
)


class MCPError(Exception):
    """Base exception for all MCP-related errors."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message} (caused by: {self.original_error})"
        return self.message


class MCPConfigurationError(MCPError):
    """Raised when an MCP configuration is structurally invalid."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message, details={"errors": self.errors})


class MCPConnectionError(MCPError):
    """Raised when an MCP connection cannot be established or is lost."""

    def __init__(
        self,
        server_name: str | None = None,
        message: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.server_name = server_name
        msg = message or "MCP connection failed"
        if server_name:
            msg += f" (server: {server_name})"
        super().__init__(msg, original_error=original_error, details={"server_name": server_name})


class MCPSpawnError(MCPConnectionError):
    """Raised when the server process could not be started."""

    def __init__(
        self,
        server_name: str,
        command: str,
        original_error: Exception | None = None,
    ) -> None:
        self.command = command
        super().__init__(
            server_name,
            message=f"Failed to spawn MCP server process '{command}'",
            original_error=original_error,
        )


class MCPHandshakeError(MCPConnectionError):
    """Raised when the initialize handshake fails or returns garbage."""

    def __init__(
        self,
        server_name: str,
        reason: str,
        original_error: Exception | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(
            server_name,
            message=f"MCP initialize handshake failed: {reason}",
            original_error=original_error,
        )


class MCPConnectionClosedError(MCPConnectionError):
    """Raised for calls still waiting when their connection closed."""

    def __init__(self, server_name: str | None = None, message: str | None = None) -> None:
        super().__init__(server_name, message=message or "MCP connection closed")


class MCPTransportError(MCPError):
    """Base exception for transport-level failures."""


class MCPTransportWriteError(MCPTransportError):
    """Raised when writing to the server's stdin fails."""

    def __init__(self, server_name: str, original_error: Exception | None = None) -> None:
        self.server_name = server_name
        super().__init__(
            f"Failed to write to MCP server '{server_name}': stream is closed",
            original_error=original_error,
            details={"server_name": server_name},
        )


class MCPTransportParseError(MCPTransportError):
    """Raised (and logged) when a frame is not a JSON-RPC object."""

    def __init__(self, server_name: str, line: str, original_error: Exception | None = None) -> None:
        self.server_name = server_name
        self.line = line
        super().__init__(
            f"Unparseable frame from MCP server '{server_name}': {line[:200]!r}",
            original_error=original_error,
            details={"server_name": server_name},
        )


class MCPRequestTimeoutError(MCPError):
    """Raised when a single request exceeds its timeout."""

    def __init__(self, server_name: str, method: str, timeout: float) -> None:
        self.server_name = server_name
        self.method = method
        self.timeout = timeout
        super().__init__(
            f"MCP request '{method}' to '{server_name}' timed out after {timeout}s",
            details={"server_name": server_name, "method": method, "timeout": timeout},
        )


class MCPProtocolError(MCPError):
    """A JSON-RPC error, either received from a peer or to be sent to one."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.data = data
        super().__init__(message, details={"code": code, "data": data})

    def to_error_object(self) -> dict[str, Any]:
        """Convert to a JSON-RPC error object."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error

    @classmethod
    def invalid_request(cls, message: str = "Invalid Request") -> "MCPProtocolError":
        return cls(INVALID_REQUEST, message)

    @classmethod
    def internal(cls, message: str = "Internal error") -> "MCPProtocolError":
        return cls(INTERNAL_ERROR, message)


class MCPInvalidParamsError(MCPProtocolError):
    """Raised when request params are missing or of the wrong shape."""

    def __init__(self, message: str, data: Any = None) -> None:
        super().__init__(INVALID_PARAMS, f"Invalid params: {message}", data)


class MCPServerError(MCPError):
    """Base exception for connection registry lookups."""


class MCPServerNotFoundError(MCPServerError):
    """Raised when no connection is registered under a name."""

    def __init__(self, server_name: str, message: str | None = None) -> None:
        self.server_name = server_name
        msg = message or f"MCP server '{server_name}' not found"
        super().__init__(msg, details={"server_name": server_name})


class MCPServerNotConnectedError(MCPServerError):
    """Raised when attempting operations on a connection that is not READY."""

    def __init__(self, server_name: str, state: str | None = None) -> None:
        self.server_name = server_name
        self.state = state
        msg = f"MCP server '{server_name}' is not connected"
        if state:
            msg += f" (state: {state})"
        super().__init__(msg, details={"server_name": server_name, "state": state})


class MCPDomainError(MCPError):
    """Base exception for unknown tool/resource/prompt names."""

    code: int = INTERNAL_ERROR

    def to_protocol_error(self) -> MCPProtocolError:
        return MCPProtocolError(self.code, self.message, self.details or None)


class MCPToolNotFoundError(MCPDomainError):
    """Raised when a tool cannot be found on any connected server."""

    def __init__(self, tool_name: str, server_name: str | None = None) -> None:
        self.tool_name = tool_name
        self.server_name = server_name
        if server_name:
            msg = f"Tool '{tool_name}' not found on server '{server_name}'"
        else:
            msg = f"Tool '{tool_name}' not found"
        super().__init__(msg, details={"tool_name": tool_name, "server_name": server_name})


class MCPToolExecutionError(MCPDomainError):
    """Raised when a remote tool answered with isError."""

    def __init__(self, tool_name: str, message: str | None = None) -> None:
        self.tool_name = tool_name
        super().__init__(
            message or f"Tool '{tool_name}' execution failed", details={"tool_name": tool_name}
        )


class MCPResourceNotFoundError(MCPDomainError):
    """Raised when resources/read names an unknown URI."""

    code = RESOURCE_NOT_FOUND

    def __init__(self, uri: str) -> None:
        self.uri = uri
        super().__init__(f"Resource not found: {uri}", details={"uri": uri})


class MCPPromptNotFoundError(MCPDomainError):
    """Raised when prompts/get names an unknown prompt."""

    code = PROMPT_NOT_FOUND

    def __init__(self, prompt_name: str) -> None:
        self.prompt_name = prompt_name
        super().__init__(f"Prompt not found: {prompt_name}", details={"name": prompt_name})
