"""
Domain exceptions for whispo-mcp.
"""

from whispo_mcp.domain.exceptions.mcp import (
    MCPConfigurationError,
    MCPConnectionClosedError,
    MCPConnectionError,
    MCPDomainError,
    MCPError,
    MCPHandshakeError,
    MCPInvalidParamsError,
    MCPPromptNotFoundError,
    MCPProtocolError,
    MCPRequestTimeoutError,
    MCPResourceNotFoundError,
    MCPServerError,
    MCPServerNotConnectedError,
    MCPServerNotFoundError,
    MCPSpawnError,
    MCPToolExecutionError,
    MCPToolNotFoundError,
    MCPTransportError,
    MCPTransportParseError,
    MCPTransportWriteError,
)

__all__ = [
    "MCPError",
    "MCPConfigurationError",
    "MCPConnectionError",
    "MCPSpawnError",
    "MCPHandshakeError",
    "MCPConnectionClosedError",
    "MCPTransportError",
    "MCPTransportWriteError",
    "MCPTransportParseError",
    "MCPRequestTimeoutError",
    "MCPProtocolError",
    "MCPInvalidParamsError",
    "MCPServerError",
    "MCPServerNotFoundError",
    "MCPServerNotConnectedError",
    "MCPDomainError",
    "MCPToolNotFoundError",
    "MCPToolExecutionError",
    "MCPResourceNotFoundError",
    "MCPPromptNotFoundError",
]
