"""MCP transports."""

from whispo_mcp.infrastructure.mcp.transport.stdio import StdioTransport

__all__ = ["StdioTransport"]
