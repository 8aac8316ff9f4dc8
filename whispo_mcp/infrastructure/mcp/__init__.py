"""MCP infrastructure: transport, connections, server role and local tools."""
