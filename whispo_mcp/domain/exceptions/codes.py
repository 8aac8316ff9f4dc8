"""
JSON-RPC 2.0 and MCP error codes.
"""

# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Domain error codes (server-defined range)
RESOURCE_NOT_FOUND = -32002
PROMPT_NOT_FOUND = -32003
