"""
JSON-RPC 2.0 envelope models for MCP.

Requests, responses, notifications and error objects exchanged with MCP
peers in both directions. Pure data: framing lives in the transport,
routing in the dispatcher and connection layers.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from whispo_mcp.domain.exceptions.codes import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    PROMPT_NOT_FOUND,
    RESOURCE_NOT_FOUND,
)
from whispo_mcp.domain.exceptions.mcp import MCPProtocolError

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"

RequestId = Union[int, str]

__all__ = [
    "JSONRPC_VERSION",
    "PROTOCOL_VERSION",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "RESOURCE_NOT_FOUND",
    "PROMPT_NOT_FOUND",
    "RequestId",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "JsonRpcNotification",
    "JsonRpcMessage",
    "parse_message",
]


@dataclass(frozen=True)
class JsonRpcError:
    """JSON-RPC error object."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JsonRpcError":
        code = data.get("code")
        if not isinstance(code, int) or isinstance(code, bool):
            raise MCPProtocolError(INVALID_REQUEST, "Error object requires an integer code")
        return cls(code=code, message=str(data.get("message", "")), data=data.get("data"))

    def to_exception(self) -> MCPProtocolError:
        return MCPProtocolError(self.code, self.message, self.data)


@dataclass(frozen=True)
class JsonRpcRequest:
    """A method call that expects a response."""

    id: RequestId
    method: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": self.id,
            "method": self.method,
            "params": self.params,
        }


@dataclass(frozen=True)
class JsonRpcNotification:
    """A method call without an id; no response is sent."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"jsonrpc": JSONRPC_VERSION, "method": self.method, "params": self.params}


@dataclass(frozen=True)
class JsonRpcResponse:
    """Result or error for a request, correlated by id."""

    id: RequestId | None
    result: Any = None
    error: JsonRpcError | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id}
        if self.error is not None:
            message["error"] = self.error.to_dict()
        else:
            message["result"] = self.result if self.result is not None else {}
        return message

    @classmethod
    def success(cls, request_id: RequestId | None, result: Any) -> "JsonRpcResponse":
        return cls(id=request_id, result=result)

    @classmethod
    def failure(
        cls,
        request_id: RequestId | None,
        code: int,
        message: str,
        data: Any = None,
    ) -> "JsonRpcResponse":
        return cls(id=request_id, error=JsonRpcError(code=code, message=message, data=data))


JsonRpcMessage = Union[JsonRpcRequest, JsonRpcNotification, JsonRpcResponse]


def _is_valid_id(value: Any) -> bool:
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def parse_message(data: Any) -> JsonRpcMessage:
    """
    Classify a decoded JSON frame as a request, notification or response.

    Args:
        data: The decoded JSON value of one frame.

    Returns:
        The typed envelope.

    Raises:
        MCPProtocolError: If the frame is not a valid JSON-RPC 2.0 envelope.
    """
    if not isinstance(data, dict):
        raise MCPProtocolError(INVALID_REQUEST, "JSON-RPC message must be an object")
    if data.get("jsonrpc") != JSONRPC_VERSION:
        raise MCPProtocolError(INVALID_REQUEST, "Missing or unsupported jsonrpc version")

    has_id = "id" in data and data["id"] is not None
    if has_id and not _is_valid_id(data["id"]):
        raise MCPProtocolError(INVALID_REQUEST, "Request id must be a string or integer")

    method = data.get("method")
    if method is not None:
        if not isinstance(method, str) or not method:
            raise MCPProtocolError(INVALID_REQUEST, "Method must be a non-empty string")
        params = data.get("params")
        if params is None:
            params = {}
        elif not isinstance(params, dict):
            raise MCPProtocolError(INVALID_PARAMS, "Params must be an object")
        if has_id:
            return JsonRpcRequest(id=data["id"], method=method, params=params)
        return JsonRpcNotification(method=method, params=params)

    if "result" in data and "error" in data:
        raise MCPProtocolError(INVALID_REQUEST, "Response cannot carry both result and error")
    if "error" in data:
        error = data["error"]
        if not isinstance(error, dict):
            raise MCPProtocolError(INVALID_REQUEST, "Error must be an object")
        return JsonRpcResponse(id=data.get("id"), error=JsonRpcError.from_dict(error))
    if "result" in data:
        if not has_id:
            raise MCPProtocolError(INVALID_REQUEST, "Response is missing its id")
        return JsonRpcResponse(id=data["id"], result=data["result"])

    raise MCPProtocolError(INVALID_REQUEST, "Message is neither a request nor a response")
