"""
MCP Tool Domain Models.

Defines the tool definition, tool result and content block value objects.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class ToolDefinition:
    """
    MCP tool definition.

    Describes a tool's interface including its name, description,
    and JSON Schema for input parameters.
    """

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (MCP protocol format)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolDefinition":
        """Create from dictionary (MCP protocol format)."""
        return cls(
            name=data.get("name", ""),
            description=data.get("description") or "",
            input_schema=data.get("inputSchema", data.get("input_schema"))
            or {"type": "object", "properties": {}},
        )


@dataclass(frozen=True)
class TextContent:
    """Plain text content block."""

    text: str
    type: str = field(default="text", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass(frozen=True)
class ImageContent:
    """Base64-encoded image content block."""

    data: str
    mime_type: str
    type: str = field(default="image", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.data, "mimeType": self.mime_type}


@dataclass(frozen=True)
class ResourceContent:
    """Embedded resource content block."""

    uri: str
    mime_type: str
    text: str | None = None
    type: str = field(default="resource", init=False)

    def to_dict(self) -> dict[str, Any]:
        resource: dict[str, Any] = {"uri": self.uri, "mimeType": self.mime_type}
        if self.text is not None:
            resource["text"] = self.text
        return {"type": self.type, "resource": resource}


ToolContent = Union[TextContent, ImageContent, ResourceContent]


def content_from_dict(data: dict[str, Any]) -> ToolContent:
    """Parse a content block; unknown types degrade to their JSON text."""
    content_type = data.get("type")
    if content_type == "text":
        return TextContent(text=str(data.get("text", "")))
    if content_type == "image":
        return ImageContent(
            data=str(data.get("data", "")),
            mime_type=data.get("mimeType", data.get("mime_type", "application/octet-stream")),
        )
    if content_type == "resource":
        resource = data.get("resource")
        if not isinstance(resource, dict):
            # Flat shape: {"type": "resource", "uri": ..., "mimeType": ...}
            resource = data
        return ResourceContent(
            uri=str(resource.get("uri", "")),
            mime_type=resource.get("mimeType", resource.get("mime_type", "text/plain")),
            text=resource.get("text"),
        )
    return TextContent(text=json.dumps(data))


@dataclass
class ToolResult:
    """
    MCP tool execution result.

    The uniform success/failure envelope returned from a tool invocation.
    ``is_error`` marks an application-level failure, which is distinct from
    a transport-level JSON-RPC error.
    """

    content: list[ToolContent] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def success(cls, text: str) -> "ToolResult":
        """Create a successful single-text result."""
        return cls(content=[TextContent(text=text)], is_error=False)

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        """Create an error result."""
        return cls(content=[TextContent(text=message)], is_error=True)

    @classmethod
    def json(cls, payload: Any) -> "ToolResult":
        """Create a successful result carrying pretty-printed JSON."""
        return cls.success(json.dumps(payload, indent=2, ensure_ascii=False))

    @property
    def text(self) -> str:
        """Concatenated text of all text content blocks."""
        return "\n".join(c.text for c in self.content if isinstance(c, TextContent))

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [c.to_dict() for c in self.content],
            "isError": self.is_error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolResult":
        raw_content = data.get("content") or []
        return cls(
            content=[content_from_dict(c) for c in raw_content if isinstance(c, dict)],
            is_error=bool(data.get("isError", data.get("is_error", False))),
        )
