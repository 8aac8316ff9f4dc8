"""
MCP Resource and Prompt Domain Models.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class McpResource:
    """A readable resource advertised by resources/list."""

    uri: str
    name: str
    description: str | None = None
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"uri": self.uri, "name": self.name}
        if self.description is not None:
            result["description"] = self.description
        if self.mime_type is not None:
            result["mimeType"] = self.mime_type
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "McpResource":
        return cls(
            uri=data.get("uri", ""),
            name=data.get("name", ""),
            description=data.get("description"),
            mime_type=data.get("mimeType", data.get("mime_type")),
        )


@dataclass(frozen=True)
class ResourceContents:
    """Contents returned by resources/read."""

    uri: str
    mime_type: str
    text: str | None = None
    blob: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"uri": self.uri, "mimeType": self.mime_type}
        if self.text is not None:
            result["text"] = self.text
        if self.blob is not None:
            result["blob"] = self.blob
        return result


@dataclass(frozen=True)
class PromptArgument:
    """A named argument accepted by a prompt template."""

    name: str
    description: str | None = None
    required: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name, "required": self.required}
        if self.description is not None:
            result["description"] = self.description
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PromptArgument":
        return cls(
            name=data.get("name", ""),
            description=data.get("description"),
            required=bool(data.get("required", False)),
        )


@dataclass(frozen=True)
class McpPrompt:
    """A prompt template advertised by prompts/list."""

    name: str
    description: str | None = None
    arguments: tuple[PromptArgument, ...] = field(default_factory=tuple)

    @property
    def required_arguments(self) -> list[str]:
        return [arg.name for arg in self.arguments if arg.required]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.description is not None:
            result["description"] = self.description
        if self.arguments:
            result["arguments"] = [arg.to_dict() for arg in self.arguments]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "McpPrompt":
        return cls(
            name=data.get("name", ""),
            description=data.get("description"),
            arguments=tuple(
                PromptArgument.from_dict(arg)
                for arg in data.get("arguments") or []
                if isinstance(arg, dict)
            ),
        )
