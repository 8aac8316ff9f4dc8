"""
MCP Configuration Models.

Typed, immutable configuration for the MCP subsystem. Stored by the host as
JSON with camelCase keys:

    {
        "enabled": true,
        "servers": {
            "editor": {
                "name": "editor",
                "command": "npx",
                "args": ["-y", "@acme/editor-mcp"],
                "env": {"DEBUG": "1"},
                "enabled": true
            }
        },
        "contextAwareness": {
            "useFileContext": true,
            "useProjectContext": true,
            "useGlossary": true,
            "useRecentInteractions": true,
            "maxContextLength": 4096
        }
    }

Updates go through the explicit ``with_*`` operations, each returning a new
instance; nothing merges arbitrary JSON into a live configuration.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from whispo_mcp.domain.exceptions.mcp import MCPConfigurationError


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class ServerConfig(_CamelModel):
    """
    Configuration for one external MCP server (stdio transport).

    Example:
        {
            "name": "editor",
            "command": "uvx",
            "args": ["editor-mcp"],
            "env": {"API_KEY": "xxx"},
            "enabled": true
        }
    """

    name: str = Field(..., description="Unique server name; must match its key in `servers`")
    command: str = Field(..., description="Executable used to launch the server")
    args: tuple[str, ...] = Field(default=(), description="Arguments passed to the command")
    env: dict[str, str] | None = Field(
        default=None, description="Environment variables added to the inherited environment"
    )
    enabled: bool = Field(default=True, description="Connect to this server on initialize")

    @property
    def command_line(self) -> list[str]:
        return [self.command, *self.args]


class ContextAwarenessConfig(_CamelModel):
    """Which context sources feed a transcription, and how much of them."""

    use_file_context: bool = True
    use_project_context: bool = True
    use_glossary: bool = True
    use_recent_interactions: bool = True
    max_context_length: int = Field(default=4096, ge=0)


class McpConfiguration(_CamelModel):
    """Top-level MCP configuration owned by the host application."""

    servers: dict[str, ServerConfig] = Field(default_factory=dict)
    enabled: bool = False
    context_awareness: ContextAwarenessConfig = Field(default_factory=ContextAwarenessConfig)

    @property
    def enabled_servers(self) -> dict[str, ServerConfig]:
        return {name: server for name, server in self.servers.items() if server.enabled}

    def validation_errors(self) -> list[str]:
        """List structural problems; empty when the configuration is usable."""
        errors: list[str] = []
        for key, server in self.servers.items():
            if not key:
                errors.append("Server key must not be empty")
            if server.name != key:
                errors.append(f"Server '{key}' has mismatched name '{server.name}'")
            if not server.command.strip():
                errors.append(f"Server '{key}' has an empty command")
        return errors

    def validate_servers(self) -> None:
        """
        Raise if the configuration cannot be used to spawn servers.

        Raises:
            MCPConfigurationError: With every problem found.
        """
        errors = self.validation_errors()
        if errors:
            raise MCPConfigurationError("Invalid MCP configuration: " + "; ".join(errors), errors)

    # Explicit update operations

    def with_enabled(self, enabled: bool) -> "McpConfiguration":
        return self.model_copy(update={"enabled": enabled})

    def with_server(self, server: ServerConfig) -> "McpConfiguration":
        servers = dict(self.servers)
        servers[server.name] = server
        return self.model_copy(update={"servers": servers})

    def without_server(self, name: str) -> "McpConfiguration":
        servers = {key: value for key, value in self.servers.items() if key != name}
        return self.model_copy(update={"servers": servers})

    def with_context_awareness(self, context_awareness: ContextAwarenessConfig) -> "McpConfiguration":
        return self.model_copy(update={"context_awareness": context_awareness})

    # Serialization

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, raw: str) -> "McpConfiguration":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise MCPConfigurationError(
                "Invalid MCP configuration JSON",
                [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
            ) from e


def load_configuration(path: str | Path) -> McpConfiguration:
    """
    Load an MCP configuration from a JSON file.

    A missing file yields the default (disabled) configuration.
    """
    path = Path(path)
    if not path.exists():
        return McpConfiguration()
    return McpConfiguration.from_json(path.read_text(encoding="utf-8"))
