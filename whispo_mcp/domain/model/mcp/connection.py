"""
MCP Connection Domain Models.

Defines the per-connection state machine, the capabilities a server declares
during the initialize handshake, and the read-only status snapshot handed to
the host.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class ConnectionState(str, Enum):
    """
    MCP connection state.

    DISCONNECTED -> SPAWNING -> INITIALIZING -> READY -> CLOSED
    SPAWNING | INITIALIZING -> FAILED
    """

    DISCONNECTED = "disconnected"
    SPAWNING = "spawning"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ConnectionState.CLOSED, ConnectionState.FAILED)

    def can_transition_to(self, target: "ConnectionState") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.SPAWNING, ConnectionState.CLOSED}),
    ConnectionState.SPAWNING: frozenset({ConnectionState.INITIALIZING, ConnectionState.FAILED}),
    ConnectionState.INITIALIZING: frozenset({ConnectionState.READY, ConnectionState.FAILED}),
    ConnectionState.READY: frozenset({ConnectionState.CLOSED}),
    ConnectionState.CLOSED: frozenset(),
    ConnectionState.FAILED: frozenset(),
}


@dataclass(frozen=True)
class ServerCapabilities:
    """Capabilities declared by a server in its initialize result."""

    tools: dict[str, Any] | None = None
    resources: dict[str, Any] | None = None
    prompts: dict[str, Any] | None = None
    logging: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key in ("tools", "resources", "prompts", "logging"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerCapabilities":
        def _section(key: str) -> dict[str, Any] | None:
            value = data.get(key)
            return dict(value) if isinstance(value, dict) else None

        return cls(
            tools=_section("tools"),
            resources=_section("resources"),
            prompts=_section("prompts"),
            logging=_section("logging"),
        )


@dataclass(frozen=True)
class ServerInfo:
    """Identity of an MCP peer (serverInfo / clientInfo)."""

    name: str
    version: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "version": self.version}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ServerInfo":
        data = data or {}
        return cls(name=str(data.get("name", "unknown")), version=str(data.get("version", "")))


@dataclass(frozen=True)
class ConnectionInfo:
    """Read-only snapshot of a connection for the host/UI."""

    name: str
    state: ConnectionState
    server_info: ServerInfo | None = None
    tool_count: int = 0
    resource_count: int = 0
    prompt_count: int = 0
    error_message: str | None = None
    connected_at: datetime | None = None
    pid: int | None = None

    @property
    def is_ready(self) -> bool:
        return self.state == ConnectionState.READY

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "server_info": self.server_info.to_dict() if self.server_info else None,
            "tool_count": self.tool_count,
            "resource_count": self.resource_count,
            "prompt_count": self.prompt_count,
            "error_message": self.error_message,
            "connected_at": self.connected_at.isoformat() if self.connected_at else None,
            "pid": self.pid,
        }
