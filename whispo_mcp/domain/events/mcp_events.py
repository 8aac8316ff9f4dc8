"""Domain events for the MCP subsystem.

Events are published to the UI layer through an ``EventPublisherPort``
supplied by the host; nothing here holds a process-wide channel.
"""

import time
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "MCPEventType",
    "MCPEvent",
    "ServerConnectedEvent",
    "ServerFailedEvent",
    "ServerClosedEvent",
    "DictationRequestedEvent",
    "ProfileSwitchRequestedEvent",
    "GlossaryUpdatedEvent",
]


class MCPEventType(str, Enum):
    SERVER_CONNECTED = "server_connected"
    SERVER_FAILED = "server_failed"
    SERVER_CLOSED = "server_closed"
    DICTATION_REQUESTED = "dictation_requested"
    PROFILE_SWITCH_REQUESTED = "profile_switch_requested"
    GLOSSARY_UPDATED = "glossary_updated"


class MCPEvent(BaseModel):
    """Base class for all MCP domain events."""

    model_config = ConfigDict(frozen=True)

    event_type: MCPEventType
    timestamp: float = Field(default_factory=time.time)

    def to_event_dict(self) -> dict[str, Any]:
        """
        Convert to the event dictionary format consumed by the UI layer.

        Returns:
            Dictionary with keys: type, data, timestamp
        """
        return {
            "type": self.event_type.value,
            "data": self.model_dump(exclude={"event_type", "timestamp"}),
            "timestamp": datetime.fromtimestamp(self.timestamp).isoformat(),
        }


class ServerConnectedEvent(MCPEvent):
    event_type: MCPEventType = MCPEventType.SERVER_CONNECTED
    server_name: str
    tool_count: int = 0


class ServerFailedEvent(MCPEvent):
    event_type: MCPEventType = MCPEventType.SERVER_FAILED
    server_name: str
    error: str


class ServerClosedEvent(MCPEvent):
    event_type: MCPEventType = MCPEventType.SERVER_CLOSED
    server_name: str


class DictationRequestedEvent(MCPEvent):
    """An external MCP client asked the host to start dictating."""

    event_type: MCPEventType = MCPEventType.DICTATION_REQUESTED
    context: str = "generic"


class ProfileSwitchRequestedEvent(MCPEvent):
    event_type: MCPEventType = MCPEventType.PROFILE_SWITCH_REQUESTED
    profile_id: str


class GlossaryUpdatedEvent(MCPEvent):
    event_type: MCPEventType = MCPEventType.GLOSSARY_UPDATED
    entry_count: int
