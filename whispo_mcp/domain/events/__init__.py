from whispo_mcp.domain.events.mcp_events import (
    DictationRequestedEvent,
    GlossaryUpdatedEvent,
    MCPEvent,
    MCPEventType,
    ProfileSwitchRequestedEvent,
    ServerClosedEvent,
    ServerConnectedEvent,
    ServerFailedEvent,
)

__all__ = [
    "MCPEvent",
    "MCPEventType",
    "ServerConnectedEvent",
    "ServerFailedEvent",
    "ServerClosedEvent",
    "DictationRequestedEvent",
    "ProfileSwitchRequestedEvent",
    "GlossaryUpdatedEvent",
]
