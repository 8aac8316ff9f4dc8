"""EventPublisherPort adapters."""

import logging

from whispo_mcp.domain.events.mcp_events import MCPEvent, MCPEventType

logger = logging.getLogger(__name__)


class LoggingEventPublisher:
    """Writes events to the log; the default when the host wires no UI sink."""

    def publish(self, event: MCPEvent) -> None:
        logger.info(f"[MCP event] {event.event_type.value}: {event.to_event_dict()['data']}")


class InMemoryEventPublisher:
    """Collects published events in order."""

    def __init__(self) -> None:
        self.events: list[MCPEvent] = []

    def publish(self, event: MCPEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: MCPEventType) -> list[MCPEvent]:
        return [event for event in self.events if event.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()
