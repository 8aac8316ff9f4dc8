"""Default host-side adapters: in-memory state, event sinks, JSON config store."""

from whispo_mcp.infrastructure.adapters.secondary.config_store import JsonFileConfigurationStore
from whispo_mcp.infrastructure.adapters.secondary.event_publisher import (
    InMemoryEventPublisher,
    LoggingEventPublisher,
)
from whispo_mcp.infrastructure.adapters.secondary.host_state import InMemoryHostState

__all__ = [
    "InMemoryEventPublisher",
    "InMemoryHostState",
    "JsonFileConfigurationStore",
    "LoggingEventPublisher",
]
