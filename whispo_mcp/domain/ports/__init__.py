"""Domain ports for whispo-mcp."""

from whispo_mcp.domain.ports.host_ports import (
    ActiveWindowPort,
    ConfigurationStorePort,
    EventPublisherPort,
    HostStatePort,
    TranscriptionServicePort,
)

__all__ = [
    "ActiveWindowPort",
    "ConfigurationStorePort",
    "EventPublisherPort",
    "HostStatePort",
    "TranscriptionServicePort",
]
