"""OpenTelemetry tracing for whispo-mcp."""

from whispo_mcp.infrastructure.telemetry.config import (
    configure_tracer_provider,
    get_tracer,
    shutdown_telemetry,
)
from whispo_mcp.infrastructure.telemetry.tracing import add_span_attributes, async_with_tracer

__all__ = [
    "configure_tracer_provider",
    "get_tracer",
    "shutdown_telemetry",
    "add_span_attributes",
    "async_with_tracer",
]
