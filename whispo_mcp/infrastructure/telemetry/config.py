"""OpenTelemetry configuration and initialization.

Tracing is off unless ``WHISPO_MCP_TELEMETRY_ENABLED`` is set; spans are then
exported to the console (stderr), keeping stdout free for MCP frames.
"""

import logging
import sys

from opentelemetry.trace import Tracer
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from whispo_mcp import __version__
from whispo_mcp.configuration.config import get_settings

logger = logging.getLogger(__name__)

# Global provider (cached after initialization)
_TRACER_PROVIDER: TracerProvider | None = None
# Flag to control telemetry globally (for testing)
_TELEMETRY_ENABLED: bool | None = None


def _reset_providers() -> None:
    """Reset global providers (for testing)."""
    global _TRACER_PROVIDER, _TELEMETRY_ENABLED
    _TRACER_PROVIDER = None
    _TELEMETRY_ENABLED = None


def _is_enabled() -> bool:
    global _TELEMETRY_ENABLED
    if _TELEMETRY_ENABLED is None:
        _TELEMETRY_ENABLED = get_settings().telemetry_enabled
    return _TELEMETRY_ENABLED


def configure_tracer_provider(enabled: bool | None = None) -> TracerProvider | None:
    """
    Create the tracer provider once.

    Args:
        enabled: Override the settings flag (tests use this).

    Returns:
        The provider, or None when telemetry is disabled.
    """
    global _TRACER_PROVIDER, _TELEMETRY_ENABLED
    if enabled is not None:
        _TELEMETRY_ENABLED = enabled
    if not _is_enabled():
        return None
    if _TRACER_PROVIDER is None:
        settings = get_settings()
        resource = Resource.create(
            {
                "service.name": settings.service_name,
                "service.version": __version__,
            }
        )
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter(out=sys.stderr)))
        _TRACER_PROVIDER = provider
        logger.info("OpenTelemetry tracing enabled for %s", settings.service_name)
    return _TRACER_PROVIDER


def get_tracer(component_name: str) -> Tracer | None:
    """Get a tracer for a component, or None when tracing is disabled."""
    provider = configure_tracer_provider()
    if provider is None:
        return None
    return provider.get_tracer(f"whispo_mcp.{component_name}")


def shutdown_telemetry() -> None:
    """Flush and drop the provider."""
    global _TRACER_PROVIDER
    if _TRACER_PROVIDER is not None:
        _TRACER_PROVIDER.shutdown()
        _TRACER_PROVIDER = None


__all__ = ["configure_tracer_provider", "get_tracer", "shutdown_telemetry"]
