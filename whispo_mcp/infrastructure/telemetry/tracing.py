"""Span helpers for MCP traffic.

``async_with_tracer`` wraps a coroutine in a span named
``<component>.<function>``. Failures carry the JSON-RPC code of the
``MCPError`` that ended the call, and a ``ToolResult`` with ``isError`` is
recorded on the span without failing it.
"""

import functools
from collections.abc import Callable, Mapping
from typing import Any

from opentelemetry.trace import (
    INVALID_SPAN,
    Span,
    SpanKind,
    Status,
    StatusCode,
    get_current_span as _get_current_span,
)

from whispo_mcp.domain.exceptions.mcp import MCPError
from whispo_mcp.domain.model.mcp.tool import ToolResult
from whispo_mcp.infrastructure.telemetry.config import get_tracer


def get_current_span() -> Span:
    """Active span, or the invalid span when nothing is being traced."""
    return _get_current_span() or INVALID_SPAN


def add_span_attributes(attributes: Mapping[str, Any]) -> None:
    """Set attributes on the active span; None values are dropped."""
    span = get_current_span()
    if not span.is_recording():
        return
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, value)


def _record_failure(span: Span, error: Exception) -> None:
    span.record_exception(error)
    if isinstance(error, MCPError):
        code = getattr(error, "code", None)
        if isinstance(code, int):
            span.set_attribute("rpc.jsonrpc.error_code", code)
        span.set_attribute("mcp.error.type", type(error).__name__)
    span.set_status(Status(StatusCode.ERROR, str(error)))


def async_with_tracer(
    component_name: str,
    attributes: dict[str, Any] | None = None,
    kind: SpanKind = SpanKind.INTERNAL,
):
    """Trace an async function when telemetry is enabled.

    Args:
        component_name: Span name prefix, e.g. ``mcp.transport``.
        attributes: Static attributes set on every span.
        kind: CLIENT for calls to a server, SERVER for handled requests.
    """

    def decorator(func: Callable) -> Callable:
        span_name = f"{component_name}.{func.__name__}"

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(component_name)
            if tracer is None:
                return await func(*args, **kwargs)

            with tracer.start_as_current_span(
                span_name,
                kind=kind,
                attributes={"rpc.system": "jsonrpc", **(attributes or {})},
                record_exception=False,
                set_status_on_exception=False,
            ) as span:
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _record_failure(span, e)
                    raise
                if isinstance(result, ToolResult) and result.is_error:
                    span.set_attribute("mcp.tool.is_error", True)
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator
