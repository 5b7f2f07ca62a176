"""
bootcore - Tracing with OpenTelemetry

Startup phases run inside spans so that a configured OpenTelemetry SDK
(installed by the host process) can show where a slow or failing boot spent
its time. Without an SDK the API hands out no-op spans.

Usage:
    from bootcore.observability.tracing import create_span

    with create_span("bootcore.load_modules", attributes={"modules.count": 3}):
        ...
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

TRACER_NAME = "bootcore"


def get_tracer(name: str = TRACER_NAME, version: str = "1.0.0") -> trace.Tracer:
    """Get a tracer from the globally configured provider."""
    return trace.get_tracer(name, version)


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Optional[Dict[str, Any]] = None,
    tracer_name: str = TRACER_NAME,
) -> Iterator[Span]:
    """
    Context manager for creating spans with automatic error recording.

    Args:
        name: Span name
        kind: Span kind
        attributes: Initial span attributes
        tracer_name: Name of the tracer to use
    """
    tracer = get_tracer(tracer_name)
    with tracer.start_as_current_span(name, kind=kind, record_exception=False) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


__all__ = ["TRACER_NAME", "get_tracer", "create_span"]
