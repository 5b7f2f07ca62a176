"""
bootcore - Observability

Structured logging (structlog) and tracing (OpenTelemetry) shared by the
orchestration engine and the components it drives.
"""
from bootcore.observability.logging import (
    LOG_LEVELS,
    CoreLogger,
    JsonFileSink,
    LoggingConfig,
    LogRecord,
    LogSink,
    MemorySink,
    StructlogSink,
    get_logger,
    setup_logging,
    shutdown_logging,
)
from bootcore.observability.tracing import create_span, get_tracer

__all__ = [
    "LOG_LEVELS",
    "CoreLogger",
    "JsonFileSink",
    "LoggingConfig",
    "LogRecord",
    "LogSink",
    "MemorySink",
    "StructlogSink",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
    "create_span",
    "get_tracer",
]
