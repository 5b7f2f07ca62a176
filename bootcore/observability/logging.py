"""
bootcore - Structured Logging

Integrates structlog with the core logger contract used by the orchestration
engine and handed to every component.

Features:
- Structured JSON or colored console rendering
- Leveled records carrying title, message, category and details
- Pluggable sinks (sync or async) with an awaitable drain
- Local JSON log file sink

Usage:
    from bootcore.observability.logging import CoreLogger, setup_logging

    setup_logging(LoggingConfig(level="INFO", json_format=False))

    logger = CoreLogger()
    logger.publish("INFO", "Modules loaded", category="CORE", measurement="12.3ms")
    await logger.flush()
"""
from __future__ import annotations

import asyncio
import inspect
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

import structlog
from structlog.types import EventDict, WrappedLogger

# Global state
_configured: bool = False

TRACE = 5
QUERY = 25

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(QUERY, "QUERY")

# Core levels ordered from most to least severe
LOG_LEVELS: Dict[str, int] = {
    "FATAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "QUERY": QUERY,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "TRACE": TRACE,
}


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    service_name: str = "bootcore"
    level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )
    json_format: bool = field(
        default_factory=lambda: os.getenv("LOG_FORMAT", "console").lower() == "json"
    )
    log_to_console: bool = True
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )


def add_service_context(
    service_name: str,
    environment: str,
) -> structlog.types.Processor:
    """Create a processor that adds service context to all log events."""

    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["service"] = service_name
        event_dict["environment"] = environment
        return event_dict

    return processor


def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add ISO8601 timestamp."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def format_exception(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Format exception details for structured output."""
    error = event_dict.get("error")
    if hasattr(error, "to_dict"):
        event_dict["error"] = error.to_dict()
    elif isinstance(error, BaseException):
        event_dict["error"] = {
            "type": type(error).__name__,
            "message": str(error),
        }
    return event_dict


def setup_logging(config: Optional[LoggingConfig] = None, force: bool = False) -> None:
    """
    Configure structlog and the stdlib root logger.

    Safe to call multiple times; only the first call configures unless
    ``force`` is set (core config applied after early records).
    """
    global _configured

    if _configured and not force:
        return

    config = config or LoggingConfig()

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(config.service_name, config.environment),
        add_timestamp,
        format_exception,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configure_stdlib_logging(config)

    _configured = True


def _configure_stdlib_logging(config: LoggingConfig) -> None:
    """Configure Python standard library logging."""
    level = LOG_LEVELS.get(config.level.upper(), logging.INFO)
    handlers: list[logging.Handler] = []

    if config.log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for handler in handlers:
        root_logger.addHandler(handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)


def shutdown_logging() -> None:
    """Flush and close stdlib handlers."""
    global _configured

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.flush()
        handler.close()

    _configured = False


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance."""
    if not _configured:
        setup_logging()

    return structlog.get_logger(name)


# =============================================================================
# CORE LOGGER
# =============================================================================


@dataclass(frozen=True)
class LogRecord:
    """A single published record."""

    level: str
    title: str
    message: Optional[str] = None
    category: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


LogSink = Callable[[LogRecord], Union[None, Awaitable[None]]]

# stdlib has no TRACE/QUERY methods
_RENDER_METHODS: Dict[str, str] = {
    "FATAL": "critical",
    "ERROR": "error",
    "WARNING": "warning",
    "QUERY": "info",
    "INFO": "info",
    "DEBUG": "debug",
    "TRACE": "debug",
}


class StructlogSink:
    """Terminal sink rendering records through structlog."""

    def __init__(self, name: str = "bootcore"):
        self.name = name
        self.enabled = True

    def __call__(self, record: LogRecord) -> None:
        if not self.enabled:
            return

        event: Dict[str, Any] = dict(record.details)
        if record.message is not None:
            event["detail"] = record.message
        if record.category:
            event["category"] = record.category

        # Looked up per record so a forced reconfiguration takes effect
        logger = get_logger(self.name)
        getattr(logger, _RENDER_METHODS[record.level])(record.title, **event)


class MemorySink:
    """Keeps every record in memory."""

    def __init__(self) -> None:
        self.records: List[LogRecord] = []

    def __call__(self, record: LogRecord) -> None:
        self.records.append(record)

    def of_level(self, level: str) -> List[LogRecord]:
        return [record for record in self.records if record.level == level]

    def clear(self) -> None:
        self.records.clear()


class JsonFileSink:
    """
    Appends one JSON document per record to ``<location>/<name>.log``.

    Writes happen in a worker thread; the returned awaitable is tracked by
    the owning CoreLogger so ``flush()`` waits for the file to be written.
    """

    def __init__(self, location: Union[str, Path], name: str = "bootcore"):
        self.path = Path(location) / f"{name}.log"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    def _serialize(self, record: LogRecord) -> str:
        payload = {
            "timestamp": record.timestamp.isoformat(),
            "level": record.level,
            "title": record.title,
            "message": record.message,
            "category": record.category,
            "details": format_exception(None, "", dict(record.details)),
        }
        return json.dumps(payload, default=str)

    def _append(self, line: str) -> None:
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")

    async def _write(self, line: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._append, line)

    def __call__(self, record: LogRecord) -> Awaitable[None]:
        return self._write(self._serialize(record))


class CoreLogger:
    """
    Logger handed to the capsule and every component.

    Records below ``level`` are dropped; ``silence`` drops everything. Each
    accepted record is written to every registered sink in registration
    order. Sinks returning an awaitable are scheduled on the running loop (or,
    from a worker thread, on the loop that last published) and tracked until
    ``flush()`` drains them.
    """

    def __init__(
        self,
        level: str = "INFO",
        silence: bool = False,
        sinks: Optional[Dict[str, LogSink]] = None,
    ):
        self.level = level
        self.silence = silence
        self._sinks: Dict[str, LogSink] = dict(sinks) if sinks is not None else {"terminal": StructlogSink()}
        self._pending: Set[asyncio.Future[Any]] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._fallback = logging.getLogger("bootcore.logger")

    @property
    def level(self) -> str:
        return self._level

    @level.setter
    def level(self, value: str) -> None:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        self._level = value

    # -------------------------------------------------------------------------
    # Sinks
    # -------------------------------------------------------------------------

    def add_sink(self, name: str, sink: LogSink) -> None:
        self._sinks[name] = sink

    def get_sink(self, name: str) -> LogSink:
        try:
            return self._sinks[name]
        except KeyError:
            raise KeyError(f"No log sink named {name!r}") from None

    def remove_sink(self, name: str) -> None:
        self._sinks.pop(name, None)

    def has_sink(self, name: str) -> bool:
        return name in self._sinks

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    def is_enabled_for(self, level: str) -> bool:
        return not self.silence and LOG_LEVELS[level] >= LOG_LEVELS[self._level]

    def publish(
        self,
        level: str,
        title: str,
        message: Optional[str] = None,
        category: Optional[str] = None,
        **details: Any,
    ) -> None:
        """Publish a leveled structured record to every sink."""
        level = level.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        if not self.is_enabled_for(level):
            return

        record = LogRecord(level=level, title=title, message=message, category=category, details=details)

        for name, sink in list(self._sinks.items()):
            try:
                result = sink(record)
            except Exception as e:
                self._fallback.error(f"Log sink {name} failed: {e}")
                continue

            if inspect.isawaitable(result):
                self._track(name, result)

    def _track(self, name: str, awaitable: Awaitable[None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            # Published from a worker thread: hand the write to the owning loop
            if self._loop is not None and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self._track, name, awaitable)
            else:
                asyncio.run(self._drain(name, awaitable))
            return

        self._loop = loop
        future = asyncio.ensure_future(awaitable)
        self._pending.add(future)

        def _done(done: asyncio.Future[Any]) -> None:
            self._pending.discard(done)
            if not done.cancelled() and done.exception() is not None:
                self._fallback.error(f"Log sink {name} failed: {done.exception()}")

        future.add_done_callback(_done)

    async def _drain(self, name: str, awaitable: Awaitable[None]) -> None:
        try:
            await awaitable
        except Exception as e:
            self._fallback.error(f"Log sink {name} failed: {e}")

    async def flush(self) -> None:
        """Wait for every pending sink write."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = [
    "LOG_LEVELS",
    "LoggingConfig",
    "LogRecord",
    "LogSink",
    "StructlogSink",
    "MemorySink",
    "JsonFileSink",
    "CoreLogger",
    "setup_logging",
    "shutdown_logging",
    "get_logger",
]
