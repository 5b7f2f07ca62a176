"""
bootcore - Unified Error Handling

Error hierarchy for the discovery and lifecycle engine.

Every failure the orchestration boundary can observe has its own class so
that runners can log it with the right wording and convert it into a process
exit code. All errors carry the derived name of the component that failed.

Severity decides how loud a failure is in the logs; it never changes the
exit code, which runners derive from where the failure happened.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


class ErrorSeverity(Enum):
    WARNING = "warning"    # Cleanup failed, process still exits normally otherwise
    ERROR = "error"        # A lifecycle step failed
    CRITICAL = "critical"  # Startup cannot continue


class CoreError(Exception):
    """
    Base exception for all bootcore errors.

    Carries the failing component's param-case name, the wrapped cause and
    the trace it happened in. Raising one inside a recording span marks the
    span as failed.
    """

    default_severity: ErrorSeverity = ErrorSeverity.ERROR
    error_code: str = "CORE_ERROR"

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[BaseException] = None,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.component = component
        self.severity = severity or self.default_severity
        self.cause = cause
        self.suggestions = suggestions or []
        self.timestamp = datetime.now(timezone.utc)
        self.trace_id: Optional[str] = None

        span = trace.get_current_span()
        if span.is_recording():
            self.trace_id = format(span.get_span_context().trace_id, "032x")
            span.set_status(Status(StatusCode.ERROR, message))
            span.record_exception(self)
            span.set_attribute("error.code", self.error_code)
            if component:
                span.set_attribute("error.component", component)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form used by the JSON log file."""
        return {
            "type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "component": self.component,
            "severity": self.severity.value,
            "suggestions": self.suggestions,
            "trace_id": self.trace_id,
            "cause": repr(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        if self.component:
            return f"[{self.error_code}] {self.message} ({self.component})"
        return f"[{self.error_code}] {self.message}"


class ConfigValidationError(CoreError):
    """Core or project configuration is missing or invalid."""

    error_code = "CONFIG_VALIDATION_ERROR"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, errors: Optional[List[str]] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.errors = errors or []


class DiscoveryNotFoundError(CoreError):
    """No discovered candidate matches the requested logical name."""

    error_code = "DISCOVERY_NOT_FOUND"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, requested: Optional[str] = None, token: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.requested = requested
        self.token = token


class ComponentLoadError(CoreError):
    """A discovered file or entry point failed to import."""

    error_code = "COMPONENT_LOAD_ERROR"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, location: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.location = location


class TypeMismatchError(CoreError):
    """A discovered export is not a valid variant of the expected kind."""

    error_code = "TYPE_MISMATCH"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, location: Optional[str] = None, expected: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.location = location
        self.expected = expected


class InstantiationError(CoreError):
    """Constructing a component raised."""

    error_code = "INSTANTIATION_ERROR"


class PrepareError(CoreError):
    """A component's prepare() raised."""

    error_code = "PREPARE_ERROR"


class StartError(CoreError):
    """An app's start() raised."""

    error_code = "START_ERROR"


class ExecError(CoreError):
    """A task's exec() raised."""

    error_code = "EXEC_ERROR"


class StopError(CoreError):
    """An app's stop() raised."""

    error_code = "STOP_ERROR"


class ReleaseError(CoreError):
    """A component's release() raised."""

    error_code = "RELEASE_ERROR"
    default_severity = ErrorSeverity.WARNING


class AbortError(CoreError):
    """A task's abort() raised."""

    error_code = "ABORT_ERROR"


class EnvironmentHookError(CoreError):
    """An environment hook failed a checkpoint."""

    error_code = "ENVIRONMENT_HOOK_ERROR"

    def __init__(self, message: str, event: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.event = event


__all__ = [
    "ErrorSeverity",
    "CoreError",
    "ConfigValidationError",
    "DiscoveryNotFoundError",
    "ComponentLoadError",
    "TypeMismatchError",
    "InstantiationError",
    "PrepareError",
    "StartError",
    "ExecError",
    "StopError",
    "ReleaseError",
    "AbortError",
    "EnvironmentHookError",
]
