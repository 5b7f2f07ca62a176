"""
bootcore - Component Discovery and Lifecycle Engine

Discovers apps, tasks, modules and environment hooks by naming convention,
drives them through their lifecycles and shuts them down in order on exit or
signal.

Usage:
    from bootcore import CoreModule, CoreApp, run_app

    class HttpApp(CoreApp):
        async def start(self) -> None:
            ...

    exit_code = asyncio.run(run_app("http"))
"""

from bootcore.capsule import Capsule, ModuleRegistration, ProcessType
from bootcore.components import CoreApp, CoreEnvironment, CoreModule, CoreTask
from bootcore.config import CoreConfig, load_core_config, load_project_config
from bootcore.environments import EnvironmentEvent, emit_environment_event, load_environments
from bootcore.errors import (
    AbortError,
    ComponentLoadError,
    ConfigValidationError,
    CoreError,
    DiscoveryNotFoundError,
    EnvironmentHookError,
    ExecError,
    InstantiationError,
    PrepareError,
    ReleaseError,
    StartError,
    StopError,
    TypeMismatchError,
)
from bootcore.lifecycle import load_app, load_modules, load_task, release_modules
from bootcore.observability.logging import CoreLogger, LogRecord, MemorySink
from bootcore.runners import exec_task, run_app, run_console
from bootcore.termination import TerminationController, TerminationState

__version__ = "1.0.0"

__all__ = [
    # Components
    "CoreModule",
    "CoreApp",
    "CoreTask",
    "CoreEnvironment",
    # State
    "Capsule",
    "ModuleRegistration",
    "ProcessType",
    "CoreConfig",
    "load_core_config",
    "load_project_config",
    # Lifecycle
    "load_modules",
    "load_app",
    "load_task",
    "release_modules",
    "EnvironmentEvent",
    "load_environments",
    "emit_environment_event",
    "TerminationController",
    "TerminationState",
    # Runners
    "run_app",
    "exec_task",
    "run_console",
    # Logging
    "CoreLogger",
    "LogRecord",
    "MemorySink",
    # Errors
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
