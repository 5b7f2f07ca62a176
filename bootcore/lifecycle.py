"""
bootcore - Lifecycle Manager

Loads, prepares and releases components against a capsule.

Every step runs one at a time in a fixed order. A failing step is published
to the capsule logger (category ``CORE``, tagged with the component's
derived name) and raised as the matching CoreError subclass; the runner
turns it into an exit code.
"""
from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Type, TypeVar

from bootcore.capsule import Capsule, ModuleRegistration, module_key
from bootcore.components import CoreApp, CoreModule, CoreTask, is_component
from bootcore.config import component_config
from bootcore.discovery import (
    RegistryEntry,
    ResolvedComponent,
    component_roots,
    discover,
    metadata_name,
    resolve,
)
from bootcore.errors import (
    AbortError,
    ComponentLoadError,
    CoreError,
    DiscoveryNotFoundError,
    ExecError,
    InstantiationError,
    PrepareError,
    ReleaseError,
    StartError,
    StopError,
    TypeMismatchError,
)
from bootcore.naming import DerivedNames
from bootcore.observability.tracing import create_span

CATEGORY = "CORE"

E = TypeVar("E", bound=CoreError)


def report(capsule: Capsule, error: E, level: str = "ERROR") -> E:
    """Publish ``error`` to the capsule logger and hand it back for raising."""
    capsule.logger.publish(
        level,
        error.component or "core",
        error.message,
        CATEGORY,
        error=error,
        cause=error.cause,
    )
    return error


def measurement(started: float) -> str:
    return f"{(time.perf_counter() - started) * 1000:.1f}ms"


async def _call(
    capsule: Capsule,
    operation: Callable[[], Awaitable[Any]],
    error_class: Type[CoreError],
    message: str,
    names: DerivedNames,
) -> Any:
    try:
        return await operation()
    except Exception as e:
        raise report(capsule, error_class(message, component=names.param, cause=e)) from e


def instantiate(
    capsule: Capsule,
    factory: Callable[[], Any],
    kind: str,
    names: DerivedNames,
) -> Any:
    try:
        instance = factory()
    except Exception as e:
        raise report(
            capsule,
            InstantiationError(f"There was an error instantiating {kind} {names.param}", component=names.param, cause=e),
        ) from e
    instance.capsule = capsule
    return instance


# =============================================================================
# MODULES
# =============================================================================


def validate_entries(capsule: Capsule, entries: Sequence[RegistryEntry], base: type, kind: str) -> None:
    """Publish every broken entry, then raise the first one."""
    failures: List[CoreError] = []

    for entry in entries:
        if entry.error is not None:
            failures.append(
                report(
                    capsule,
                    ComponentLoadError(
                        f"There was an error loading a {kind}",
                        component=entry.name,
                        location=entry.location,
                        cause=entry.error,
                    ),
                )
            )
        elif not is_component(entry.exports, base):
            failures.append(
                report(
                    capsule,
                    TypeMismatchError(
                        f"{entry.location} does not export a {base.__name__} subclass",
                        component=entry.name,
                        location=entry.location,
                        expected=base.__name__,
                    ),
                )
            )

    if failures:
        raise failures[0]


async def load_modules(capsule: Capsule) -> None:
    """
    Discover, validate, instantiate and prepare every module.

    All entries are validated before any module is instantiated. The first
    module with a given name wins; later duplicates are skipped with a
    warning.
    """
    config = capsule.core_config
    started = time.perf_counter()

    with create_span("bootcore.load_modules"):
        entries = discover(component_roots(config.modules.location, "module"), "module")
        validate_entries(capsule, entries, CoreModule, "module")

        for entry in entries:
            names = DerivedNames.from_name(metadata_name(entry.exports, "module_name"))
            key = module_key(names)

            if key in capsule.modules:
                capsule.logger.publish(
                    "WARNING",
                    names.param,
                    "Two modules have the same name",
                    CATEGORY,
                    location=entry.location,
                    kept=capsule.modules[key].entry.location,
                )
                continue

            module_started = time.perf_counter()
            module_config = component_config(capsule.project_config, names, "module")
            instance = instantiate(capsule, lambda: entry.exports(module_config, capsule.logger), "module", names)
            await _call(capsule, instance.prepare, PrepareError, f"There was an error preparing module {names.param}", names)

            capsule.modules[key] = ModuleRegistration(entry=entry, instance=instance, names=names)
            capsule.logger.publish(
                "DEBUG",
                names.param,
                "Module prepared",
                CATEGORY,
                source=entry.source,
                measurement=measurement(module_started),
            )

    capsule.logger.publish("DEBUG", "Modules loaded", None, CATEGORY, count=len(capsule.modules), measurement=measurement(started))


async def release_modules(capsule: Capsule) -> List[ReleaseError]:
    """
    Release every loaded module in load order.

    Failures are published and collected; the remaining modules are still
    released and the capsule's module map is always emptied.
    """
    failures: List[ReleaseError] = []

    for key, registration in list(capsule.modules.items()):
        started = time.perf_counter()
        try:
            await registration.instance.release()
        except Exception as e:
            failures.append(
                report(
                    capsule,
                    ReleaseError(
                        f"There was an error releasing module {registration.names.param}",
                        component=registration.names.param,
                        cause=e,
                    ),
                )
            )
            continue
        capsule.logger.publish("DEBUG", registration.names.param, "Module released", CATEGORY, measurement=measurement(started))

    capsule.modules.clear()
    return failures


# =============================================================================
# APPS
# =============================================================================


def _resolve(capsule: Capsule, location: Optional[str], name: str, token: str, base: type) -> ResolvedComponent:
    entries = discover(component_roots(location, token), token)
    try:
        resolved = resolve(entries, name, token, f"{token}_name")
    except (DiscoveryNotFoundError, ComponentLoadError) as e:
        raise report(capsule, e)

    if not is_component(resolved.exports, base):
        raise report(
            capsule,
            TypeMismatchError(
                f"{resolved.entry.location} does not export a {base.__name__} subclass",
                component=resolved.names.param,
                location=resolved.entry.location,
                expected=base.__name__,
            ),
        )
    return resolved


async def load_app(capsule: Capsule, name: str, args: Optional[Dict[str, Any]] = None) -> CoreApp:
    """Resolve and instantiate the app called ``name``."""
    if args is not None:
        capsule.args = dict(args)

    with create_span("bootcore.load_app", attributes={"app.name": name}):
        resolved = _resolve(capsule, capsule.core_config.apps.location, name, "app", CoreApp)
        names = resolved.names

        capsule.app_class = resolved.exports
        capsule.component_names = names
        capsule.app_config = component_config(capsule.project_config, names, "app")
        capsule.app_instance = instantiate(
            capsule,
            lambda: resolved.exports(capsule.app_config, capsule.args, capsule.logger),
            "app",
            names,
        )

    return capsule.app_instance


async def prepare_app(capsule: Capsule) -> None:
    names = capsule.component_names
    started = time.perf_counter()
    await _call(capsule, capsule.app_instance.prepare, PrepareError, f"There was an error preparing app {names.param}", names)
    capsule.logger.publish("DEBUG", names.param, "App prepared", CATEGORY, measurement=measurement(started))


async def start_app(capsule: Capsule) -> None:
    names = capsule.component_names
    await _call(capsule, capsule.app_instance.start, StartError, f"There was an error while running app {names.param}", names)


async def stop_app(capsule: Capsule) -> None:
    names = capsule.component_names
    started = time.perf_counter()
    await _call(capsule, capsule.app_instance.stop, StopError, f"There was an error stopping app {names.param}", names)
    capsule.logger.publish("DEBUG", names.param, "App stopped", CATEGORY, measurement=measurement(started))


async def release_app(capsule: Capsule) -> None:
    names = capsule.component_names
    await _call(capsule, capsule.app_instance.release, ReleaseError, f"There was an error releasing app {names.param}", names)


# =============================================================================
# TASKS
# =============================================================================


async def load_task(
    capsule: Capsule,
    name: str,
    directive: Optional[str] = None,
    directive_options: Sequence[str] = (),
    args: Optional[Dict[str, Any]] = None,
) -> CoreTask:
    """Resolve and instantiate the task called ``name``."""
    if args is not None:
        capsule.args = dict(args)

    with create_span("bootcore.load_task", attributes={"task.name": name, "task.directive": directive}):
        resolved = _resolve(capsule, capsule.core_config.tasks.location, name, "task", CoreTask)
        names = resolved.names

        capsule.task_class = resolved.exports
        capsule.component_names = names
        capsule.task_instance = instantiate(
            capsule,
            lambda: resolved.exports(directive, directive_options, capsule.args, capsule.logger),
            "task",
            names,
        )

    return capsule.task_instance


async def prepare_task(capsule: Capsule) -> None:
    names = capsule.component_names
    await _call(capsule, capsule.task_instance.prepare, PrepareError, f"There was an error preparing task {names.param}", names)


async def exec_task(capsule: Capsule) -> None:
    names = capsule.component_names
    await _call(capsule, capsule.task_instance.exec, ExecError, f"There was an error executing task {names.param}", names)


async def abort_task(capsule: Capsule) -> None:
    names = capsule.component_names
    await _call(capsule, capsule.task_instance.abort, AbortError, f"There was an error aborting task {names.param}", names)


__all__ = [
    "CATEGORY",
    "report",
    "instantiate",
    "validate_entries",
    "measurement",
    "load_modules",
    "release_modules",
    "load_app",
    "prepare_app",
    "start_app",
    "stop_app",
    "release_app",
    "load_task",
    "prepare_task",
    "exec_task",
    "abort_task",
]
