"""
bootcore - Environment Event Bus

Environment hooks observe lifecycle checkpoints. Each checkpoint is delivered
to every loaded hook in load order, one at a time; the first failing hook
stops delivery.
"""
from __future__ import annotations

import inspect
import time
from enum import Enum
from typing import Iterable, List, Optional, Union

from bootcore.capsule import Capsule, ProcessType
from bootcore.components import CoreEnvironment
from bootcore.discovery import component_roots, discover, metadata_name
from bootcore.errors import EnvironmentHookError
from bootcore.lifecycle import CATEGORY, instantiate, measurement, report, validate_entries
from bootcore.naming import DerivedNames, snake_case
from bootcore.observability.tracing import create_span


class EnvironmentEvent(str, Enum):
    BEFORE_MODULES_LOAD = "beforeModulesLoad"
    AFTER_MODULES_LOAD = "afterModulesLoad"
    BEFORE_APP_PREPARE = "beforeAppPrepare"
    AFTER_APP_PREPARE = "afterAppPrepare"
    BEFORE_APP_STARTS = "beforeAppStarts"
    AFTER_APP_STARTS = "afterAppStarts"
    BEFORE_APP_STOPS = "beforeAppStops"
    AFTER_APP_STOPS = "afterAppStops"
    BEFORE_APP_RELEASE = "beforeAppRelease"
    AFTER_APP_RELEASE = "afterAppRelease"
    BEFORE_TASK_EXEC = "beforeTaskExec"
    AFTER_TASK_EXEC = "afterTaskExec"
    BEFORE_TASK_ABORTS = "beforeTaskAborts"
    AFTER_TASK_ABORTS = "afterTaskAborts"
    BEFORE_CONSOLE_RUNS = "beforeConsoleRuns"
    AFTER_CONSOLE_RUNS = "afterConsoleRuns"
    AFTER_CONSOLE_STOPS = "afterConsoleStops"
    BEFORE_MODULES_RELEASE = "beforeModulesRelease"
    AFTER_MODULES_RELEASE = "afterModulesRelease"

    @property
    def method_name(self) -> str:
        """Hook method handling this event (``before_modules_load``)."""
        return snake_case(self.value)


def _as_list(value: Optional[Union[str, Iterable[str]]]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def applies_to(hook_class: type, environment: str, process_type: Optional[ProcessType]) -> bool:
    """
    Whether a hook class should be loaded.

    ``environment`` entries prefixed with ``!`` exclude an environment; any
    plain entry restricts loading to the listed environments.
    """
    wanted = _as_list(getattr(hook_class, "environment", None))
    included = [name for name in wanted if not name.startswith("!")]
    excluded = [name[1:] for name in wanted if name.startswith("!")]

    if environment in excluded:
        return False
    if included and environment not in included:
        return False

    only_for = _as_list(getattr(hook_class, "only_for", None))
    if only_for and (process_type is None or process_type.value not in only_for):
        return False

    return True


def hook_name(hook: CoreEnvironment) -> str:
    return DerivedNames.from_name(metadata_name(type(hook), "environment_name")).param


async def load_environments(capsule: Capsule) -> None:
    """Discover environment hooks and keep those matching the runtime environment and process type."""
    config = capsule.core_config
    started = time.perf_counter()

    with create_span("bootcore.load_environments", attributes={"environment": config.environment}):
        entries = discover(component_roots(config.environments.location, "environment"), "environment")
        validate_entries(capsule, entries, CoreEnvironment, "environment")

        for entry in entries:
            if not applies_to(entry.exports, config.environment, capsule.process_type):
                capsule.logger.publish("TRACE", entry.name, "Environment skipped", CATEGORY)
                continue

            names = DerivedNames.from_name(metadata_name(entry.exports, "environment_name"))
            hook = instantiate(capsule, lambda: entry.exports(capsule.logger), "environment", names)
            capsule.environments.append(hook)

    capsule.logger.publish(
        "DEBUG",
        "Environments loaded",
        None,
        CATEGORY,
        count=len(capsule.environments),
        measurement=measurement(started),
    )


async def emit_environment_event(capsule: Capsule, event: EnvironmentEvent) -> None:
    """
    Deliver ``event`` to every loaded hook.

    Raises:
        EnvironmentHookError: the first hook that raised
    """
    for hook in capsule.environments:
        handler = getattr(hook, event.method_name, None)
        if handler is None:
            continue

        try:
            result = handler()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            name = hook_name(hook)
            raise report(
                capsule,
                EnvironmentHookError(
                    f"There was an error executing the {event.value} event",
                    component=name,
                    event=event.value,
                    cause=e,
                ),
            ) from e

    capsule.logger.publish("TRACE", event.value, "Environment event emitted", CATEGORY)


__all__ = [
    "EnvironmentEvent",
    "applies_to",
    "hook_name",
    "load_environments",
    "emit_environment_event",
]
