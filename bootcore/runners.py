"""
bootcore - Runners

Entry points for the three process types. Each runner builds (or receives)
a capsule, boots it, drives the requested component and returns the process
exit code.

Startup order:
    core config → project config → environments → termination controller
    → beforeModulesLoad → modules → afterModulesLoad → app | task | console

Exit codes:
    0  everything succeeded
    1  startup failure, checkpoint failure, unhandled component error,
       failed release, or forced exit

Usage:
    code = await run_app("api", {"port": "8080"})
    code = await exec_task("migrate", "up", ["--dry-run"])
    code = await run_console()
"""
from __future__ import annotations

import asyncio
import time
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Sequence, Union

from bootcore.capsule import Capsule, ProcessType
from bootcore.config import load_core_config, load_project_config
from bootcore.console import ShellFactory, build_namespace, default_shell_factory
from bootcore.environments import EnvironmentEvent, emit_environment_event, load_environments
from bootcore.errors import ConfigValidationError, CoreError, EnvironmentHookError
from bootcore.lifecycle import (
    CATEGORY,
    abort_task,
    exec_task as exec_task_instance,
    load_app,
    load_modules,
    load_task,
    measurement,
    prepare_app,
    prepare_task,
    release_app,
    release_modules,
    report,
    start_app,
    stop_app,
)
from bootcore.observability.logging import JsonFileSink, LoggingConfig, StructlogSink, setup_logging
from bootcore.observability.tracing import create_span
from bootcore.termination import TerminationController, TerminationState

Step = Callable[[], Awaitable[Any]]


# =============================================================================
# BOOT
# =============================================================================


def configure_logger(capsule: Capsule) -> None:
    """Apply the core config's logger section to the capsule logger."""
    config = capsule.core_config.logger
    logger = capsule.logger

    logger.level = config.level
    logger.silence = config.silence

    if logger.has_sink("terminal"):
        sink = logger.get_sink("terminal")
        if isinstance(sink, StructlogSink):
            sink.enabled = config.terminal.enable

    if config.local_file.enable and not logger.has_sink("local-file"):
        logger.add_sink("local-file", JsonFileSink(config.local_file.location))

    setup_logging(
        LoggingConfig(
            level=config.level,
            json_format=config.json_format,
            environment=capsule.core_config.environment,
        ),
        force=True,
    )


async def _boot(
    capsule: Capsule,
    core_config_override: Optional[Mapping[str, Any]],
    core_config_location: Optional[Union[str, Path]],
) -> bool:
    started = time.perf_counter()

    try:
        with create_span("bootcore.boot", attributes={"process.type": capsule.process_type.value}):
            capsule.core_config = load_core_config(core_config_override, core_config_location)
            configure_logger(capsule)
            capsule.project_config = load_project_config(
                capsule.core_config.config.location,
                capsule.core_config.environment,
            )
            await load_environments(capsule)
    except ConfigValidationError as e:
        capsule.logger.publish("ERROR", e.message, None, CATEGORY, errors=e.errors, error=e)
        return False
    except CoreError:
        return False

    capsule.logger.publish(
        "DEBUG",
        "Core booted",
        None,
        CATEGORY,
        environment=capsule.core_config.environment,
        measurement=measurement(started),
    )
    return True


async def _finish(capsule: Capsule, code: int) -> int:
    capsule.logger.publish("DEBUG", "Exiting", None, CATEGORY, exit_code=code)
    await capsule.logger.flush()
    return code


def _emit(capsule: Capsule, event: EnvironmentEvent) -> Step:
    return lambda: emit_environment_event(capsule, event)


class Startup(Enum):
    COMPLETE = "complete"
    # A stop request interrupted startup
    STOPPED = "stopped"
    # A checkpoint failed; the stop-side sequence still runs
    HALTED = "halted"
    # A component failed; prepared modules were released without checkpoints
    FAILED = "failed"


async def _startup(capsule: Capsule, controller: TerminationController, steps: Sequence[Step]) -> Startup:
    """Run startup steps in order until one fails or a stop is requested."""
    for step in steps:
        if controller.stop_requested:
            return Startup.STOPPED

        try:
            await step()
        except EnvironmentHookError:
            return Startup.HALTED
        except Exception as e:
            if not isinstance(e, CoreError):
                report(capsule, CoreError("Unexpected error during startup", component="core", cause=e))
            await release_modules(capsule)
            capsule.clear_component()
            return Startup.FAILED

    return Startup.STOPPED if controller.stop_requested else Startup.COMPLETE


def _settled(controller: TerminationController, reason: str) -> None:
    if controller.state is TerminationState.RUNNING:
        controller.request(reason)


class StopSequence:
    """
    Stop-side checkpoints and releases.

    A failing checkpoint skips every later checkpoint, but releases still
    run. Any failure, including a startup checkpoint failure that led here,
    turns the exit code into 1.
    """

    def __init__(self, capsule: Capsule, outcome: Startup = Startup.COMPLETE):
        self.capsule = capsule
        self.code = 1 if outcome is Startup.HALTED else 0
        self.halted = False

    async def checkpoint(self, event: EnvironmentEvent) -> None:
        if self.halted:
            return
        try:
            await emit_environment_event(self.capsule, event)
        except EnvironmentHookError:
            self.halted = True
            self.code = 1

    async def step(self, operation: Step) -> bool:
        try:
            await operation()
        except CoreError:
            self.code = 1
            return False
        return True

    async def release_app(self) -> None:
        await self.checkpoint(EnvironmentEvent.BEFORE_APP_RELEASE)
        await self.step(lambda: release_app(self.capsule))
        await self.checkpoint(EnvironmentEvent.AFTER_APP_RELEASE)

    async def release_modules(self) -> int:
        await self.checkpoint(EnvironmentEvent.BEFORE_MODULES_RELEASE)
        if await release_modules(self.capsule):
            self.code = 1
            self.halted = True
        await self.checkpoint(EnvironmentEvent.AFTER_MODULES_RELEASE)
        return self.code


async def _first_of(work: asyncio.Future[Any], controller: TerminationController) -> None:
    """Wait until ``work`` settles or a stop is requested."""
    waiter = asyncio.ensure_future(controller.wait_for_stop())
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()


def _controller(
    capsule: Capsule,
    controller: Optional[TerminationController],
    force_exit: Optional[Callable[[int], None]],
) -> TerminationController:
    return controller or TerminationController(capsule, force_exit=force_exit)


# =============================================================================
# APP
# =============================================================================


async def _run_app(capsule: Capsule, controller: TerminationController, name: str) -> int:
    prepared = False

    async def prepare() -> None:
        nonlocal prepared
        await prepare_app(capsule)
        prepared = True

    outcome = await _startup(
        capsule,
        controller,
        [
            _emit(capsule, EnvironmentEvent.BEFORE_MODULES_LOAD),
            lambda: load_modules(capsule),
            _emit(capsule, EnvironmentEvent.AFTER_MODULES_LOAD),
            lambda: load_app(capsule, name),
            _emit(capsule, EnvironmentEvent.BEFORE_APP_PREPARE),
            prepare,
            _emit(capsule, EnvironmentEvent.AFTER_APP_PREPARE),
            _emit(capsule, EnvironmentEvent.BEFORE_APP_STARTS),
        ],
    )
    if outcome is Startup.FAILED:
        return 1

    sequence = StopSequence(capsule, outcome)
    if outcome is not Startup.COMPLETE:
        if prepared:
            await sequence.release_app()
        return await sequence.release_modules()

    names = capsule.component_names
    capsule.logger.publish("INFO", names.param, "Starting app", CATEGORY, description=capsule.app_class.description)

    running = asyncio.ensure_future(start_app(capsule))
    # Let start() reach its first suspension point
    await asyncio.sleep(0)

    if not running.done() or running.exception() is None:
        try:
            await emit_environment_event(capsule, EnvironmentEvent.AFTER_APP_STARTS)
        except EnvironmentHookError:
            sequence.code = 1
            _settled(controller, "afterAppStarts failed")

    await _first_of(running, controller)
    start_failed = running.done() and running.exception() is not None
    _settled(controller, "app finished")

    if not start_failed:
        await sequence.checkpoint(EnvironmentEvent.BEFORE_APP_STOPS)
        if not running.done() and not await sequence.step(lambda: stop_app(capsule)):
            running.cancel()
        await asyncio.wait({running})
        if running.cancelled() or running.exception() is not None:
            sequence.code = 1
        await sequence.checkpoint(EnvironmentEvent.AFTER_APP_STOPS)
    else:
        sequence.code = 1

    await sequence.release_app()
    return await sequence.release_modules()


async def run_app(
    name: str,
    args: Optional[Dict[str, Any]] = None,
    core_config_override: Optional[Mapping[str, Any]] = None,
    *,
    capsule: Optional[Capsule] = None,
    controller: Optional[TerminationController] = None,
    force_exit: Optional[Callable[[int], None]] = None,
    install_signals: bool = True,
    core_config_location: Optional[Union[str, Path]] = None,
) -> int:
    """Run the app called ``name`` until it finishes or is stopped."""
    capsule = capsule or Capsule()
    capsule.process_type = ProcessType.APP
    capsule.stoppable = True
    capsule.args = dict(args or {})

    if not await _boot(capsule, core_config_override, core_config_location):
        return await _finish(capsule, 1)

    controller = _controller(capsule, controller, force_exit)
    if install_signals:
        controller.install()

    try:
        code = await _run_app(capsule, controller, name)
    finally:
        controller.uninstall()

    return await _finish(capsule, code)


# =============================================================================
# TASK
# =============================================================================


async def _exec_task(
    capsule: Capsule,
    controller: TerminationController,
    name: str,
    directive: Optional[str],
    directive_options: Sequence[str],
) -> int:
    outcome = await _startup(
        capsule,
        controller,
        [
            _emit(capsule, EnvironmentEvent.BEFORE_MODULES_LOAD),
            lambda: load_modules(capsule),
            _emit(capsule, EnvironmentEvent.AFTER_MODULES_LOAD),
            lambda: load_task(capsule, name, directive, directive_options),
            lambda: prepare_task(capsule),
            _emit(capsule, EnvironmentEvent.BEFORE_TASK_EXEC),
        ],
    )
    if outcome is Startup.FAILED:
        return 1

    sequence = StopSequence(capsule, outcome)
    if outcome is not Startup.COMPLETE:
        return await sequence.release_modules()

    names = capsule.component_names
    started = time.perf_counter()
    capsule.logger.publish("INFO", names.param, "Executing task", CATEGORY, directive=directive)

    executing = asyncio.ensure_future(exec_task_instance(capsule))
    await _first_of(executing, controller)

    aborted = not executing.done()
    if aborted:
        await sequence.checkpoint(EnvironmentEvent.BEFORE_TASK_ABORTS)
        if not await sequence.step(lambda: abort_task(capsule)):
            executing.cancel()
        await sequence.checkpoint(EnvironmentEvent.AFTER_TASK_ABORTS)

    await asyncio.wait({executing})
    if executing.cancelled() or executing.exception() is not None:
        sequence.code = 1
    else:
        capsule.logger.publish(
            "INFO",
            names.param,
            "Task aborted" if aborted else "Task done",
            CATEGORY,
            measurement=measurement(started),
        )
        if not aborted:
            await sequence.checkpoint(EnvironmentEvent.AFTER_TASK_EXEC)

    _settled(controller, "task finished")
    return await sequence.release_modules()


async def exec_task(
    name: str,
    directive: Optional[str] = None,
    directive_options: Sequence[str] = (),
    args: Optional[Dict[str, Any]] = None,
    core_config_override: Optional[Mapping[str, Any]] = None,
    *,
    capsule: Optional[Capsule] = None,
    controller: Optional[TerminationController] = None,
    force_exit: Optional[Callable[[int], None]] = None,
    install_signals: bool = True,
    core_config_location: Optional[Union[str, Path]] = None,
) -> int:
    """Execute the task called ``name`` once."""
    capsule = capsule or Capsule()
    capsule.process_type = ProcessType.TASK
    capsule.stoppable = True
    capsule.args = dict(args or {})

    if not await _boot(capsule, core_config_override, core_config_location):
        return await _finish(capsule, 1)

    controller = _controller(capsule, controller, force_exit)
    if install_signals:
        controller.install()

    try:
        code = await _exec_task(capsule, controller, name, directive, directive_options)
    finally:
        controller.uninstall()

    return await _finish(capsule, code)


# =============================================================================
# CONSOLE
# =============================================================================


async def _run_console(
    capsule: Capsule,
    controller: TerminationController,
    shell_factory: ShellFactory,
) -> int:
    outcome = await _startup(
        capsule,
        controller,
        [
            _emit(capsule, EnvironmentEvent.BEFORE_MODULES_LOAD),
            lambda: load_modules(capsule),
            _emit(capsule, EnvironmentEvent.AFTER_MODULES_LOAD),
            _emit(capsule, EnvironmentEvent.BEFORE_CONSOLE_RUNS),
        ],
    )
    if outcome is Startup.FAILED:
        return 1

    sequence = StopSequence(capsule, outcome)
    if outcome is not Startup.COMPLETE:
        return await _close_console(sequence)

    # The shell takes over the terminal; pending records go out first
    await capsule.logger.flush()

    try:
        shell = shell_factory(build_namespace(capsule))
        shell.start()
    except Exception as e:
        report(capsule, CoreError("There was an error while running the console", component="console", cause=e))
        await release_modules(capsule)
        return 1

    try:
        await emit_environment_event(capsule, EnvironmentEvent.AFTER_CONSOLE_RUNS)
    except EnvironmentHookError:
        shell.close()
        sequence.code = 1
        return await _close_console(sequence)

    try:
        await shell.wait_closed()
    except Exception as e:
        report(capsule, CoreError("The console exited with an error", component="console", cause=e))
        sequence.code = 1

    _settled(controller, "console closed")
    return await _close_console(sequence)


async def _close_console(sequence: StopSequence) -> int:
    await sequence.checkpoint(EnvironmentEvent.AFTER_CONSOLE_STOPS)
    return await sequence.release_modules()


async def run_console(
    core_config_override: Optional[Mapping[str, Any]] = None,
    *,
    capsule: Optional[Capsule] = None,
    shell_factory: Optional[ShellFactory] = None,
    controller: Optional[TerminationController] = None,
    force_exit: Optional[Callable[[int], None]] = None,
    install_signals: bool = True,
    core_config_location: Optional[Union[str, Path]] = None,
) -> int:
    """Open an interactive console over the loaded modules."""
    capsule = capsule or Capsule()
    capsule.process_type = ProcessType.CONSOLE
    capsule.stoppable = False

    if not await _boot(capsule, core_config_override, core_config_location):
        return await _finish(capsule, 1)

    controller = _controller(capsule, controller, force_exit)
    if install_signals:
        # The REPL owns CTRL+C; leaving it with exit() is the only way out
        controller.install(ignore=True)

    try:
        code = await _run_console(capsule, controller, shell_factory or default_shell_factory)
    finally:
        controller.uninstall()

    return await _finish(capsule, code)


__all__ = ["StopSequence", "configure_logger", "run_app", "exec_task", "run_console"]
