"""
bootcore - Component Base Classes

Modules, apps, tasks and environments are plain classes deriving from the
bases below. The base a discovered class derives from is its kind; anything
else found under a kind's naming convention is rejected at resolution time.

Lifecycles:
    Module:  Unloaded → Instantiated → Prepared → Released
    App:     Unloaded → Instantiated → Prepared → Running → Stopped → Released
    Task:    Unloaded → Instantiated → Prepared → Executing → Done | Aborted

Usage:
    class RedisModule(CoreModule):
        module_name = "redis"

        async def prepare(self) -> None:
            self.client = await connect(self.config["url"])

        async def release(self) -> None:
            await self.client.close()
"""
from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
    Dict,
    List,
    Optional,
    Sequence,
    Union,
)

from bootcore.observability.logging import CoreLogger

if TYPE_CHECKING:
    from bootcore.capsule import Capsule


class CoreComponent:
    """Attributes shared by every component kind."""

    description: ClassVar[Optional[str]] = None

    # Set by the lifecycle manager right after instantiation
    capsule: Optional["Capsule"] = None


class CoreModule(CoreComponent):
    """A long-lived resource provider shared by the app, task or console."""

    module_name: ClassVar[Optional[str]] = None

    def __init__(self, config: Any, logger: CoreLogger):
        self.config = config
        self.logger = logger

    async def prepare(self) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement prepare()")

    async def release(self) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement release()")


class CoreApp(CoreComponent):
    """
    A long-running program.

    ``start()`` stays suspended for as long as the app runs; ``stop()`` makes
    it return.
    """

    app_name: ClassVar[Optional[str]] = None

    def __init__(self, config: Any, args: Dict[str, Any], logger: CoreLogger):
        self.config = config
        self.args = args
        self.logger = logger

    async def prepare(self) -> None:
        pass

    async def start(self) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement start()")

    async def stop(self) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement stop()")

    async def release(self) -> None:
        pass


class CoreTask(CoreComponent):
    """
    A run-to-completion job.

    ``abort()`` may be called while ``exec()`` is in flight and must make it
    settle.
    """

    task_name: ClassVar[Optional[str]] = None

    def __init__(
        self,
        directive: Optional[str],
        directive_options: Sequence[str],
        args: Dict[str, Any],
        logger: CoreLogger,
    ):
        self.directive = directive
        self.directive_options = list(directive_options)
        self.args = args
        self.logger = logger

    async def prepare(self) -> None:
        pass

    async def exec(self) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement exec()")

    async def abort(self) -> None:
        pass


class CoreEnvironment(CoreComponent):
    """
    Hooks invoked at lifecycle checkpoints.

    Implement any of ``before_modules_load``, ``after_modules_load``,
    ``before_app_prepare``, ... (sync or async). ``environment`` limits the
    hook to runtime environments (``"production"``, ``["staging", "test"]``
    or ``"!production"``); ``only_for`` limits it to process types
    (``"app"``, ``"task"``, ``"console"``).
    """

    environment_name: ClassVar[Optional[str]] = None
    environment: ClassVar[Optional[Union[str, List[str]]]] = None
    only_for: ClassVar[Optional[Union[str, List[str]]]] = None

    def __init__(self, logger: CoreLogger):
        self.logger = logger


def is_component(exports: Any, base: type) -> bool:
    """Whether ``exports`` is a concrete subclass of ``base``."""
    return isinstance(exports, type) and issubclass(exports, base) and exports is not base


__all__ = [
    "CoreComponent",
    "CoreModule",
    "CoreApp",
    "CoreTask",
    "CoreEnvironment",
    "is_component",
]
