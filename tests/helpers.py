"""Shared constants and helpers for the bootcore tests."""
import asyncio
from pathlib import Path
from typing import Any, Callable, Dict

FIXTURES = Path(__file__).parent / "fixtures"

BASE_APP_EVENTS = [
    "beforeModulesLoad",
    "afterModulesLoad",
    "beforeAppPrepare",
    "afterAppPrepare",
    "beforeAppStarts",
    "afterAppStarts",
]

STOP_APP_EVENTS = [
    "beforeAppStops",
    "afterAppStops",
    "beforeAppRelease",
    "afterAppRelease",
    "beforeModulesRelease",
    "afterModulesRelease",
]

BASE_TASK_EVENTS = [
    "beforeModulesLoad",
    "afterModulesLoad",
    "beforeTaskExec",
]

STOP_TASK_EVENTS = [
    "afterTaskExec",
    "beforeModulesRelease",
    "afterModulesRelease",
]

BASE_CONSOLE_EVENTS = [
    "beforeModulesLoad",
    "afterModulesLoad",
    "beforeConsoleRuns",
    "afterConsoleRuns",
]

STOP_CONSOLE_EVENTS = [
    "afterConsoleStops",
    "beforeModulesRelease",
    "afterModulesRelease",
]


def fixture_path(name: str) -> str:
    return str(FIXTURES / name)


async def wait_until(predicate: Callable[[], Any], timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it is truthy."""

    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


class FakeShell:
    """Console shell closing as soon as it starts."""

    def __init__(self, namespace: Dict[str, Any], close_immediately: bool = True):
        self.namespace = namespace
        self.close_immediately = close_immediately
        self.started = False
        self.closed = asyncio.Event()

    def start(self) -> None:
        self.started = True
        if self.close_immediately:
            self.closed.set()

    async def wait_closed(self) -> None:
        await self.closed.wait()

    def close(self) -> None:
        self.closed.set()
