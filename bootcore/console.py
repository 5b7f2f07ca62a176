"""
bootcore - Interactive Console

A Python REPL over the capsule. The REPL runs in a daemon thread so the
event loop keeps serving modules while the user types; ``wait_closed()``
resolves when the user leaves with ``exit()`` or EOF, or when the runner
closes the session.
"""
from __future__ import annotations

import asyncio
import code
import logging
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Union

from bootcore.capsule import Capsule

logger = logging.getLogger("bootcore.console")

PROMPT = "core > "
HISTORY_FILE = ".console_history"


class Shell(Protocol):
    def start(self) -> None: ...

    async def wait_closed(self) -> None: ...

    def close(self) -> None: ...


ShellFactory = Callable[[Dict[str, Any]], Shell]


def build_namespace(capsule: Capsule) -> Dict[str, Any]:
    """Names visible in the console: the capsule and, optionally, every module."""
    namespace: Dict[str, Any] = {"capsule": capsule}
    if capsule.core_config is not None and capsule.core_config.modules.as_globals:
        namespace.update(capsule.module_instances)
    return namespace


class ConsoleShell:
    """``code.InteractiveConsole`` with readline history, run off the event loop."""

    def __init__(
        self,
        namespace: Dict[str, Any],
        prompt: str = PROMPT,
        history: Union[str, Path] = HISTORY_FILE,
        banner: Optional[str] = None,
    ):
        self.namespace = namespace
        self.prompt = prompt
        self.history = Path(history)
        self.banner = banner if banner is not None else "bootcore console (exit() to leave)"
        self._closed: Optional[asyncio.Future[None]] = None
        self._thread: Optional[threading.Thread] = None

    def _load_history(self) -> None:
        try:
            import readline
        except ImportError:
            return

        if self.history.exists():
            try:
                readline.read_history_file(str(self.history))
            except OSError as e:
                logger.warning(f"Could not read console history: {e}")

    def _save_history(self) -> None:
        try:
            import readline
        except ImportError:
            return

        try:
            readline.write_history_file(str(self.history))
        except OSError as e:
            logger.warning(f"Could not write console history: {e}")

    def _interact(self) -> None:
        console = code.InteractiveConsole(locals=self.namespace)
        previous = getattr(sys, "ps1", None)
        sys.ps1 = self.prompt
        self._load_history()
        try:
            console.interact(banner=self.banner, exitmsg="")
        except SystemExit:
            pass
        finally:
            self._save_history()
            if previous is None:
                del sys.ps1
            else:
                sys.ps1 = previous

    def _run(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            self._interact()
        except Exception as e:
            error: Optional[BaseException] = e
        else:
            error = None

        # The loop may be gone when the user leaves an aborted session
        if not loop.is_closed():
            loop.call_soon_threadsafe(self._settle, error)

    def _settle(self, error: Optional[BaseException]) -> None:
        if self._closed is None or self._closed.done():
            return
        if error is None:
            self._closed.set_result(None)
        else:
            self._closed.set_exception(error)

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._closed = loop.create_future()
        # Daemon: never joined at interpreter exit
        self._thread = threading.Thread(target=self._run, args=(loop,), name="bootcore-console", daemon=True)
        self._thread.start()

    async def wait_closed(self) -> None:
        if self._closed is None:
            raise RuntimeError("Console has not been started")
        await self._closed

    def close(self) -> None:
        # input() cannot be interrupted; stop waiting for the REPL thread
        self._settle(None)


def default_shell_factory(namespace: Dict[str, Any]) -> ConsoleShell:
    return ConsoleShell(namespace)


__all__ = [
    "PROMPT",
    "HISTORY_FILE",
    "Shell",
    "ConsoleShell",
    "build_namespace",
    "default_shell_factory",
]
