"""
bootcore - Termination Controller

Three-state machine deciding what a termination request means:

    RUNNING ──request──▶ STOPPING ──request (stoppable)──▶ FORCE_EXITING

The first request flags the capsule as stopping and wakes whoever awaits
``wait_for_stop()``; the runner then performs the graceful stop-side
sequence. A second request while stopping forces the process out with exit
code 1 when the capsule is stoppable, and is ignored otherwise.

Signal binding is separate from the state machine so tests can drive
``request()`` directly.
"""
from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from enum import Enum
from typing import Callable, List, Optional, Sequence

from bootcore.capsule import Capsule
from bootcore.lifecycle import CATEGORY
from bootcore.observability.logging import shutdown_logging

logger = logging.getLogger("bootcore.termination")

FORCED_EXIT_CODE = 1

DEFAULT_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class TerminationState(Enum):
    RUNNING = "running"
    STOPPING = "stopping"
    FORCE_EXITING = "force_exiting"


def hard_exit(code: int) -> None:
    """Close stdlib handlers and leave without running any more Python code."""
    shutdown_logging()
    os._exit(code)


class TerminationController:
    """Owns the stop request state for one capsule."""

    def __init__(
        self,
        capsule: Capsule,
        force_exit: Optional[Callable[[int], None]] = None,
    ):
        self.capsule = capsule
        self._force_exit = force_exit or hard_exit
        self._state = TerminationState.RUNNING
        self._stop_requested = asyncio.Event()
        self._installed: List[signal.Signals] = []

    @property
    def state(self) -> TerminationState:
        return self._state

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def request(self, reason: str = "signal") -> TerminationState:
        """Advance the state machine by one termination request."""
        if self._state is TerminationState.RUNNING:
            self._state = TerminationState.STOPPING
            self.capsule.stopping = True
            self._stop_requested.set()
            if reason == "signal" and self.capsule.stoppable:
                self.capsule.logger.publish(
                    "INFO",
                    "Stopping gracefully",
                    "Press CTRL+C again to kill the process",
                    CATEGORY,
                )
            else:
                self.capsule.logger.publish("DEBUG", "Stopping", reason, CATEGORY)

        elif self._state is TerminationState.STOPPING:
            if not self.capsule.stoppable:
                self.capsule.logger.publish("DEBUG", "Already stopping", reason, CATEGORY)
                return self._state

            self._state = TerminationState.FORCE_EXITING
            self.capsule.logger.publish("WARNING", "Forcing exit", None, CATEGORY)
            self._force_exit(FORCED_EXIT_CODE)

        return self._state

    async def wait_for_stop(self) -> None:
        await self._stop_requested.wait()

    # -------------------------------------------------------------------------
    # Signal binding
    # -------------------------------------------------------------------------

    def _ignore(self) -> None:
        self.capsule.logger.publish("INFO", "Signal ignored", "Use exit() to leave the console", CATEGORY)

    def install(self, signals: Sequence[signal.Signals] = DEFAULT_SIGNALS, ignore: bool = False) -> None:
        """Route host signals to ``request()`` (or swallow them with ``ignore``)."""
        if sys.platform == "win32":
            logger.debug("Signal handlers are not supported on this platform")
            return

        loop = asyncio.get_running_loop()
        handler = self._ignore if ignore else self.request
        for sig in signals:
            loop.add_signal_handler(sig, handler)
            self._installed.append(sig)

    def uninstall(self) -> None:
        if not self._installed:
            return

        loop = asyncio.get_running_loop()
        for sig in self._installed:
            loop.remove_signal_handler(sig)
        self._installed.clear()


__all__ = [
    "FORCED_EXIT_CODE",
    "TerminationState",
    "TerminationController",
    "hard_exit",
]
