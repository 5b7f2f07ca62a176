"""
bootcore - Test Configuration

Pytest fixtures and configuration for all tests.
"""
from typing import Any, Callable, Dict, List

import pytest

from bootcore import Capsule, CoreLogger, MemorySink, TerminationController
from bootcore.config import load_core_config

from tests.helpers import FakeShell, fixture_path


@pytest.fixture
def memory_sink() -> MemorySink:
    """Sink collecting every published record."""
    return MemorySink()


@pytest.fixture
def capsule(memory_sink) -> Capsule:
    """Capsule whose logger only writes to memory."""
    return Capsule(logger=CoreLogger(level="TRACE", sinks={"memory": memory_sink}))


@pytest.fixture
def force_exit() -> List[int]:
    """Records forced exit codes instead of leaving the process."""
    return []


@pytest.fixture
def controller(capsule, force_exit) -> TerminationController:
    return TerminationController(capsule, force_exit=force_exit.append)


@pytest.fixture
def core_overrides() -> Callable[..., Dict[str, Any]]:
    """
    Build a core config override pointing at the fixture directories.

    Keyword arguments replace a section's location with another fixture
    directory, e.g. ``core_overrides(modules="modules-release-error")``.
    """

    def build(**sections: Any) -> Dict[str, Any]:
        override: Dict[str, Any] = {
            "apps": {"location": fixture_path("apps")},
            "tasks": {"location": fixture_path("tasks")},
            "modules": {"location": fixture_path("modules")},
            "environments": {"location": fixture_path("environments")},
            "config": {"location": fixture_path("config")},
            "environment": "test",
            "logger": {"level": "TRACE", "terminal": {"enable": False}},
        }
        for section, value in sections.items():
            override[section] = {"location": fixture_path(value)} if isinstance(value, str) else value
        return override

    return build


@pytest.fixture
def booted_capsule(capsule, core_overrides) -> Callable[..., Capsule]:
    """Capsule with core config loaded from fixture directories."""

    def build(**sections: Any) -> Capsule:
        capsule.core_config = load_core_config(core_overrides(**sections))
        return capsule

    return build


@pytest.fixture
def shells() -> List[FakeShell]:
    return []


@pytest.fixture
def shell_factory(shells) -> Callable[[Dict[str, Any]], FakeShell]:
    def factory(namespace: Dict[str, Any]) -> FakeShell:
        shell = FakeShell(namespace)
        shells.append(shell)
        return shell

    return factory
