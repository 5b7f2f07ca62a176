"""
Tests for bootcore/runners.py - Console Runner.
"""
import pytest

from bootcore import discovery
from bootcore.runners import run_console

from tests.helpers import BASE_CONSOLE_EVENTS, STOP_CONSOLE_EVENTS, FakeShell, fixture_path

FAILING_EVENTS = BASE_CONSOLE_EVENTS + STOP_CONSOLE_EVENTS


@pytest.fixture(autouse=True)
def no_entry_points(monkeypatch):
    monkeypatch.setattr(discovery, "entry_points", lambda group: [])


@pytest.fixture
def console(capsule, controller, core_overrides, shell_factory):
    def start(factory=None, **sections):
        return run_console(
            core_overrides(**sections),
            capsule=capsule,
            shell_factory=factory or shell_factory,
            controller=controller,
            install_signals=False,
        )

    return start


def _hook(capsule, class_name):
    return next(hook for hook in capsule.environments if type(hook).__name__ == class_name)


class TestRunConsole:
    """Tests for a console session."""

    @pytest.mark.asyncio
    async def test_session(self, console, capsule, shells):
        code = await console()

        assert code == 0
        assert shells[0].started
        assert _hook(capsule, "ConsoleEnvironment").calls == BASE_CONSOLE_EVENTS + STOP_CONSOLE_EVENTS
        assert capsule.modules == {}
        assert capsule.stoppable is False

    @pytest.mark.asyncio
    async def test_console_hooks(self, console, capsule):
        await console()

        assert [type(hook).__name__ for hook in capsule.environments] == [
            "ConsoleEnvironment",
            "NotProductionEnvironment",
            "TestEnvironment",
            "UniversalEnvironment",
        ]

    @pytest.mark.asyncio
    async def test_modules_as_globals(self, console, shells):
        await console()

        namespace = shells[0].namespace
        assert set(namespace) == {"capsule", "excellentModule", "goodModule"}
        assert namespace["goodModule"].peer is namespace["excellentModule"]

    @pytest.mark.asyncio
    async def test_modules_not_as_globals(self, console, shells, capsule):
        await console(modules={"location": fixture_path("modules"), "as_globals": False})

        assert set(shells[0].namespace) == {"capsule"}
        assert shells[0].namespace["capsule"] is capsule


class TestRunConsoleFailures:
    """Tests for failures around a console session."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("index, event", list(enumerate(BASE_CONSOLE_EVENTS)))
    async def test_startup_event_failure_still_runs_stop_events(self, console, capsule, monkeypatch, index, event):
        monkeypatch.setenv("BOOTCORE_FAIL_EVENT", event)

        code = await console(environments="environments-event-error")

        assert code == 1
        assert _hook(capsule, "ControlEnvironment").calls == BASE_CONSOLE_EVENTS[: index + 1] + STOP_CONSOLE_EVENTS
        assert capsule.modules == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("event", STOP_CONSOLE_EVENTS)
    async def test_stop_event_failure_skips_later_events(self, console, capsule, monkeypatch, event):
        monkeypatch.setenv("BOOTCORE_FAIL_EVENT", event)

        code = await console(environments="environments-event-error")

        assert code == 1
        assert _hook(capsule, "ControlEnvironment").calls == FAILING_EVENTS[: FAILING_EVENTS.index(event) + 1]
        assert capsule.modules == {}

    @pytest.mark.asyncio
    async def test_startup_event_failure_releases_modules(self, console, monkeypatch, memory_sink, shells):
        monkeypatch.setenv("BOOTCORE_FAIL_EVENT", "beforeConsoleRuns")

        await console(environments="environments-event-error")

        released = [record.title for record in memory_sink.records if record.message == "Module released"]
        assert released == ["excellent", "good"]
        assert shells == []

    @pytest.mark.asyncio
    async def test_after_console_runs_failure_closes_shell(self, console, monkeypatch, shells):
        monkeypatch.setenv("BOOTCORE_FAIL_EVENT", "afterConsoleRuns")

        def factory(namespace):
            shell = FakeShell(namespace, close_immediately=False)
            shells.append(shell)
            return shell

        code = await console(factory, environments="environments-event-error")

        assert code == 1
        assert shells[0].closed.is_set()

    @pytest.mark.asyncio
    async def test_shell_start_failure(self, console, capsule, memory_sink):
        def factory(namespace):
            raise OSError("no terminal")

        code = await console(factory)

        assert code == 1
        assert _hook(capsule, "UniversalEnvironment").calls == BASE_CONSOLE_EVENTS[:3]
        assert capsule.modules == {}
        assert memory_sink.of_level("ERROR")[0].message == "There was an error while running the console"

    @pytest.mark.asyncio
    async def test_module_release_failure(self, console, capsule):
        code = await console(modules="modules-release-error")

        assert code == 1
        assert _hook(capsule, "UniversalEnvironment").calls == FAILING_EVENTS[:-1]
