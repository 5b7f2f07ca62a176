"""
Tests for bootcore/console.py - Interactive Console.
"""
import code
import sys
import threading

import pytest

from bootcore.console import PROMPT, ConsoleShell, build_namespace


class TestBuildNamespace:
    """Tests for build_namespace."""

    def test_without_core_config(self, capsule):
        assert build_namespace(capsule) == {"capsule": capsule}


class TestConsoleShell:
    """Tests for ConsoleShell."""

    @pytest.fixture
    def interactions(self, monkeypatch):
        seen = []

        def interact(console, banner=None, exitmsg=None):
            seen.append((console.locals, sys.ps1, banner))
            raise SystemExit(0)

        monkeypatch.setattr(code.InteractiveConsole, "interact", interact)
        return seen

    @pytest.fixture
    def blocked(self, monkeypatch):
        """A REPL stuck waiting for input until the test lets it go."""
        release = threading.Event()

        def interact(console, banner=None, exitmsg=None):
            release.wait()

        monkeypatch.setattr(code.InteractiveConsole, "interact", interact)
        yield release
        release.set()

    @pytest.mark.asyncio
    async def test_runs_until_exit(self, interactions, tmp_path):
        namespace = {"answer": 42}
        shell = ConsoleShell(namespace, history=tmp_path / ".console_history", banner="hi")

        shell.start()
        await shell.wait_closed()

        assert interactions == [(namespace, PROMPT, "hi")]
        assert getattr(sys, "ps1", None) != PROMPT

    @pytest.mark.asyncio
    async def test_repl_error_is_raised(self, monkeypatch, tmp_path):
        def interact(console, banner=None, exitmsg=None):
            raise OSError("terminal gone")

        monkeypatch.setattr(code.InteractiveConsole, "interact", interact)
        shell = ConsoleShell({}, history=tmp_path / ".console_history")

        shell.start()
        with pytest.raises(OSError, match="terminal gone"):
            await shell.wait_closed()

    @pytest.mark.asyncio
    async def test_close_does_not_wait_for_blocked_repl(self, blocked, tmp_path):
        shell = ConsoleShell({}, history=tmp_path / ".console_history")

        shell.start()
        shell.close()
        await shell.wait_closed()

        assert shell._thread.daemon
        assert shell._thread.is_alive()

        blocked.set()
        shell._thread.join(2)
        assert not shell._thread.is_alive()

    @pytest.mark.asyncio
    async def test_wait_before_start(self, tmp_path):
        shell = ConsoleShell({}, history=tmp_path / ".console_history")

        with pytest.raises(RuntimeError):
            await shell.wait_closed()
