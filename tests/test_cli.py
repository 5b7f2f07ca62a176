"""
Tests for cli/main.py - Command Line Interface.
"""
import pytest
import typer
import yaml
from rich.console import Console
from typer.testing import CliRunner

from bootcore import discovery
import importlib

main = importlib.import_module("bootcore.cli.main")
from bootcore.cli.main import app, parse_args

from tests.helpers import fixture_path

runner = CliRunner()


@pytest.fixture
def calls(monkeypatch):
    """Replace the runners with recorders returning a fixed exit code."""
    recorded = []

    def fake(kind, code):
        async def runner_(*args, **kwargs):
            recorded.append((kind, args))
            return code

        return runner_

    monkeypatch.setattr(main, "run_app", fake("app", 0))
    monkeypatch.setattr(main, "exec_task", fake("task", 1))
    monkeypatch.setattr(main, "run_console", fake("console", 0))
    return recorded


class TestParseArgs:
    """Tests for parse_args."""

    def test_pairs_and_flags(self):
        assert parse_args(["port=8080", "debug", "dsn=a=b"]) == {"port": "8080", "debug": True, "dsn": "a=b"}

    def test_empty_key(self):
        with pytest.raises(typer.BadParameter):
            parse_args(["=value"])


class TestCommands:
    """Tests for run, exec and console."""

    def test_run(self, calls):
        result = runner.invoke(app, ["run", "api", "-a", "port=8080", "--env", "staging"])

        assert result.exit_code == 0
        assert calls == [("app", ("api", {"port": "8080"}, {"environment": "staging"}))]

    def test_exec_with_directive_options(self, calls):
        result = runner.invoke(app, ["exec", "migrate", "up", "--dry-run", "-a", "limit=10"])

        assert result.exit_code == 1
        assert calls == [("task", ("migrate", "up", ["--dry-run"], {"limit": "10"}, None))]

    def test_exec_without_directive(self, calls):
        runner.invoke(app, ["exec", "cleanup"])

        assert calls == [("task", ("cleanup", None, [], {}, None))]

    def test_console(self, calls):
        result = runner.invoke(app, ["console"])

        assert result.exit_code == 0
        assert calls == [("console", (None,))]


class TestComponents:
    """Tests for the components listing."""

    @pytest.fixture
    def output(self, monkeypatch):
        recorder = Console(record=True, width=400)
        monkeypatch.setattr(main, "console", recorder)
        monkeypatch.setattr(discovery, "entry_points", lambda group: [])
        return recorder

    def test_lists_components(self, output, tmp_path, monkeypatch):
        (tmp_path / "bootcore.yaml").write_text(
            yaml.safe_dump(
                {
                    "apps": {"location": fixture_path("apps")},
                    "tasks": {"location": fixture_path("tasks")},
                    "modules": {"location": fixture_path("modules-load-error")},
                    "environments": {"location": fixture_path("environments")},
                    "config": {"location": fixture_path("config")},
                    "logger": {"terminal": {"enable": False}},
                }
            )
        )
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["components", "--env", "test"])

        assert result.exit_code == 0
        text = output.export_text()
        assert "Components (test)" in text
        assert "renamed" in text
        assert "ModuleNotFoundError" in text

    def test_invalid_core_config(self, output, tmp_path, monkeypatch):
        (tmp_path / "bootcore.yaml").write_text(yaml.safe_dump({"apps": {"location": str(tmp_path / "missing")}}))
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["components"])

        assert result.exit_code == 1
        assert "apps.location" in output.export_text()
