"""
bootcore - Main CLI Application

Command-line interface for running apps, executing tasks and opening the
console.
"""
import asyncio
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bootcore.config import load_core_config
from bootcore.discovery import component_roots, discover, metadata_name
from bootcore.errors import ConfigValidationError
from bootcore.runners import exec_task, run_app, run_console

app = typer.Typer(
    name="bootcore",
    help="bootcore - component discovery and lifecycle runner",
    add_completion=False,
)

console = Console()

KINDS = ("app", "task", "module", "environment")


def parse_args(values: List[str]) -> Dict[str, Any]:
    """``["port=8080", "debug"]`` → ``{"port": "8080", "debug": True}``."""
    args: Dict[str, Any] = {}
    for value in values:
        key, separator, raw = value.partition("=")
        if not key:
            raise typer.BadParameter(f"Invalid argument: {value!r}", param_hint="--arg")
        args[key] = raw if separator else True
    return args


def _override(env: Optional[str]) -> Optional[Dict[str, Any]]:
    return {"environment": env} if env else None


@app.command()
def run(
    name: str = typer.Argument(..., help="App to run"),
    arg: List[str] = typer.Option([], "--arg", "-a", help="App argument as key=value (repeatable)"),
    env: Optional[str] = typer.Option(None, "--env", "-e", help="Runtime environment"),
):
    """Run an app until it finishes or is stopped."""
    code = asyncio.run(run_app(name, parse_args(arg), _override(env)))
    raise typer.Exit(code)


@app.command(
    "exec",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def exec_(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Task to execute"),
    directive: Optional[str] = typer.Argument(None, help="Directive handed to the task"),
    arg: List[str] = typer.Option([], "--arg", "-a", help="Task argument as key=value (repeatable)"),
    env: Optional[str] = typer.Option(None, "--env", "-e", help="Runtime environment"),
):
    """Execute a task once; extra arguments become directive options."""
    code = asyncio.run(exec_task(name, directive, list(ctx.args), parse_args(arg), _override(env)))
    raise typer.Exit(code)


@app.command("console")
def console_(
    env: Optional[str] = typer.Option(None, "--env", "-e", help="Runtime environment"),
):
    """Open an interactive console over the loaded modules."""
    code = asyncio.run(run_console(_override(env)))
    raise typer.Exit(code)


@app.command()
def components(
    env: Optional[str] = typer.Option(None, "--env", "-e", help="Runtime environment"),
):
    """List every discoverable component."""
    try:
        config = load_core_config(_override(env))
    except ConfigValidationError as e:
        console.print(f"[red]{e.message}[/red]")
        for error in e.errors:
            console.print(f"  [red]•[/red] {escape(error)}")
        raise typer.Exit(1)

    locations = {
        "app": config.apps.location,
        "task": config.tasks.location,
        "module": config.modules.location,
        "environment": config.environments.location,
    }

    table = Table(title=f"Components ({config.environment})")
    table.add_column("Kind", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Source")
    table.add_column("Location")
    table.add_column("Status")

    for kind in KINDS:
        for entry in discover(component_roots(locations[kind], kind), kind):
            if entry.error is not None:
                name, status = entry.name, f"[red]✗ {type(entry.error).__name__}: {escape(str(entry.error))}[/red]"
            elif entry.exports is None:
                name, status = entry.name, "[yellow]○ No class exported[/yellow]"
            else:
                name, status = metadata_name(entry.exports, f"{kind}_name"), "[green]✓ Loaded[/green]"
            table.add_row(kind, name, entry.source, entry.location, status)

    console.print(table)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
