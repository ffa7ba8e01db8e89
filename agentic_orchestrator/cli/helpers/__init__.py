"""CLI helper functions for the orchestrator.

Shared pieces used by the command modules:
- Loading a project's rule registry and config with consistent error exits
- Rendering dispatch outcomes for humans and as JSON
- Table formatting for state and project listings
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn

import click
from rich.console import Console
from tabulate import tabulate

from agentic_orchestrator.core.project_scanner import ProjectEntry
from agentic_orchestrator.core.rules_table import RuleRegistry
from agentic_orchestrator.models.config import OrchestratorConfig
from agentic_orchestrator.models.outcome import (
    AlreadyRunning,
    Blocked,
    Completed,
    Dispatched,
    NeedsHuman,
    Outcome,
    TimedOut,
)
from agentic_orchestrator.models.state import TaskState
from agentic_orchestrator.services.exceptions import OrchestratorError
from agentic_orchestrator.utils.config_manager import ConfigManager

STATUS_COLORS = {
    "pending": "white",
    "running": "cyan",
    "pass": "green",
    "failing": "red",
    "needs_human": "yellow",
    "timeout": "magenta",
    "not_initialized": "bright_black",
}


def project_root_argument(func):
    """Positional PROJECT_ROOT argument shared by most commands."""
    return click.argument(
        "project_root",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
    )(func)


def fail(message: str) -> NoReturn:
    """Print an error to stderr and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def get_registry(project_root: Path) -> RuleRegistry:
    """Rule registry with the project's overlay, exiting on invalid overrides."""
    try:
        return ConfigManager(project_root).build_registry()
    except OrchestratorError as e:
        fail(str(e))


def get_config(project_root: Path) -> OrchestratorConfig:
    """Orchestrator config for a project, exiting on invalid settings."""
    try:
        return ConfigManager(project_root).load_config()
    except OrchestratorError as e:
        fail(str(e))


def echo_json(data: Any) -> None:
    """Print data as indented JSON."""
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def render_outcome(outcome: Outcome, console: Console) -> None:
    """Print a dispatch outcome for a human reader.

    The instruction text of a dispatch is echoed verbatim so that shell
    hooks can capture it.
    """
    if isinstance(outcome, Dispatched):
        console.print(
            f"[green]Dispatched[/green] step [bold]{outcome.step.value}[/bold] "
            f"(attempt {outcome.attempt}, adoption level {outcome.adoption_level})",
            highlight=False,
        )
        if outcome.run_id:
            click.echo(f"Run: {outcome.run_id}")
        click.echo("")
        click.echo(outcome.instruction)
    elif isinstance(outcome, Completed):
        console.print(f"[green]Completed[/green] {outcome.unit_id}", highlight=False)
        click.echo(outcome.summary)
    elif isinstance(outcome, NeedsHuman):
        console.print(
            f"[yellow]Needs human[/yellow] at step [bold]{outcome.step.value}[/bold]",
            highlight=False,
        )
        click.echo(outcome.message)
    elif isinstance(outcome, Blocked):
        console.print(f"[red]Blocked[/red] at step [bold]{outcome.step.value}[/bold]", highlight=False)
        click.echo(outcome.reason)
    elif isinstance(outcome, AlreadyRunning):
        if outcome.timed_out:
            console.print(
                f"[magenta]Timed out[/magenta] step {outcome.step.value} is waiting for a report",
                highlight=False,
            )
        else:
            console.print(
                f"[cyan]Already running[/cyan] step {outcome.step.value} "
                f"for {outcome.elapsed_minutes} min",
                highlight=False,
            )
    elif isinstance(outcome, TimedOut):
        console.print(
            f"[magenta]Timed out[/magenta] step {outcome.step.value} "
            f"after {outcome.elapsed_minutes} min",
            highlight=False,
        )
    else:
        raise TypeError(f"Unknown outcome type: {type(outcome).__name__}")


def format_status(status: str) -> str:
    """Color a status value for table output."""
    return click.style(status, fg=STATUS_COLORS.get(status, "white"))


def format_state_table(state: TaskState) -> str:
    """Format the persisted state as a two-column table."""
    tests = state.tests
    rows = [
        ["Unit", state.display_unit],
        ["Kind", state.kind.value],
        ["Step", state.step.value],
        ["Status", format_status(state.status.value)],
        ["Attempt", f"{state.attempt}/{state.max_attempts}"],
        ["Reason", state.reason.value if state.reason else ""],
        ["Timeout", f"{state.timeout_minutes} min"],
        ["Dispatched", state.dispatched_at.isoformat() if state.dispatched_at else ""],
        ["Completed", state.completed_at.isoformat() if state.completed_at else ""],
        ["Tests", f"{tests.passed} pass / {tests.failed} fail / {tests.skipped} skip" if tests else ""],
        ["Lint", "" if state.lint_pass is None else ("pass" if state.lint_pass else "fail")],
        ["Files changed", ", ".join(state.files_changed)],
        ["Note", state.human_note or ""],
    ]
    return tabulate(rows, tablefmt="plain")


def format_project_table(projects: List[ProjectEntry]) -> str:
    """Format a workspace listing."""
    headers = ["NAME", "DIR", "STEP", "STATUS", "UNIT", "FRAMEWORK"]
    rows = [
        [
            entry.name,
            entry.dir,
            entry.step,
            format_status(entry.status),
            entry.unit_id or "",
            "yes" if entry.has_framework else "no",
        ]
        for entry in projects
    ]
    return tabulate(rows, headers=headers, tablefmt="simple")


def format_adoption_table(adoption: Dict[str, Any]) -> str:
    """Format adoption flags as a table."""
    rows = [[key.replace("has_", ""), "yes" if value else "no"]
            for key, value in adoption.items() if key.startswith("has_")]
    return tabulate(rows, headers=["FILE", "PRESENT"], tablefmt="simple")


__all__ = [
    'project_root_argument',
    'fail',
    'get_registry',
    'get_config',
    'echo_json',
    'render_outcome',
    'format_status',
    'format_state_table',
    'format_project_table',
    'format_adoption_table',
]
