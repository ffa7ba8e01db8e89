"""Verify command."""

import click
from rich.console import Console

from agentic_orchestrator.cli.helpers import fail, get_config, get_registry, project_root_argument
from ...core.verification import run_verification
from ...services.exceptions import OrchestratorError


@click.command()
@project_root_argument
@click.option('--show-output', is_flag=True, help='Print the command output')
def verify(project_root, show_output):
    """Run the current step's verification command and record lint_pass"""
    console = Console()
    registry = get_registry(project_root)
    config = get_config(project_root)
    try:
        result = run_verification(project_root, registry, timeout=config.verification_timeout_seconds)
    except OrchestratorError as e:
        fail(str(e))

    if result.command is None:
        console.print("No verification command declared for this step")
        return

    if result.passed:
        console.print(f"[green]Verification passed[/green]: {result.command}", highlight=False, soft_wrap=True)
    else:
        console.print(f"[red]Verification failed[/red]: {result.command}", highlight=False, soft_wrap=True)
    if show_output and result.output:
        click.echo(result.output)
