"""Complete command."""

import click
from rich.console import Console

from agentic_orchestrator.cli.helpers import fail, get_config, get_registry, project_root_argument
from ...core.completion_guard import CompletionGuard
from ...services.exceptions import CompletionInProgressError, OrchestratorError


@click.command()
@project_root_argument
@click.option('--skip-notify', is_flag=True, help='Do not run the configured notify command')
@click.option('--run-id', default=None, help='Run the signal is for, as printed by dispatch')
def complete(project_root, skip_notify, run_id):
    """Apply a finished run at most once (report, verification, notify)"""
    console = Console()
    guard = CompletionGuard(project_root, get_config(project_root), get_registry(project_root))
    try:
        result = guard.complete(notify=not skip_notify, run_id=run_id)
    except CompletionInProgressError as e:
        # A duplicate signal for a run that is being applied right now
        console.print(f"[yellow]Skipped[/yellow]: {e}", highlight=False, soft_wrap=True)
        return
    except OrchestratorError as e:
        fail(str(e))

    if not result.applied:
        console.print(f"[yellow]Skipped[/yellow] run {result.run_id} ({result.skipped_reason})", highlight=False, soft_wrap=True)
        return

    console.print(
        f"[green]Applied[/green] run {result.run_id}: status {result.state.status.value}",
        highlight=False,
        soft_wrap=True,
    )
    if result.verification is not None and result.verification.command is not None:
        outcome = "passed" if result.verification.passed else "failed"
        console.print(f"Verification {outcome}", highlight=False)
    if result.notified:
        console.print("Notified", highlight=False)
