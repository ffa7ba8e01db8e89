"""Initialize command."""

import click
from rich.console import Console

from agentic_orchestrator.cli.helpers import fail, get_config, get_registry, project_root_argument
from ...core.executor_guide import write_executor_guide
from ...core.state_store import StateStore
from ...services.exceptions import OrchestratorError


@click.command()
@project_root_argument
@click.option('--no-guide', is_flag=True, help='Do not write the CLAUDE.md executor guide')
@click.option('--force-guide', is_flag=True, help='Overwrite an existing CLAUDE.md')
def init(project_root, no_guide, force_guide):
    """Create .ai/STATE.json at the bootstrap step"""
    console = Console()
    registry = get_registry(project_root)
    config = get_config(project_root)

    try:
        state, created = StateStore(project_root).init(registry)
    except OrchestratorError as e:
        fail(str(e))

    if created:
        console.print(f"[green]Initialized[/green] {project_root} at step {state.step.value}", highlight=False)
    else:
        console.print(
            f"[yellow]Already initialized[/yellow]: step {state.step.value}, status {state.status.value}",
            highlight=False,
        )

    if not no_guide and (config.write_executor_guide or force_guide):
        if write_executor_guide(project_root, registry, force=force_guide):
            console.print("Wrote CLAUDE.md executor guide")
