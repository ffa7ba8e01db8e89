"""Unblock command."""

import click

from agentic_orchestrator.cli.helpers import fail, get_registry, project_root_argument
from ...core.dispatch_engine import DispatchEngine
from ...services.exceptions import OrchestratorError


@click.command()
@project_root_argument
@click.argument('note', required=False)
def unblock(project_root, note):
    """Give a blocked step a fresh set of attempts"""
    engine = DispatchEngine(project_root, get_registry(project_root))
    try:
        state = engine.unblock(note)
    except OrchestratorError as e:
        fail(str(e))
    click.echo(f"Unblocked {state.display_unit} at step {state.step.value}")
