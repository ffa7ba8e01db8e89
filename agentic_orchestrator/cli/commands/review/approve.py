"""Approve review command."""

import click

from agentic_orchestrator.cli.helpers import fail, get_registry, project_root_argument
from ....core.review_gate import ReviewGate
from ....services.exceptions import OrchestratorError


@click.command()
@project_root_argument
@click.argument('note', required=False)
def approve(project_root, note):
    """Approve the review, optionally with a note for the next step"""
    try:
        state = ReviewGate(project_root, get_registry(project_root)).approve(note)
    except OrchestratorError as e:
        fail(str(e))
    click.echo(f"Approved review for {state.display_unit}")
