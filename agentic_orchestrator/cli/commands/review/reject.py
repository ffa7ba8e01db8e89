"""Reject review command."""

import click

from agentic_orchestrator.cli.helpers import fail, get_registry, project_root_argument
from ....core.review_gate import ReviewGate
from ....models.state import Reason
from ....services.exceptions import OrchestratorError


@click.command()
@project_root_argument
@click.argument('reason', type=click.Choice([reason.value for reason in Reason]))
@click.argument('note', required=False)
def reject(project_root, reason, note):
    """Reject the review; the reason decides which step is redone"""
    try:
        state = ReviewGate(project_root, get_registry(project_root)).reject(Reason(reason), note)
    except OrchestratorError as e:
        fail(str(e))
    click.echo(f"Rejected review for {state.display_unit}: {state.reason.value}")
