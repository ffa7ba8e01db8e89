"""Interactive review command."""

import click
import questionary
from rich.console import Console

from agentic_orchestrator.cli.helpers import fail, get_registry, project_root_argument
from ....core.dispatch_engine import format_review_request
from ....core.review_gate import ReviewGate
from ....core.state_store import StateStore
from ....models.state import Reason
from ....services.exceptions import OrchestratorError

APPROVE_CHOICE = "Approve"
REJECT_CHOICE = "Reject"


@click.command()
@project_root_argument
def prompt(project_root):
    """Review interactively"""
    console = Console()
    gate = ReviewGate(project_root, get_registry(project_root))

    try:
        state = StateStore(project_root).read()
    except OrchestratorError as e:
        fail(str(e))

    console.print(format_review_request(state), highlight=False, soft_wrap=True)

    decision = questionary.select(
        "Decision:",
        choices=[APPROVE_CHOICE, REJECT_CHOICE],
    ).ask()
    if decision is None:
        console.print("[yellow]Review cancelled[/yellow]")
        return

    try:
        if decision == APPROVE_CHOICE:
            note = questionary.text("Note for the next step (optional):").ask()
            gate.approve(note or None)
            console.print("[green]Approved[/green]")
        else:
            reason = questionary.select(
                "Reason:",
                choices=[reason.value for reason in Reason],
                default=Reason.NEEDS_CLARIFICATION.value,
            ).ask()
            if reason is None:
                console.print("[yellow]Review cancelled[/yellow]")
                return
            note = questionary.text("Feedback (optional):").ask()
            gate.reject(Reason(reason), note or None)
            console.print(f"[red]Rejected[/red]: {reason}", highlight=False)
    except OrchestratorError as e:
        fail(str(e))
