"""Dispatch command."""

import sys

import click
from rich.console import Console

from agentic_orchestrator.cli.helpers import (
    echo_json,
    fail,
    get_registry,
    project_root_argument,
    render_outcome,
)
from ...core.dispatch_engine import DispatchEngine
from ...models.outcome import Blocked, TimedOut, outcome_to_dict
from ...services.exceptions import OrchestratorError

# Exit code for --strict when the pipeline cannot proceed on its own
STRICT_EXIT_CODE = 2


@click.command()
@project_root_argument
@click.option('--peek', is_flag=True, help='Preview the decision without writing state')
@click.option('--json', 'as_json', is_flag=True, help='Print the outcome as JSON')
@click.option('--strict', is_flag=True, help='Exit 2 when blocked or timed out')
def dispatch(project_root, peek, as_json, strict):
    """Decide the next step and print the executor instruction"""
    engine = DispatchEngine(project_root, get_registry(project_root))
    try:
        outcome = engine.preview() if peek else engine.decide()
    except OrchestratorError as e:
        fail(str(e))

    if as_json:
        echo_json(outcome_to_dict(outcome))
    else:
        render_outcome(outcome, Console())

    if strict and isinstance(outcome, (Blocked, TimedOut)):
        sys.exit(STRICT_EXIT_CODE)
