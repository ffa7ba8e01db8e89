"""Apply report command."""

import click

from agentic_orchestrator.cli.helpers import (
    echo_json,
    fail,
    format_state_table,
    get_registry,
    project_root_argument,
)
from ...core.dispatch_engine import DispatchEngine
from ...services.exceptions import OrchestratorError


@click.command('apply-report')
@project_root_argument
@click.option('--json', 'as_json', is_flag=True, help='Print the updated state as JSON')
def apply_report(project_root, as_json):
    """Merge .ai/HANDOFF.md into the state (no report = crashed run)"""
    engine = DispatchEngine(project_root, get_registry(project_root))
    try:
        state = engine.apply_report()
    except OrchestratorError as e:
        fail(str(e))

    if as_json:
        echo_json(state.model_dump(mode="json", by_alias=True))
    else:
        click.echo(format_state_table(state))
