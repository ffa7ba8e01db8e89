"""Status and query commands."""

import click

from agentic_orchestrator.cli.helpers import echo_json, fail, format_state_table, project_root_argument
from ...core.project_scanner import query_status
from ...core.state_store import StateStore
from ...services.exceptions import OrchestratorError


@click.command()
@project_root_argument
@click.option('--json', 'as_json', is_flag=True, help='Print the raw state as JSON')
def status(project_root, as_json):
    """Show the persisted state"""
    try:
        state = StateStore(project_root).read()
    except OrchestratorError as e:
        fail(str(e))

    if as_json:
        echo_json(state.model_dump(mode="json", by_alias=True))
    else:
        click.echo(format_state_table(state))


@click.command()
@project_root_argument
def query(project_root):
    """Print a JSON status summary (works on uninitialized projects)"""
    try:
        echo_json(query_status(project_root))
    except OrchestratorError as e:
        fail(str(e))
