"""Start story and custom task commands."""

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


@click.command('start-story')
@project_root_argument
@click.argument('unit_id')
@click.option('--json', 'as_json', is_flag=True, help='Print the new state as JSON')
def start_story(project_root, unit_id, as_json):
    """Start a structured story (e.g. US-007) at the BDD step"""
    engine = DispatchEngine(project_root, get_registry(project_root))
    try:
        state = engine.start_story(unit_id)
    except OrchestratorError as e:
        fail(str(e))

    if as_json:
        echo_json(state.model_dump(mode="json", by_alias=True))
    else:
        click.echo(f"Started story {state.unit_id}")
        click.echo(format_state_table(state))


@click.command('start-custom')
@project_root_argument
@click.argument('instruction')
@click.option('--label', help='Unit id to use instead of CUSTOM-<timestamp>')
@click.option('--json', 'as_json', is_flag=True, help='Print the new state as JSON')
def start_custom(project_root, instruction, label, as_json):
    """Start a free-text task (custom -> update-memory -> done)"""
    engine = DispatchEngine(project_root, get_registry(project_root))
    try:
        state = engine.start_custom(instruction, label=label)
    except OrchestratorError as e:
        fail(str(e))

    if as_json:
        echo_json(state.model_dump(mode="json", by_alias=True))
    else:
        click.echo(f"Started custom task {state.unit_id}")
        click.echo(format_state_table(state))
