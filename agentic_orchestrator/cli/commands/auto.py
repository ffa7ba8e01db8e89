"""Auto command."""

import click

from agentic_orchestrator.cli.helpers import echo_json, get_registry, project_root_argument
from ...core.auto_router import auto as route_message


@click.command()
@project_root_argument
@click.argument('message')
def auto(project_root, message):
    """Classify a natural-language MESSAGE and act on it (JSON output)"""
    result = route_message(project_root, message, get_registry(project_root))
    echo_json(result.to_dict())
