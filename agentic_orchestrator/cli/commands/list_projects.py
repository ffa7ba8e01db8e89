"""List projects command."""

from pathlib import Path

import click

from agentic_orchestrator.cli.helpers import echo_json, format_project_table
from ...core.project_scanner import list_projects as scan_projects


@click.command('list-projects')
@click.argument('workspace', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('--json', 'as_json', is_flag=True, help='Print as JSON')
def list_projects(workspace, as_json):
    """List projects under a workspace directory"""
    projects = scan_projects(workspace)
    if as_json:
        echo_json([entry.to_dict() for entry in projects])
        return
    if not projects:
        click.echo(f"No projects found in {workspace}")
        return
    click.echo(format_project_table(projects))
