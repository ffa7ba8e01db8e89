"""Detect adoption command."""

import click

from agentic_orchestrator.cli.helpers import echo_json, format_adoption_table, project_root_argument
from ...core.project_scanner import detect_adoption


@click.command()
@project_root_argument
@click.option('--json', 'as_json', is_flag=True, help='Print as JSON')
def detect(project_root, as_json):
    """Report which framework files exist and the adoption level (0-2)"""
    adoption = detect_adoption(project_root).to_dict()
    if as_json:
        echo_json(adoption)
        return
    click.echo(format_adoption_table(adoption))
    click.echo(f"\nAdoption level: {adoption['level']}")
