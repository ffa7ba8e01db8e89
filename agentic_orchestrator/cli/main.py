"""Main CLI entry point for the orchestrator."""

import logging

import click

from ..core.constants import LOG_FORMAT
from .commands.init import init
from .commands.start import start_story, start_custom
from .commands.dispatch import dispatch
from .commands.apply_report import apply_report
from .commands.verify import verify
from .commands.complete import complete
from .commands.unblock import unblock
from .commands.review import review
from .commands.status import status, query
from .commands.detect import detect
from .commands.list_projects import list_projects
from .commands.auto import auto
from .commands.rules import rules

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


@click.group()
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False),
              default='WARNING', show_default=True, help='Logging verbosity (stderr)')
def cli(log_level):
    """Agentic Orchestrator - drive coding tasks through a fixed step pipeline"""
    logging.basicConfig(level=getattr(logging, log_level.upper()), format=LOG_FORMAT)


# Register commands
cli.add_command(init)
cli.add_command(start_story)
cli.add_command(start_custom)
cli.add_command(dispatch)
cli.add_command(apply_report)
cli.add_command(verify)
cli.add_command(complete)
cli.add_command(unblock)
cli.add_command(review)
cli.add_command(status)
cli.add_command(query)
cli.add_command(detect)
cli.add_command(list_projects)
cli.add_command(auto)
cli.add_command(rules)


if __name__ == '__main__':
    cli()
