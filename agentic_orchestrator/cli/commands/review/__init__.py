"""Review command group and sub-commands."""

import click

from .approve import approve
from .reject import reject
from .prompt import prompt

__all__ = [
    'review',
    'approve',
    'reject',
    'prompt',
]


@click.group()
def review():
    """Approve or reject at the review checkpoint"""
    pass


# Register all sub-commands
review.add_command(approve)
review.add_command(reject)
review.add_command(prompt)
