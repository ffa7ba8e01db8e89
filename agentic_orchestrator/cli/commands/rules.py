"""Rules command."""

from pathlib import Path

import click
from tabulate import tabulate

from agentic_orchestrator.cli.helpers import echo_json, get_registry
from ...core.rules_table import DEFAULT_REGISTRY


@click.command()
@click.argument('project_root', required=False,
                type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('--json', 'as_json', is_flag=True, help='Print as JSON')
def rules(project_root, as_json):
    """Print the effective step rules (with PROJECT_ROOT's overrides)"""
    registry = get_registry(project_root) if project_root else DEFAULT_REGISTRY
    effective = registry.effective_rules()

    if as_json:
        echo_json({step.value: rule.to_dict() for step, rule in effective.items()})
        return

    overridden = set(registry.overridden_steps)
    rows = []
    for step, rule in effective.items():
        routes = ", ".join(f"{reason.value}->{target.value}" for reason, target in rule.on_fail.routes.items())
        rows.append([
            step.value + (" *" if step in overridden else ""),
            rule.label,
            rule.next_on_pass.value,
            rule.on_fail.default.value + (f" ({routes})" if routes else ""),
            rule.max_attempts,
            rule.timeout_minutes,
            "yes" if rule.requires_human else "",
            rule.verification_command or "",
        ])
    click.echo(tabulate(
        rows,
        headers=["STEP", "LABEL", "ON PASS", "ON FAIL", "MAX", "TIMEOUT", "HUMAN", "VERIFY"],
        tablefmt="simple",
    ))
    if overridden:
        click.echo("\n* overridden by .ai/step-rules.yaml")
