"""Executor guide written to a project's CLAUDE.md."""

import logging
from pathlib import Path
from typing import Optional

from ..models.state import Reason
from .constants import EXECUTOR_GUIDE_FILE, HANDOFF_FILE, STATE_FILE
from .project_scanner import infer_project_name
from .rules_table import DEFAULT_REGISTRY, STEP_SEQUENCE, RuleRegistry

logger = logging.getLogger(__name__)

GUIDE_TEMPLATE = """# {project}: executor guide

This project is driven by an orchestrator. Each session you receive one
instruction for one pipeline step. Do that step's work, then write the
completion report.

## Pipeline

{pipeline}

Custom tasks run `custom -> update-memory -> done`.

## Rules

- Do not edit `{state_file}`. The orchestrator owns it.
- Read the files listed at the top of your instruction, in order.
- Only modify files relevant to the step.

## Completion report

Overwrite `{handoff_file}` when you finish:

```markdown
---
story: US-001
step: impl
attempt: 1
status: pass
reason: null
files_changed:
  - src/example.ts
tests_pass: 12
tests_fail: 0
tests_skip: 0
failing_tests: []
---
What was done, what is unresolved, what the next session should know.
```

`status` is `pass` or `failing`. When failing, `reason` is one of:

{reasons}
"""


def render_executor_guide(project_name: str, registry: Optional[RuleRegistry] = None) -> str:
    """Render the guide text for a project, labelling steps from its rules."""
    registry = registry or DEFAULT_REGISTRY
    pipeline = "\n".join(
        f"{index}. `{step.value}`: {registry.rule_for(step).label}"
        for index, step in enumerate(STEP_SEQUENCE, start=1)
    )
    reasons = "\n".join(f"- `{reason.value}`" for reason in Reason)
    return GUIDE_TEMPLATE.format(
        project=project_name,
        pipeline=pipeline,
        state_file=STATE_FILE,
        handoff_file=HANDOFF_FILE,
        reasons=reasons,
    )


def write_executor_guide(
    project_root: Path, registry: Optional[RuleRegistry] = None, force: bool = False
) -> bool:
    """Write CLAUDE.md unless it already exists.

    Returns:
        True if the file was written
    """
    guide_path = Path(project_root) / EXECUTOR_GUIDE_FILE
    if guide_path.exists() and not force:
        logger.info(f"{guide_path} already exists, leaving it untouched")
        return False
    text = render_executor_guide(infer_project_name(project_root), registry)
    guide_path.write_text(text, encoding="utf-8")
    logger.info(f"Wrote executor guide to {guide_path}")
    return True
