"""Build the executor instruction for a dispatch.

Pure template fill over already-validated state fields.
"""

from typing import List

from ..models.rules import StepRule
from ..models.state import Reason, Step, TaskState
from .constants import BOOTSTRAP_UNIT_ID, HANDOFF_FILE
from .rules_table import resolve_paths

# Guidance appended to every instruction, one line per reason an executor may report
REASON_GUIDANCE = [
    ("requirements unclear", Reason.NEEDS_CLARIFICATION),
    ("Constitution violation found", Reason.CONSTITUTION_VIOLATION),
    ("touching Non-Goals scope", Reason.SCOPE_WARNING),
    ("NFR thresholds are undefined", Reason.NFR_MISSING),
    ("tests hang or exceed their time limit", Reason.TEST_TIMEOUT),
]


def _section(lines: List[str], title: str, body: List[str], closing: str) -> None:
    lines.append(title)
    lines.extend(body)
    lines.append(closing)
    lines.append("")


def build_instruction(state: TaskState, rule: StepRule) -> str:
    """Render the instruction text for the state's current step.

    Args:
        state: Task state positioned at the step being dispatched
        rule: Effective rule for that step

    Returns:
        Instruction text for the external executor
    """
    unit_id = state.unit_id or BOOTSTRAP_UNIT_ID
    reads = resolve_paths(rule.reads, unit_id)

    lines = [f'You are executing step "{rule.label}" for {unit_id}.']
    if state.attempt > 1:
        lines.append(f"(Attempt {state.attempt} of {state.max_attempts})")
    lines.append("")

    if reads:
        lines.append("Please read the following files in order:")
        lines.extend(f"- {path}" for path in reads)
        lines.append("")

    if state.human_note:
        _section(lines, "=== Human Instruction ===", [state.human_note], "=" * 26)

    if state.attempt > 1 and state.failing_tests:
        lines.append("Previous attempt had these failing tests:")
        lines.extend(f"- {name}" for name in state.failing_tests)
        lines.append("")

    # The bookkeeping step gets results inline so it never reads STATE.json
    if state.step == Step.UPDATE_MEMORY and state.tests is not None:
        lines.append("Test results from this Story:")
        lines.append(
            f"- Pass: {state.tests.passed}, Fail: {state.tests.failed}, "
            f"Skip: {state.tests.skipped}"
        )
        if state.files_changed:
            lines.append(f"- Files changed: {', '.join(state.files_changed)}")
        lines.append("")

    _section(
        lines,
        "=== YOUR PRIMARY TASK ===",
        [
            rule.instruction,
            "",
            "Focus on completing the task above FIRST. Modify source files, create",
            "tests, update documents, whatever the task requires. Do NOT stop after",
            f"just updating {HANDOFF_FILE}, that is only the final bookkeeping step.",
        ],
        "=" * 25,
    )

    lines.extend(_report_contract())
    return "\n".join(lines)


def _report_contract() -> List[str]:
    lines = [
        "After you have completed ALL the work above, do this final bookkeeping:",
        "- Only modify affected files and paragraphs, don't rewrite unrelated content",
        f"- Update {HANDOFF_FILE} as a summary of what you did:",
        "  - YAML front matter: fill in story, step, attempt, status, reason, "
        "files_changed, tests_pass, tests_fail, tests_skip, failing_tests values",
        "  - Markdown body: record what was done, what's unresolved, what next session should note",
    ]
    for condition, reason in REASON_GUIDANCE:
        lines.append(f"- If {condition}, set status: failing and reason: {reason.value}")
    return lines
