"""Step transition rules table.

Pure data plus lookup helpers. The default table is immutable; per-project
changes are expressed as an overlay held by a ``RuleRegistry`` which is
consulted before the defaults.
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from ..models.rules import FailureRouting, StepRule
from ..models.state import Reason, Step
from ..services.exceptions import ConfigError, RuleLookupError
from .constants import UNIT_PLACEHOLDER

logger = logging.getLogger(__name__)


BOOTSTRAP_RULE = StepRule(
    label="Bootstrap",
    next_on_pass=Step.BDD,
    on_fail=FailureRouting(default=Step.BOOTSTRAP),
    max_attempts=1,
    timeout_minutes=10,
    writes=(
        "PROJECT_CONTEXT.md",
        "docs/sdd.md",
        "docs/constitution.md",
        "PROJECT_MEMORY.md",
    ),
    instruction=(
        "Set up the project using the Agentic Coding Framework. Produce: "
        "PROJECT_CONTEXT.md (Why/Who/What + tech stack + project structure), "
        "docs/sdd.md (module division + data model skeleton + inter-module interfaces), "
        "docs/constitution.md (3-5 inviolable architectural principles), "
        "PROJECT_MEMORY.md (initial state). "
        "Create directory structure: docs/bdd/, docs/deltas/, docs/api/, docs/ddd/ (if multi-domain)."
    ),
)

_STEP_RULES = {
    Step.BOOTSTRAP: BOOTSTRAP_RULE,
    Step.BDD: StepRule(
        label="BDD Scenario Writing",
        next_on_pass=Step.SDD_DELTA,
        on_fail=FailureRouting(default=Step.BDD),
        max_attempts=3,
        timeout_minutes=5,
        reads=("PROJECT_CONTEXT.md", "PROJECT_MEMORY.md", ".ai/HANDOFF.md"),
        writes=("docs/bdd/US-{story}.md",),
        instruction=(
            "Based on MEMORY's NOW/NEXT, write BDD scenarios for this Story. "
            "Use RFC 2119 language, tag test levels (@unit, @integration, @component, @e2e, @perf(ID)). "
            "Mark unclear items [NEEDS CLARIFICATION]. "
            "Include Non-Goals section."
        ),
    ),
    Step.SDD_DELTA: StepRule(
        label="SDD Delta Spec",
        next_on_pass=Step.CONTRACT,
        on_fail=FailureRouting(default=Step.SDD_DELTA),
        max_attempts=3,
        timeout_minutes=5,
        reads=(
            "PROJECT_CONTEXT.md",
            "PROJECT_MEMORY.md",
            "docs/bdd/US-{story}.md",
            "docs/sdd.md",
            ".ai/HANDOFF.md",
        ),
        writes=("docs/deltas/US-{story}.md",),
        instruction=(
            "Based on BDD scenarios, analyze affected modules, produce Delta Spec "
            "(ADDED / MODIFIED / REMOVED). Include Non-Goals / Out of Scope section. "
            "Never rewrite the entire SDD."
        ),
    ),
    Step.CONTRACT: StepRule(
        label="API Contract Update",
        next_on_pass=Step.REVIEW,
        on_fail=FailureRouting(default=Step.CONTRACT),
        max_attempts=2,
        timeout_minutes=5,
        reads=(
            "docs/sdd.md",
            "docs/deltas/US-{story}.md",
            "docs/api/openapi.yaml",
            ".ai/HANDOFF.md",
        ),
        writes=("docs/api/openapi.yaml",),
        instruction=(
            "Based on Delta Spec, update affected endpoints/events in OpenAPI/AsyncAPI contracts. "
            "Only add or modify affected parts; don't rewrite the entire contract."
        ),
    ),
    Step.REVIEW: StepRule(
        label="Review Checkpoint",
        next_on_pass=Step.SCAFFOLD,
        on_fail=FailureRouting(
            default=Step.BDD,
            routes={
                Reason.NEEDS_CLARIFICATION: Step.BDD,
                Reason.CONSTITUTION_VIOLATION: Step.SDD_DELTA,
                Reason.SCOPE_WARNING: Step.SDD_DELTA,
            },
        ),
        max_attempts=1,
        timeout_minutes=0,  # human-paced
        requires_human=True,
    ),
    Step.SCAFFOLD: StepRule(
        label="Test Scaffolding",
        next_on_pass=Step.IMPL,
        on_fail=FailureRouting(default=Step.SCAFFOLD),
        max_attempts=2,
        timeout_minutes=5,
        reads=(
            "docs/bdd/US-{story}.md",
            "docs/nfr.md",
            "docs/api/openapi.yaml",
            ".ai/HANDOFF.md",
        ),
        writes=("*_test.go", "*.spec.ts"),
        instruction=(
            "Based on BDD scenario tags and NFR table, produce corresponding test "
            "skeleton. All tests must fail (red). Use require for Given (preconditions), "
            "assert for Then (verification). Use Table-Driven tests for Scenario Outlines."
        ),
    ),
    Step.IMPL: StepRule(
        label="Implementation",
        next_on_pass=Step.VERIFY,
        on_fail=FailureRouting(
            default=Step.IMPL,
            routes={
                Reason.CONSTITUTION_VIOLATION: Step.SDD_DELTA,
                Reason.NEEDS_CLARIFICATION: Step.REVIEW,
                Reason.SCOPE_WARNING: Step.REVIEW,
            },
        ),
        max_attempts=5,
        timeout_minutes=10,
        reads=(
            "docs/bdd/US-{story}.md",
            "docs/sdd.md",
            "docs/api/openapi.yaml",
            ".ai/HANDOFF.md",
        ),
        writes=("*.go", "*.ts", "*.tsx"),
        instruction=(
            "Read failing tests, write minimal code to make tests pass, then refactor. "
            "Only modify affected files and functions (Diff-Only principle). "
            "Don't refactor unrelated code."
        ),
    ),
    Step.VERIFY: StepRule(
        label="Verify (Quality Gate)",
        next_on_pass=Step.UPDATE_MEMORY,
        on_fail=FailureRouting(default=Step.IMPL),
        max_attempts=2,
        timeout_minutes=5,
        reads=(
            "docs/bdd/US-{story}.md",
            "docs/deltas/US-{story}.md",
            "docs/sdd.md",
            "docs/api/openapi.yaml",
            "docs/constitution.md",
            ".ai/HANDOFF.md",
        ),
        instruction=(
            "Execute triple check: "
            "Completeness (all BDD scenarios have tests, all Delta items implemented), "
            "Correctness (tests pass, NFR thresholds met), "
            "Coherence (SDD merged Delta, contracts consistent, Constitution not violated). "
            "Merge Delta Spec into main SDD after all checks pass."
        ),
    ),
    Step.UPDATE_MEMORY: StepRule(
        label="Update Memory",
        next_on_pass=Step.DONE,
        on_fail=FailureRouting(default=Step.UPDATE_MEMORY),
        max_attempts=2,
        timeout_minutes=3,
        reads=("PROJECT_MEMORY.md", ".ai/HANDOFF.md"),
        writes=("PROJECT_MEMORY.md", ".ai/history.md"),
        instruction=(
            "Update MEMORY's NOW/NEXT based on completed work. "
            "Append DONE + LOG entry to .ai/history.md (session archive). "
            "Overwrite .ai/HANDOFF.md with latest session summary. "
            "Record current git commit hash."
        ),
    ),
    Step.CUSTOM: StepRule(
        label="Custom Task",
        next_on_pass=Step.UPDATE_MEMORY,
        on_fail=FailureRouting(default=Step.CUSTOM),
        max_attempts=3,
        timeout_minutes=15,
        reads=(
            "PROJECT_CONTEXT.md",
            "PROJECT_MEMORY.md",
            "docs/sdd.md",
            "docs/constitution.md",
            ".ai/HANDOFF.md",
        ),
        writes=("*",),
        instruction=(
            "Execute the custom task described in the Human Instruction section above. "
            "Follow the project's Constitution constraints. "
            "Only modify files relevant to the task, don't refactor unrelated code. "
            "If the task is unclear, fill reason with needs_clarification."
        ),
    ),
}

# Immutable default table
STEP_RULES: Mapping[Step, StepRule] = MappingProxyType(_STEP_RULES)

# The story pipeline, first step to last before done
STEP_SEQUENCE = (
    Step.BDD,
    Step.SDD_DELTA,
    Step.CONTRACT,
    Step.REVIEW,
    Step.SCAFFOLD,
    Step.IMPL,
    Step.VERIFY,
    Step.UPDATE_MEMORY,
)

# Fields a project overlay may change; the pipeline graph itself is fixed
OVERRIDABLE_FIELDS = {
    "label": str,
    "max_attempts": int,
    "timeout_minutes": int,
    "verification_command": str,
    "instruction": str,
    "reads": list,
    "writes": list,
}


def resolve_paths(paths, unit_id: str) -> List[str]:
    """Substitute the unit id into every placeholder of every path template.

    Templates without a placeholder are returned unchanged.
    """
    return [path.replace(UNIT_PLACEHOLDER, unit_id) for path in paths]


def _validate_field(step: Step, name: str, value: Any) -> Any:
    expected = OVERRIDABLE_FIELDS.get(name)
    if expected is None:
        raise ConfigError(
            f"Unknown rule field '{name}' for step '{step.value}'. "
            f"Allowed: {', '.join(sorted(OVERRIDABLE_FIELDS))}"
        )
    if name == "verification_command" and value is None:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, expected):
        raise ConfigError(
            f"Rule field '{name}' for step '{step.value}' must be {expected.__name__}"
        )
    if expected is list:
        if not all(isinstance(item, str) for item in value):
            raise ConfigError(f"Rule field '{name}' for step '{step.value}' must list strings")
    if name == "max_attempts" and value < 1:
        raise ConfigError(f"max_attempts for step '{step.value}' must be at least 1")
    if name == "timeout_minutes" and value < 1 and step != Step.REVIEW:
        raise ConfigError(f"timeout_minutes for step '{step.value}' must be positive")
    return value


class RuleRegistry:
    """Rule lookup with an optional per-project overlay.

    The overlay is consulted first; the shared default table is never
    modified. Overridden rules are built once and cached.
    """

    def __init__(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None):
        """Initialize the registry.

        Args:
            overrides: Mapping of step name to partial rule fields, usually
                loaded from ``.ai/step-rules.yaml``.

        Raises:
            ConfigError: If a step name, field name or value is invalid.
        """
        self._overlay: Dict[Step, StepRule] = {}
        for step_name, fields in (overrides or {}).items():
            try:
                step = Step(step_name)
            except ValueError:
                raise ConfigError(f"Unknown step '{step_name}' in rule overrides")
            if step == Step.DONE:
                raise ConfigError("The 'done' step has no rule to override")
            if not isinstance(fields, dict):
                raise ConfigError(f"Overrides for step '{step_name}' must be a mapping")
            changes = {name: _validate_field(step, name, value) for name, value in fields.items()}
            self._overlay[step] = STEP_RULES[step].with_overrides(**changes)
            logger.debug(f"Overriding rule for {step.value}: {sorted(changes)}")

    @property
    def overridden_steps(self) -> List[Step]:
        return list(self._overlay)

    def rule_for(self, step: Step) -> StepRule:
        """Return the effective rule for a step.

        Raises:
            RuleLookupError: For the terminal step.
        """
        if step == Step.DONE:
            raise RuleLookupError('No rule for "done": the unit is complete')
        if step in self._overlay:
            return self._overlay[step]
        return STEP_RULES[step]

    def failure_target(self, step: Step, reason: Optional[Reason]) -> Step:
        """Where a failure at ``step`` with ``reason`` routes to."""
        return self.rule_for(step).on_fail.target_for(reason)

    def effective_rules(self) -> Dict[Step, StepRule]:
        """All effective rules in table order."""
        return {step: self.rule_for(step) for step in STEP_RULES}


DEFAULT_REGISTRY = RuleRegistry()


def rule_for(step: Step) -> StepRule:
    """Look up the default rule for a step."""
    return DEFAULT_REGISTRY.rule_for(step)
