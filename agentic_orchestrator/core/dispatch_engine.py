"""Dispatch state machine.

``plan_decision`` is the pure decision function: given a state it returns
the outcome together with the state that should be persisted. The
``DispatchEngine`` wraps it with reads and writes against a project's
state store; ``preview`` runs the same decision without committing it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..models.outcome import (
    AlreadyRunning,
    Blocked,
    Completed,
    Dispatched,
    NeedsHuman,
    Outcome,
    TimedOut,
)
from ..models.report import CompletionReport
from ..models.state import ResultTally, Step, TaskKind, TaskState, TaskStatus, utc_now
from ..services.exceptions import OrchestratorError
from .constants import CUSTOM_UNIT_PREFIX, OPENAPI_FILE
from .instruction_builder import build_instruction
from .project_scanner import detect_adoption
from .report_parser import read_report
from .rules_table import DEFAULT_REGISTRY, RuleRegistry, resolve_paths
from .state_store import StateStore

logger = logging.getLogger(__name__)

# Report statuses that describe a finished run
REPORTABLE_STATUSES = (TaskStatus.PASS, TaskStatus.FAILING, TaskStatus.NEEDS_HUMAN)


@dataclass
class Decision:
    """Result of planning one dispatch decision."""
    outcome: Outcome
    state: TaskState  # state after the decision
    changed: bool  # whether ``state`` must be persisted


def _unit_noun(state: TaskState) -> str:
    return "Task" if state.kind == TaskKind.CUSTOM else "Story"


def format_review_request(state: TaskState) -> str:
    """Message asking a human to review the artifacts of the current unit."""
    unit_id = state.display_unit
    bdd_path, delta_path = resolve_paths(
        ["docs/bdd/US-{story}.md", "docs/deltas/US-{story}.md"], unit_id
    )
    return (
        f"{_unit_noun(state)} {unit_id} is ready for review.\n"
        f"Please check:\n"
        f"- {bdd_path} (BDD scenarios)\n"
        f"- {delta_path} (Delta Spec)\n"
        f"- {OPENAPI_FILE} (contract changes)\n\n"
        f'Reply "approved" to continue, or provide feedback.'
    )


def _adopt_limits(state: TaskState, registry: RuleRegistry) -> None:
    rule = registry.rule_for(state.step)
    state.max_attempts = rule.max_attempts
    state.timeout_minutes = rule.timeout_minutes


def _completed(state: TaskState, summary: str) -> Completed:
    return Completed(unit_id=state.display_unit, summary=summary)


def plan_decision(
    state: TaskState,
    registry: RuleRegistry = DEFAULT_REGISTRY,
    now: Optional[datetime] = None,
    adoption_level: int = 0,
) -> Decision:
    """Decide the next action for a state.

    The input state is never modified; mutations are applied to a copy
    returned in the Decision.

    Args:
        state: Current persisted state
        registry: Rule lookup to use
        now: Current time, defaults to the wall clock
        adoption_level: Framework adoption tier reported with a dispatch

    Returns:
        Decision holding the outcome and the resulting state
    """
    now = now or utc_now()
    working = state.model_copy(deep=True)

    if working.step == Step.DONE:
        return Decision(
            _completed(working, f"{_unit_noun(working)} {working.display_unit} completed."),
            working,
            False,
        )

    if working.status == TaskStatus.RUNNING:
        elapsed = working.elapsed_minutes(now)
        if working.is_timed_out(now):
            working.status = TaskStatus.TIMEOUT
            working.completed_at = now
            logger.warning(
                f"Step {working.step.value} timed out after {elapsed} min "
                f"(budget {working.timeout_minutes} min)"
            )
            return Decision(TimedOut(step=working.step, elapsed_minutes=elapsed), working, True)
        return Decision(AlreadyRunning(step=working.step, elapsed_minutes=elapsed), working, False)

    if working.status == TaskStatus.TIMEOUT:
        # Resting until a report is applied
        return Decision(
            AlreadyRunning(
                step=working.step,
                elapsed_minutes=working.elapsed_minutes(now),
                timed_out=True,
            ),
            working,
            False,
        )

    rule = registry.rule_for(working.step)

    if rule.requires_human:
        if working.status == TaskStatus.FAILING:
            # Rejected at the checkpoint: route without consuming attempts
            return _reroute(working, registry, now, adoption_level)
        if working.status != TaskStatus.PASS:
            changed = working.status != TaskStatus.NEEDS_HUMAN
            working.status = TaskStatus.NEEDS_HUMAN
            return Decision(
                NeedsHuman(step=working.step, message=format_review_request(working)),
                working,
                changed,
            )

    if working.status == TaskStatus.NEEDS_HUMAN:
        # Blocked earlier at a dispatched step; only a human can release it
        return Decision(
            Blocked(
                step=working.step,
                reason=f'Step "{working.step.value}" is waiting for a human. '
                       f"Unblock it or start a new unit.",
            ),
            working,
            False,
        )

    if working.status == TaskStatus.PASS:
        previous = working.step
        working.step = rule.next_on_pass
        working.attempt = 1
        working.status = TaskStatus.PENDING
        tests, files_changed = working.tests, list(working.files_changed)
        working.reset_run_fields()
        if working.step == Step.UPDATE_MEMORY:
            # The bookkeeping step is told the results of the step before it
            working.tests, working.files_changed = tests, files_changed
        logger.info(f"Advancing {working.display_unit}: {previous.value} -> {working.step.value}")

        if working.step == Step.DONE:
            return Decision(
                _completed(
                    working,
                    f"{_unit_noun(working)} {working.display_unit} completed. All steps passed.",
                ),
                working,
                True,
            )

        next_rule = registry.rule_for(working.step)
        if next_rule.requires_human:
            working.status = TaskStatus.NEEDS_HUMAN
            return Decision(
                NeedsHuman(step=working.step, message=format_review_request(working)),
                working,
                True,
            )
        _adopt_limits(working, registry)

    elif working.status == TaskStatus.FAILING:
        if working.is_maxed_out():
            working.status = TaskStatus.NEEDS_HUMAN
            last_reason = (
                f"Last reason: {working.reason.value}"
                if working.reason else "No specific reason."
            )
            message = (
                f'Max attempts ({working.max_attempts}) exhausted at step '
                f'"{working.step.value}". {last_reason}'
            )
            logger.warning(message)
            return Decision(Blocked(step=working.step, reason=message), working, True)

        target = registry.failure_target(working.step, working.reason)
        if target != working.step:
            return _reroute(working, registry, now, adoption_level)
        working.attempt += 1
        working.status = TaskStatus.PENDING
        logger.info(
            f"Retrying {working.step.value} "
            f"(attempt {working.attempt} of {working.max_attempts})"
        )

    return _dispatch(working, registry, now, adoption_level)


def _reroute(
    working: TaskState, registry: RuleRegistry, now: datetime, adoption_level: int
) -> Decision:
    target = registry.failure_target(working.step, working.reason)
    logger.info(
        f"Rerouting {working.display_unit}: {working.step.value} -> {target.value} "
        f"(reason: {working.reason.value if working.reason else 'none'})"
    )
    working.step = target
    working.attempt = 1
    _adopt_limits(working, registry)

    if registry.rule_for(target).requires_human:
        working.status = TaskStatus.NEEDS_HUMAN
        return Decision(
            NeedsHuman(step=working.step, message=format_review_request(working)),
            working,
            True,
        )

    working.status = TaskStatus.PENDING
    return _dispatch(working, registry, now, adoption_level)


def _dispatch(
    working: TaskState, registry: RuleRegistry, now: datetime, adoption_level: int
) -> Decision:
    rule = registry.rule_for(working.step)
    instruction = build_instruction(working, rule)
    working.mark_running(now)
    outcome = Dispatched(
        step=working.step,
        attempt=working.attempt,
        instruction=instruction,
        adoption_level=adoption_level,
        run_id=working.run_id,
    )
    return Decision(outcome, working, True)


def merge_report(
    state: TaskState, report: Optional[CompletionReport], now: Optional[datetime] = None
) -> TaskState:
    """Fold a completion report into a copy of the state.

    A missing report means the executor crashed: the unit is marked
    failing with no reason so it stays eligible for a retry.
    """
    now = now or utc_now()
    merged = state.model_copy(deep=True)
    merged.completed_at = now

    if report is None:
        logger.warning("No completion report found; treating the run as crashed")
        merged.status = TaskStatus.FAILING
        merged.reason = None
        return merged

    if not report.structured:
        logger.warning("Report has no front matter; status taken from marker phrases")

    status = report.effective_status()
    if status not in REPORTABLE_STATUSES:
        logger.warning(f"Ignoring report status {status.value!r}; inferring from tests")
        status = TaskStatus.FAILING if report.tests_fail else TaskStatus.PASS
    merged.status = status
    merged.reason = report.reason

    if report.files_changed:
        merged.files_changed = list(report.files_changed)

    if report.has_test_counts:
        merged.tests = ResultTally(
            passed=report.tests_pass or 0,
            failed=report.tests_fail or 0,
            skipped=report.tests_skip or 0,
        )
        merged.failing_tests = list(report.failing_tests)
    elif report.failing_tests:
        merged.failing_tests = list(report.failing_tests)

    if report.unit_id and state.unit_id and report.unit_id != state.unit_id:
        logger.warning(
            f"Report is for {report.unit_id} but the current unit is {state.unit_id}"
        )
    return merged


class DispatchEngine:
    """Drives one project's state through the pipeline."""

    def __init__(
        self,
        project_root: Path,
        registry: Optional[RuleRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the engine.

        Args:
            project_root: Root directory of the project
            registry: Rule lookup, defaults to the built-in table
            clock: Returns the current time; injectable for tests
        """
        self.project_root = Path(project_root)
        self.store = StateStore(self.project_root)
        self.registry = registry or DEFAULT_REGISTRY
        self.clock = clock

    def _plan(self) -> Decision:
        state = self.store.read()
        level = detect_adoption(self.project_root).level
        return plan_decision(state, self.registry, self.clock(), level)

    def decide(self) -> Outcome:
        """Decide the next action and commit the resulting state."""
        decision = self._plan()
        if decision.changed:
            self.store.write(decision.state)
        logger.info(f"Decision for {self.project_root.name}: {decision.outcome.kind}")
        return decision.outcome

    def preview(self) -> Outcome:
        """Compute the next action without writing anything."""
        return self._plan().outcome

    def apply_report(self) -> TaskState:
        """Merge the executor's completion report into the persisted state."""
        state = self.store.read()
        if state.status != TaskStatus.RUNNING:
            logger.debug(f"Applying report while status is {state.status.value}")
        merged = merge_report(state, read_report(self.project_root), self.clock())
        return self.store.write(merged)

    def start_story(self, unit_id: str) -> TaskState:
        """Begin a structured story at the first pipeline step."""
        if not unit_id.strip():
            raise OrchestratorError("Story id must not be empty")
        state = self._fresh_unit(unit_id.strip(), TaskKind.STORY, Step.BDD)
        logger.info(f"Starting story {state.unit_id}")
        return self.store.write(state)

    def start_custom(self, instruction: str, label: Optional[str] = None) -> TaskState:
        """Begin a free-text task: custom -> update-memory -> done."""
        if not instruction.strip():
            raise OrchestratorError("Custom task instruction must not be empty")
        unit_id = label or f"{CUSTOM_UNIT_PREFIX}-{int(self.clock().timestamp() * 1000)}"
        state = self._fresh_unit(unit_id, TaskKind.CUSTOM, Step.CUSTOM)
        state.human_note = instruction
        logger.info(f"Starting custom task {unit_id}")
        return self.store.write(state)

    def unblock(self, note: Optional[str] = None) -> TaskState:
        """Release a unit blocked at a dispatched step for a fresh set of attempts."""
        state = self.store.read()
        if state.step == Step.DONE or state.status != TaskStatus.NEEDS_HUMAN:
            raise OrchestratorError(
                f"Nothing to unblock: step is {state.step.value}, status is {state.status.value}"
            )
        if self.registry.rule_for(state.step).requires_human:
            raise OrchestratorError(
                f'Step "{state.step.value}" is a review checkpoint; approve or reject it instead'
            )
        state.attempt = 1
        state.status = TaskStatus.PENDING
        state.reason = None
        state.human_note = note
        _adopt_limits(state, self.registry)
        logger.info(f"Unblocked {state.display_unit} at {state.step.value}")
        return self.store.write(state)

    def _fresh_unit(self, unit_id: str, kind: TaskKind, step: Step) -> TaskState:
        state = self.store.ensure(self.registry)
        state.unit_id = unit_id
        state.kind = kind
        state.step = step
        state.attempt = 1
        state.status = TaskStatus.PENDING
        state.dispatched_at = None
        state.completed_at = None
        state.blocked_by = []
        state.reset_run_fields()
        _adopt_limits(state, self.registry)
        return state
