"""Single natural-language entry point.

Classifies a message, routes it to exactly one engine or query call and
wraps whatever came back into an ``AutoResult`` envelope.
"""

import logging
from pathlib import Path
from typing import Optional

from ..models.intent import AutoAction, AutoResult, Intent, IntentType
from ..models.outcome import (
    AlreadyRunning,
    Blocked,
    Completed,
    Dispatched,
    NeedsHuman,
    Outcome,
    TimedOut,
)
from ..services.exceptions import OrchestratorError
from .constants import HANDOFF_FILE, MEMORY_FILE, QUERY_ATTACHMENT_CHARS
from .dispatch_engine import DispatchEngine
from .intent_classifier import classify
from .project_scanner import detect_adoption, list_projects, query_status
from .review_gate import ReviewGate
from .rules_table import RuleRegistry

logger = logging.getLogger(__name__)


def outcome_to_result(outcome: Outcome) -> AutoResult:
    """Wrap a dispatch outcome in the auto envelope."""
    if isinstance(outcome, Dispatched):
        return AutoResult(AutoAction.DISPATCHED, {
            "step": outcome.step.value,
            "attempt": outcome.attempt,
            "instruction": outcome.instruction,
            "adoption_level": outcome.adoption_level,
            "run_id": outcome.run_id,
        })
    if isinstance(outcome, Completed):
        return AutoResult(AutoAction.COMPLETED, {
            "unit_id": outcome.unit_id,
            "summary": outcome.summary,
        })
    if isinstance(outcome, NeedsHuman):
        return AutoResult(AutoAction.NEEDS_HUMAN, {
            "step": outcome.step.value,
            "message": outcome.message,
        })
    if isinstance(outcome, Blocked):
        return AutoResult(AutoAction.BLOCKED, {
            "step": outcome.step.value,
            "reason": outcome.reason,
        })
    if isinstance(outcome, AlreadyRunning):
        return AutoResult(AutoAction.ALREADY_RUNNING, {
            "step": outcome.step.value,
            "elapsed_minutes": outcome.elapsed_minutes,
            "timed_out": outcome.timed_out,
        })
    if isinstance(outcome, TimedOut):
        return AutoResult(AutoAction.TIMED_OUT, {
            "step": outcome.step.value,
            "elapsed_minutes": outcome.elapsed_minutes,
        })
    raise TypeError(f"Unknown outcome type: {type(outcome).__name__}")


def _read_excerpt(path: Path) -> Optional[str]:
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8", errors="replace")[:QUERY_ATTACHMENT_CHARS]


class AutoRouter:
    """Routes classified requests for one project."""

    def __init__(self, project_root: Path, registry: Optional[RuleRegistry] = None):
        self.project_root = Path(project_root)
        self.engine = DispatchEngine(self.project_root, registry)
        self.gate = ReviewGate(self.project_root, registry)

    def route(self, intent: Intent) -> AutoResult:
        """Execute one intent and wrap the result."""
        if intent.type == IntentType.QUERY:
            return AutoResult(AutoAction.QUERY, {
                "data": query_status(self.project_root),
                "memory": _read_excerpt(self.project_root / MEMORY_FILE),
                "handoff": _read_excerpt(self.project_root / HANDOFF_FILE),
            })
        if intent.type == IntentType.APPROVE:
            self.gate.approve(intent.note)
            return AutoResult(AutoAction.APPROVED, {"note": intent.note})
        if intent.type == IntentType.REJECT:
            self.gate.reject(intent.reason, intent.note)
            return AutoResult(AutoAction.REJECTED, {
                "reason": intent.reason.value,
                "note": intent.note,
            })
        if intent.type == IntentType.START_STORY:
            self.engine.start_story(intent.unit_id)
            return outcome_to_result(self.engine.decide())
        if intent.type == IntentType.CONTINUE:
            return outcome_to_result(self.engine.decide())
        if intent.type == IntentType.DETECT:
            return AutoResult(AutoAction.DETECTED, {
                "framework": detect_adoption(self.project_root).to_dict(),
            })
        if intent.type == IntentType.LIST:
            # The project root doubles as the workspace root here
            return AutoResult(AutoAction.LISTED, {
                "projects": [entry.to_dict() for entry in list_projects(self.project_root)],
            })
        if intent.type == IntentType.CUSTOM:
            self.engine.start_custom(intent.instruction)
            return outcome_to_result(self.engine.decide())
        raise TypeError(f"Unhandled intent type: {intent.type}")


def auto(project_root: Path, message: str, registry: Optional[RuleRegistry] = None) -> AutoResult:
    """Classify a message and route it.

    Orchestrator errors become an ``error`` envelope; anything else propagates.
    """
    intent = classify(message)
    logger.info(f"Classified message as {intent.type.value}")
    try:
        return AutoRouter(project_root, registry).route(intent)
    except OrchestratorError as e:
        logger.warning(f"Auto request failed: {e}")
        return AutoResult(AutoAction.ERROR, {"message": str(e), "intent": intent.type.value})
