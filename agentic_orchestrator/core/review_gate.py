"""Human decisions at the review checkpoint."""

import logging
from pathlib import Path
from typing import Optional

from ..models.state import Reason, Step, TaskState, TaskStatus
from ..services.exceptions import ReviewGateError
from .rules_table import DEFAULT_REGISTRY, RuleRegistry
from .state_store import StateStore

logger = logging.getLogger(__name__)


class ReviewGate:
    """Approve or reject while the pipeline is paused for review."""

    def __init__(self, project_root: Path, registry: Optional[RuleRegistry] = None):
        self.store = StateStore(Path(project_root))
        self.registry = registry or DEFAULT_REGISTRY

    def _checkpoint_state(self, action: str) -> TaskState:
        state = self.store.read()
        if state.step == Step.DONE or not self.registry.rule_for(state.step).requires_human:
            raise ReviewGateError(
                f'Cannot {action} review: current step is "{state.step.value}", not a review checkpoint'
            )
        return state

    def approve(self, note: Optional[str] = None) -> TaskState:
        """Mark the review as passed, keeping an optional reviewer note."""
        state = self._checkpoint_state("approve")
        state.status = TaskStatus.PASS
        state.reason = None
        state.human_note = note
        logger.info(f"Review approved for {state.display_unit}")
        return self.store.write(state)

    def reject(self, reason: Reason, note: Optional[str] = None) -> TaskState:
        """Send the unit back through failure routing with the given reason."""
        state = self._checkpoint_state("reject")
        state.status = TaskStatus.FAILING
        state.reason = Reason(reason)
        state.human_note = note
        logger.info(f"Review rejected for {state.display_unit}: {state.reason.value}")
        return self.store.write(state)
