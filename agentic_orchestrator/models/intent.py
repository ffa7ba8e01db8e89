"""Intent and auto-routing result models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .state import Reason


class IntentType(Enum):
    """What a free-text request is asking for."""
    APPROVE = "approve"
    REJECT = "reject"
    START_STORY = "start_story"
    LIST = "list"
    DETECT = "detect"
    QUERY = "query"
    CONTINUE = "continue"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Intent:
    """A classified request."""
    type: IntentType
    note: Optional[str] = None  # approve/reject
    reason: Optional[Reason] = None  # reject
    unit_id: Optional[str] = None  # start_story
    instruction: Optional[str] = None  # custom


class AutoAction(Enum):
    """Discriminant of the auto-routing envelope."""
    QUERY = "query"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    NEEDS_HUMAN = "needs_human"
    BLOCKED = "blocked"
    ALREADY_RUNNING = "already_running"
    TIMED_OUT = "timed_out"
    APPROVED = "approved"
    REJECTED = "rejected"
    DETECTED = "detected"
    LISTED = "listed"
    ERROR = "error"


@dataclass
class AutoResult:
    """Tagged envelope returned by the auto entry point."""
    action: AutoAction
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"action": self.action.value, **self.payload}
