"""Dispatch outcomes.

Each decision returns exactly one of the frozen dataclasses below. Callers
branch with ``isinstance``; ``Outcome`` is the closed union of all of them.
"""

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Dict, Union

from .state import Step


@dataclass(frozen=True)
class Dispatched:
    """An instruction was produced and the unit marked running."""
    step: Step
    attempt: int
    instruction: str
    adoption_level: int = 0
    run_id: str = ""

    kind: ClassVar[str] = "dispatched"


@dataclass(frozen=True)
class Completed:
    """The unit has reached the terminal step."""
    unit_id: str
    summary: str

    kind: ClassVar[str] = "completed"


@dataclass(frozen=True)
class NeedsHuman:
    """The pipeline is paused at the review checkpoint."""
    step: Step
    message: str

    kind: ClassVar[str] = "needs_human"


@dataclass(frozen=True)
class Blocked:
    """The attempt ceiling was exhausted."""
    step: Step
    reason: str

    kind: ClassVar[str] = "blocked"


@dataclass(frozen=True)
class AlreadyRunning:
    """A dispatch is still in flight, or its timeout was already recorded."""
    step: Step
    elapsed_minutes: int
    timed_out: bool = False

    kind: ClassVar[str] = "already_running"


@dataclass(frozen=True)
class TimedOut:
    """A running dispatch outlived its budget and was marked timeout."""
    step: Step
    elapsed_minutes: int

    kind: ClassVar[str] = "timed_out"


Outcome = Union[Dispatched, Completed, NeedsHuman, Blocked, AlreadyRunning, TimedOut]

OUTCOME_TYPES = (Dispatched, Completed, NeedsHuman, Blocked, AlreadyRunning, TimedOut)


def outcome_to_dict(outcome: Outcome) -> Dict[str, Any]:
    """Serialize an outcome to a JSON-friendly dict tagged with its kind."""
    if not isinstance(outcome, OUTCOME_TYPES):
        raise TypeError(f"Unknown outcome type: {type(outcome).__name__}")
    data = asdict(outcome)
    if "step" in data:
        data["step"] = data["step"].value
    return {"type": outcome.kind, **data}
