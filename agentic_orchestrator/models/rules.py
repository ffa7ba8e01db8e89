"""Step rule models."""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .state import Reason, Step


@dataclass(frozen=True)
class FailureRouting:
    """Where a failed step goes next, keyed by reason code."""

    default: Step
    routes: Mapping[Reason, Step] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the mapping so shared defaults cannot be mutated in place
        object.__setattr__(self, "routes", MappingProxyType(dict(self.routes)))

    def target_for(self, reason: Optional[Reason]) -> Step:
        """Return the routed step for a reason, falling back to the default."""
        if reason is not None and reason in self.routes:
            return self.routes[reason]
        return self.default


@dataclass(frozen=True)
class StepRule:
    """Static description of a pipeline step."""

    label: str
    next_on_pass: Step
    on_fail: FailureRouting
    max_attempts: int
    timeout_minutes: int
    requires_human: bool = False
    reads: Tuple[str, ...] = ()
    writes: Tuple[str, ...] = ()
    verification_command: Optional[str] = None
    instruction: str = ""

    def with_overrides(self, **changes) -> "StepRule":
        """Return a copy with the given fields replaced."""
        if "reads" in changes:
            changes["reads"] = tuple(changes["reads"])
        if "writes" in changes:
            changes["writes"] = tuple(changes["writes"])
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "label": self.label,
            "next_on_pass": self.next_on_pass.value,
            "on_fail": {
                "default": self.on_fail.default.value,
                **{reason.value: step.value for reason, step in self.on_fail.routes.items()},
            },
            "max_attempts": self.max_attempts,
            "timeout_minutes": self.timeout_minutes,
            "requires_human": self.requires_human,
            "reads": list(self.reads),
            "writes": list(self.writes),
            "verification_command": self.verification_command,
            "instruction": self.instruction,
        }
