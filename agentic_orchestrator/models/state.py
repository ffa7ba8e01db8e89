"""Persisted task state models."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.constants import BOOTSTRAP_UNIT_ID


class Step(str, Enum):
    """Pipeline step enumeration."""
    BOOTSTRAP = "bootstrap"
    BDD = "bdd"
    SDD_DELTA = "sdd-delta"
    CONTRACT = "contract"
    REVIEW = "review"
    SCAFFOLD = "scaffold"
    IMPL = "impl"
    VERIFY = "verify"
    UPDATE_MEMORY = "update-memory"
    CUSTOM = "custom"
    DONE = "done"


class TaskStatus(str, Enum):
    """Task status enumeration."""
    PENDING = "pending"
    RUNNING = "running"
    PASS = "pass"
    FAILING = "failing"
    NEEDS_HUMAN = "needs_human"
    TIMEOUT = "timeout"


class Reason(str, Enum):
    """Reason codes explaining a failing or needs_human status."""
    CONSTITUTION_VIOLATION = "constitution_violation"
    NEEDS_CLARIFICATION = "needs_clarification"
    NFR_MISSING = "nfr_missing"
    SCOPE_WARNING = "scope_warning"
    TEST_TIMEOUT = "test_timeout"


class TaskKind(str, Enum):
    """Kind of unit flowing through the pipeline."""
    STORY = "story"
    CUSTOM = "custom"


# Statuses under which the attempt counter must stay within its ceiling
COUNTED_STATUSES = (TaskStatus.PENDING, TaskStatus.RUNNING, TaskStatus.FAILING)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ResultTally(BaseModel):
    """Pass/fail/skip counts reported by the executor."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    passed: int = Field(0, ge=0, alias="pass")
    failed: int = Field(0, ge=0, alias="fail")
    skipped: int = Field(0, ge=0, alias="skip")


class TaskState(BaseModel):
    """Where the current unit of work sits in the pipeline.

    One document per project. Every field is written back on each
    mutation; there are no partial updates.
    """

    model_config = ConfigDict(extra="forbid")

    unit_id: Optional[str] = None
    kind: TaskKind = TaskKind.STORY
    step: Step = Step.BOOTSTRAP
    attempt: int = Field(1, ge=1)
    max_attempts: int = Field(1, ge=1)
    status: TaskStatus = TaskStatus.PENDING
    reason: Optional[Reason] = None
    dispatched_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    timeout_minutes: int = Field(0, ge=0)
    tests: Optional[ResultTally] = None
    failing_tests: List[str] = Field(default_factory=list)
    lint_pass: Optional[bool] = None
    files_changed: List[str] = Field(default_factory=list)
    blocked_by: List[str] = Field(default_factory=list)
    human_note: Optional[str] = None

    @field_validator("dispatched_at", "completed_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_attempt_ceiling(self) -> "TaskState":
        if self.status in COUNTED_STATUSES and self.attempt > self.max_attempts:
            raise ValueError(
                f"attempt {self.attempt} exceeds max_attempts {self.max_attempts} "
                f"while status is {self.status.value}"
            )
        return self

    @classmethod
    def initial(cls, max_attempts: int, timeout_minutes: int) -> "TaskState":
        """Create a fresh state positioned at the bootstrap step."""
        return cls(
            step=Step.BOOTSTRAP,
            attempt=1,
            max_attempts=max_attempts,
            timeout_minutes=timeout_minutes,
        )

    @property
    def display_unit(self) -> str:
        return self.unit_id or "(no story)"

    @property
    def run_id(self) -> str:
        """Identify the current run by unit, step, attempt and dispatch time."""
        unit = re.sub(r"[^A-Za-z0-9._-]", "_", self.unit_id or BOOTSTRAP_UNIT_ID)
        if self.dispatched_at is not None:
            stamp = self.dispatched_at.strftime("%Y%m%dT%H%M%S%fZ")
        else:
            stamp = "undispatched"
        return f"{unit}-{self.step.value}-{self.attempt}-{stamp}"

    def elapsed_minutes(self, now: Optional[datetime] = None) -> int:
        """Whole minutes since dispatch, rounded; 0 if never dispatched."""
        if self.dispatched_at is None:
            return 0
        now = now or utc_now()
        return round((now - self.dispatched_at).total_seconds() / 60)

    def is_timed_out(self, now: Optional[datetime] = None) -> bool:
        """Whether a running dispatch has outlived its timeout budget."""
        if self.status != TaskStatus.RUNNING or self.dispatched_at is None:
            return False
        now = now or utc_now()
        elapsed = (now - self.dispatched_at).total_seconds() / 60
        return elapsed > self.timeout_minutes

    def is_maxed_out(self) -> bool:
        return self.attempt >= self.max_attempts

    def reset_run_fields(self) -> None:
        """Clear per-run results in place."""
        self.reason = None
        self.tests = None
        self.failing_tests = []
        self.lint_pass = None
        self.files_changed = []
        self.human_note = None

    def mark_running(self, now: Optional[datetime] = None) -> None:
        """Enter the running status with a fresh dispatch timestamp."""
        self.status = TaskStatus.RUNNING
        self.dispatched_at = now or utc_now()
        self.completed_at = None
        self.reason = None
