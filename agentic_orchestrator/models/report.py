"""Completion report model."""
from dataclasses import dataclass, field
from typing import List, Optional

from .state import Reason, TaskStatus


@dataclass
class CompletionReport:
    """Fields parsed from the executor's completion report.

    Transient: folded into the task state by apply-report and discarded.
    """
    unit_id: Optional[str] = None
    step: Optional[str] = None
    attempt: Optional[int] = None
    status: Optional[TaskStatus] = None
    reason: Optional[Reason] = None
    files_changed: List[str] = field(default_factory=list)
    failing_tests: List[str] = field(default_factory=list)
    tests_pass: Optional[int] = None
    tests_fail: Optional[int] = None
    tests_skip: Optional[int] = None
    body: str = ""
    structured: bool = False  # True when parsed from a front matter block

    @property
    def has_test_counts(self) -> bool:
        return any(
            count is not None
            for count in (self.tests_pass, self.tests_fail, self.tests_skip)
        )

    def effective_status(self) -> TaskStatus:
        """Explicit status if reported, otherwise inferred from failing tests."""
        if self.status is not None:
            return self.status
        if self.tests_fail:
            return TaskStatus.FAILING
        return TaskStatus.PASS
