"""Tests for the task state model."""
import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from agentic_orchestrator.models.state import (
    Reason,
    ResultTally,
    Step,
    TaskState,
    TaskStatus,
)


class TestTaskState:
    """Test cases for TaskState validation and helpers."""

    def test_initial_state(self):
        """Test that a fresh state sits at bootstrap with the given limits."""
        state = TaskState.initial(max_attempts=1, timeout_minutes=10)

        assert state.step == Step.BOOTSTRAP
        assert state.status == TaskStatus.PENDING
        assert state.attempt == 1
        assert state.max_attempts == 1
        assert state.timeout_minutes == 10
        assert state.unit_id is None
        assert state.files_changed == []

    def test_rejects_unknown_step(self):
        """Test that values outside the step enum are rejected."""
        with pytest.raises(ValidationError):
            TaskState.model_validate({"step": "deploy"})

    def test_rejects_unknown_reason(self):
        """Test that values outside the reason enum are rejected."""
        with pytest.raises(ValidationError):
            TaskState.model_validate({"status": "failing", "reason": "flaky"})

    def test_rejects_extra_fields(self):
        """Test that unknown fields are not silently accepted."""
        with pytest.raises(ValidationError):
            TaskState.model_validate({"project": "demo"})

    def test_attempt_must_not_exceed_ceiling_while_active(self):
        """Test the attempt ceiling for pending/running/failing states."""
        for status in ("pending", "running", "failing"):
            with pytest.raises(ValidationError):
                TaskState.model_validate({"attempt": 3, "max_attempts": 2, "status": status})

    def test_attempt_ceiling_not_checked_when_waiting_for_human(self):
        """Test that a needs_human state may carry any attempt count."""
        state = TaskState.model_validate({"attempt": 3, "max_attempts": 2, "status": "needs_human"})
        assert state.attempt == 3

    def test_attempt_is_one_indexed(self):
        """Test that attempt 0 is rejected."""
        with pytest.raises(ValidationError):
            TaskState.model_validate({"attempt": 0})

    def test_naive_timestamps_are_treated_as_utc(self):
        """Test that timestamps without an offset are read as UTC."""
        state = TaskState.model_validate({"status": "pass", "completed_at": "2026-01-15T12:00:00"})
        assert state.completed_at.tzinfo is not None
        assert state.completed_at == datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def test_is_timed_out_is_strictly_greater_than_budget(self, now):
        """Test the timeout boundary: exactly the budget is not a timeout."""
        state = TaskState(
            status=TaskStatus.RUNNING,
            timeout_minutes=5,
            dispatched_at=now - timedelta(minutes=5),
        )
        assert state.is_timed_out(now) is False
        assert state.is_timed_out(now + timedelta(seconds=1)) is True

    def test_is_timed_out_only_while_running(self, now):
        """Test that only running states can time out."""
        state = TaskState(
            status=TaskStatus.FAILING,
            timeout_minutes=5,
            dispatched_at=now - timedelta(hours=1),
        )
        assert state.is_timed_out(now) is False

    def test_elapsed_minutes(self, now):
        """Test elapsed minutes rounding and the undispatched case."""
        state = TaskState(dispatched_at=now - timedelta(minutes=7, seconds=40))
        assert state.elapsed_minutes(now) == 8
        assert TaskState().elapsed_minutes(now) == 0

    def test_mark_running(self, now):
        """Test entering running sets the timestamp and clears completion/reason."""
        state = TaskState(
            status=TaskStatus.FAILING,
            reason=Reason.SCOPE_WARNING,
            completed_at=now - timedelta(minutes=1),
        )
        state.mark_running(now)

        assert state.status == TaskStatus.RUNNING
        assert state.dispatched_at == now
        assert state.completed_at is None
        assert state.reason is None

    def test_reset_run_fields(self):
        """Test clearing per-run results."""
        state = TaskState(
            status=TaskStatus.PASS,
            reason=Reason.NFR_MISSING,
            tests=ResultTally(passed=1, failed=0, skipped=0),
            failing_tests=["TestA"],
            lint_pass=True,
            files_changed=["a.go"],
            human_note="note",
        )
        state.reset_run_fields()

        assert state.reason is None
        assert state.tests is None
        assert state.failing_tests == []
        assert state.lint_pass is None
        assert state.files_changed == []
        assert state.human_note is None


class TestResultTally:
    """Test cases for the test tally model."""

    def test_serializes_with_short_keys(self):
        """Test that the tally is stored as pass/fail/skip."""
        tally = ResultTally(passed=42, failed=2, skipped=0)
        assert tally.model_dump(by_alias=True) == {"pass": 42, "fail": 2, "skip": 0}

    def test_reads_short_keys(self):
        """Test that pass/fail/skip keys are accepted on input."""
        tally = ResultTally.model_validate({"pass": 3, "fail": 1, "skip": 2})
        assert (tally.passed, tally.failed, tally.skipped) == (3, 1, 2)

    def test_rejects_negative_counts(self):
        """Test that negative counts are invalid."""
        with pytest.raises(ValidationError):
            ResultTally.model_validate({"pass": -1})
