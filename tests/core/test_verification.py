"""Tests for verification command runs."""
import subprocess
import pytest
from unittest.mock import Mock, patch

from agentic_orchestrator.core.rules_table import RuleRegistry
from agentic_orchestrator.core.verification import run_verification
from agentic_orchestrator.models.state import Step, TaskStatus


@pytest.fixture
def at_impl(store):
    """Project whose current step is impl."""
    state, _ = store.init()
    return store.write(state.model_copy(update={
        "unit_id": "US-001", "step": Step.IMPL, "max_attempts": 5,
        "status": TaskStatus.PASS,
    }))


def _registry(command):
    return RuleRegistry({"impl": {"verification_command": command}})


class TestRunVerification:
    """Test cases for run_verification."""

    def test_no_command(self, project_root, store, at_impl):
        """Test that a step without a command passes and writes nothing."""
        before = store.state_file.read_bytes()

        result = run_verification(project_root)

        assert result.passed is True
        assert result.command is None
        assert store.state_file.read_bytes() == before

    def test_passing_command(self, project_root, store, at_impl):
        """Test that exit 0 records lint_pass true."""
        result = run_verification(project_root, _registry("echo ok"))

        assert result.passed is True
        assert result.returncode == 0
        assert "ok" in result.output
        assert store.read().lint_pass is True

    def test_failing_command(self, project_root, store, at_impl):
        """Test that a nonzero exit records lint_pass false without moving the step."""
        result = run_verification(project_root, _registry("exit 3"))

        assert result.passed is False
        assert result.returncode == 3
        state = store.read()
        assert state.lint_pass is False
        assert state.step == Step.IMPL
        assert state.status == TaskStatus.PASS

    def test_runs_in_project_root(self, project_root, at_impl):
        """Test the working directory and shell invocation."""
        with patch('agentic_orchestrator.core.verification.subprocess.run') as mock_run:
            mock_run.return_value = Mock(returncode=0, stdout="", stderr="")

            run_verification(project_root, _registry("npm test"), timeout=5)

            args, kwargs = mock_run.call_args
            assert args[0] == "npm test"
            assert kwargs["cwd"] == str(project_root)
            assert kwargs["shell"] is True
            assert kwargs["timeout"] == 5

    def test_timeout_counts_as_failure(self, project_root, store, at_impl):
        """Test that a hung command fails verification."""
        with patch('agentic_orchestrator.core.verification.subprocess.run') as mock_run:
            mock_run.side_effect = subprocess.TimeoutExpired("npm test", 5)

            result = run_verification(project_root, _registry("npm test"), timeout=5)

        assert result.passed is False
        assert store.read().lint_pass is False
