"""Tests for the review command group."""
import pytest
from unittest.mock import MagicMock, patch

from agentic_orchestrator.cli.main import cli
from agentic_orchestrator.models.state import Reason, Step, TaskStatus


@pytest.fixture
def at_review(store):
    """Project paused at the review checkpoint."""
    state, _ = store.init()
    return store.write(state.model_copy(update={
        "unit_id": "US-001", "step": Step.REVIEW, "status": TaskStatus.NEEDS_HUMAN,
    }))


def _answers(*values):
    """Mock questionary prompts returning the given answers in order."""
    return [MagicMock(ask=MagicMock(return_value=value)) for value in values]


class TestReviewCommands:
    """Test approve, reject and prompt."""

    def test_approve(self, cli_runner, project_root, store, at_review):
        """Test approving with a note."""
        result = cli_runner.invoke(cli, ['review', 'approve', str(project_root), 'ship it'])

        assert result.exit_code == 0
        assert "Approved review for US-001" in result.output
        state = store.read()
        assert state.status == TaskStatus.PASS
        assert state.human_note == "ship it"

    def test_reject(self, cli_runner, project_root, store, at_review):
        """Test rejecting with a reason."""
        result = cli_runner.invoke(
            cli, ['review', 'reject', str(project_root), 'scope_warning', 'drop export']
        )

        assert result.exit_code == 0
        assert "scope_warning" in result.output
        assert store.read().reason == Reason.SCOPE_WARNING

    def test_reject_unknown_reason(self, cli_runner, project_root, at_review):
        """Test that reasons are restricted to the enumeration."""
        result = cli_runner.invoke(cli, ['review', 'reject', str(project_root), 'flaky'])
        assert result.exit_code == 2

    def test_approve_outside_review(self, cli_runner, project_root, store):
        """Test the error when no review is pending."""
        store.init()

        result = cli_runner.invoke(cli, ['review', 'approve', str(project_root)])

        assert result.exit_code == 1
        assert "not a review checkpoint" in result.output

    def test_prompt_approve(self, cli_runner, project_root, store, at_review):
        """Test interactive approval."""
        with patch('questionary.select', side_effect=_answers("Approve")), \
                patch('questionary.text', side_effect=_answers("")):
            result = cli_runner.invoke(cli, ['review', 'prompt', str(project_root)])

        assert result.exit_code == 0
        assert "ready for review" in result.output
        state = store.read()
        assert state.status == TaskStatus.PASS
        assert state.human_note is None

    def test_prompt_reject(self, cli_runner, project_root, store, at_review):
        """Test interactive rejection."""
        with patch('questionary.select', side_effect=_answers("Reject", "constitution_violation")), \
                patch('questionary.text', side_effect=_answers("uses globals")):
            result = cli_runner.invoke(cli, ['review', 'prompt', str(project_root)])

        assert result.exit_code == 0
        state = store.read()
        assert state.reason == Reason.CONSTITUTION_VIOLATION
        assert state.human_note == "uses globals"

    def test_prompt_cancelled(self, cli_runner, project_root, store, at_review):
        """Test that cancelling leaves the state alone."""
        with patch('questionary.select', side_effect=_answers(None)):
            result = cli_runner.invoke(cli, ['review', 'prompt', str(project_root)])

        assert "Review cancelled" in result.output
        assert store.read().status == TaskStatus.NEEDS_HUMAN
