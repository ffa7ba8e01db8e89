"""Tests for the start-story and start-custom commands."""
import json

from agentic_orchestrator.cli.main import cli


class TestStartCommands:
    """Test starting units of work."""

    def test_start_story(self, cli_runner, project_root):
        """Test starting a story on a fresh project."""
        result = cli_runner.invoke(cli, ['start-story', str(project_root), 'US-007'])

        assert result.exit_code == 0
        assert "Started story US-007" in result.output
        assert "bdd" in result.output

    def test_start_story_json(self, cli_runner, project_root):
        """Test the JSON state output."""
        result = cli_runner.invoke(cli, ['start-story', str(project_root), 'US-007', '--json'])

        data = json.loads(result.output)
        assert data["unit_id"] == "US-007"
        assert data["step"] == "bdd"
        assert data["max_attempts"] == 3

    def test_start_story_empty_id(self, cli_runner, project_root):
        """Test that an empty id is refused."""
        result = cli_runner.invoke(cli, ['start-story', str(project_root), ' '])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_start_custom_with_label(self, cli_runner, project_root):
        """Test a labelled custom task."""
        result = cli_runner.invoke(
            cli, ['start-custom', str(project_root), 'Fix the README', '--label', 'readme', '--json']
        )

        data = json.loads(result.output)
        assert data["unit_id"] == "readme"
        assert data["kind"] == "custom"
        assert data["step"] == "custom"
        assert data["human_note"] == "Fix the README"
