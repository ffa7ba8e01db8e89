"""Tests for the detect, list-projects, auto and rules commands."""
import json

from agentic_orchestrator.cli.main import cli


class TestDetectCommand:
    """Test the detect command."""

    def test_detect_json(self, cli_runner, project_root, make_core_files, store):
        """Test full adoption as JSON."""
        make_core_files()
        store.init()

        data = json.loads(cli_runner.invoke(cli, ['detect', str(project_root), '--json']).output)

        assert data["level"] == 2
        assert data["has_sdd"] is True

    def test_detect_table(self, cli_runner, project_root):
        """Test the table output."""
        result = cli_runner.invoke(cli, ['detect', str(project_root)])

        assert result.exit_code == 0
        assert "Adoption level: 0" in result.output


class TestListProjectsCommand:
    """Test the list-projects command."""

    def test_lists_projects(self, cli_runner, tmp_path):
        """Test a workspace with one initialized and one plain project."""
        (tmp_path / "web").mkdir()
        (tmp_path / "web" / "package.json").write_text('{"name": "storefront"}')
        cli_runner.invoke(cli, ['init', str(tmp_path / "web"), '--no-guide'])
        (tmp_path / "svc").mkdir()
        (tmp_path / "svc" / "go.mod").write_text("module example.com/svc\n")

        result = cli_runner.invoke(cli, ['list-projects', str(tmp_path), '--json'])

        data = json.loads(result.output)
        assert [entry["name"] for entry in data] == ["svc", "storefront"]
        assert data[1]["step"] == "bootstrap"

    def test_empty_workspace(self, cli_runner, tmp_path):
        """Test the message for an empty workspace."""
        result = cli_runner.invoke(cli, ['list-projects', str(tmp_path)])

        assert result.exit_code == 0
        assert "No projects found" in result.output


class TestAutoCommand:
    """Test the auto command."""

    def test_auto_query(self, cli_runner, project_root):
        """Test a status question."""
        result = cli_runner.invoke(cli, ['auto', str(project_root), 'status?'])

        assert result.exit_code == 0
        assert json.loads(result.output)["action"] == "query"

    def test_auto_error_envelope(self, cli_runner, project_root):
        """Test that errors are reported in the envelope."""
        result = cli_runner.invoke(cli, ['auto', str(project_root), 'continue'])

        assert result.exit_code == 0
        assert json.loads(result.output)["action"] == "error"


class TestRulesCommand:
    """Test the rules command."""

    def test_default_rules(self, cli_runner):
        """Test listing the built-in table."""
        result = cli_runner.invoke(cli, ['rules'])

        assert result.exit_code == 0
        assert "Review Checkpoint" in result.output
        assert "overridden" not in result.output

    def test_overridden_rules(self, cli_runner, project_root):
        """Test that overridden steps are marked."""
        (project_root / ".ai").mkdir()
        (project_root / ".ai" / "step-rules.yaml").write_text("impl:\n  max_attempts: 2\n")

        result = cli_runner.invoke(cli, ['rules', str(project_root)])

        assert "impl *" in result.output
        assert "overridden by .ai/step-rules.yaml" in result.output

    def test_rules_json(self, cli_runner, project_root):
        """Test the JSON listing."""
        (project_root / ".ai").mkdir()
        (project_root / ".ai" / "step-rules.yaml").write_text("impl:\n  max_attempts: 2\n")

        data = json.loads(cli_runner.invoke(cli, ['rules', str(project_root), '--json']).output)

        assert data["impl"]["max_attempts"] == 2
        assert data["review"]["requires_human"] is True
        assert data["impl"]["on_fail"]["scope_warning"] == "review"
