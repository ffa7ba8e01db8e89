"""Tests for the main CLI entry point."""

from agentic_orchestrator.cli.main import cli


class TestMainCli:
    """Test the top-level command group."""

    def test_help_lists_commands(self, cli_runner):
        """Test that every command is registered."""
        result = cli_runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        for name in ('init', 'start-story', 'start-custom', 'dispatch', 'apply-report',
                     'verify', 'complete', 'unblock', 'review', 'status', 'query',
                     'detect', 'list-projects', 'auto', 'rules'):
            assert name in result.output

    def test_log_level_option(self, cli_runner, project_root):
        """Test that a valid log level is accepted."""
        result = cli_runner.invoke(cli, ['--log-level', 'debug', 'detect', str(project_root)])
        assert result.exit_code == 0

    def test_invalid_log_level(self, cli_runner):
        """Test that an unknown log level is a usage error."""
        result = cli_runner.invoke(cli, ['--log-level', 'LOUD', 'rules'])
        assert result.exit_code == 2

    def test_missing_project_root(self, cli_runner, tmp_path):
        """Test that a nonexistent project root is a usage error."""
        result = cli_runner.invoke(cli, ['status', str(tmp_path / 'missing')])
        assert result.exit_code == 2
