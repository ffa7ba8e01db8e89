import pytest
from click.testing import CliRunner
from datetime import datetime, timezone

from agentic_orchestrator.core.state_store import StateStore


FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def cli_runner():
    """Provides a Click CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def project_root(tmp_path):
    """Creates an empty project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def store(project_root):
    """Provides a StateStore for the temporary project."""
    return StateStore(project_root)


@pytest.fixture
def now():
    """A fixed, timezone-aware 'current time'."""
    return FIXED_NOW


@pytest.fixture
def clock(now):
    """Clock callable returning the fixed time."""
    return lambda: now


@pytest.fixture
def write_report(project_root):
    """Writes .ai/HANDOFF.md for the temporary project."""
    def _write(text):
        path = project_root / ".ai" / "HANDOFF.md"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path
    return _write


@pytest.fixture
def make_core_files(project_root):
    """Creates the framework's core documents (everything but the state)."""
    def _make():
        for relative in ("PROJECT_MEMORY.md", "PROJECT_CONTEXT.md",
                         "docs/constitution.md", "docs/sdd.md"):
            path = project_root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"# {relative}\n")
    return _make
