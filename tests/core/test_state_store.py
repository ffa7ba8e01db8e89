"""Tests for StateStore."""
import json
import pytest

from agentic_orchestrator.core.rules_table import RuleRegistry
from agentic_orchestrator.core.state_store import StateStore, atomic_write_text
from agentic_orchestrator.models.state import ResultTally, Step, TaskState, TaskStatus
from agentic_orchestrator.services.exceptions import StateNotFoundError, StateValidationError


class TestStateStore:
    """Test cases for StateStore."""

    def test_read_missing_state(self, store):
        """Test that reading before init names the init command."""
        with pytest.raises(StateNotFoundError) as exc_info:
            store.read()
        assert "orchestrator init" in str(exc_info.value)

    def test_init_creates_bootstrap_state(self, store, project_root):
        """Test that init writes a bootstrap document."""
        state, created = store.init()

        assert created is True
        assert state.step == Step.BOOTSTRAP
        assert state.max_attempts == 1
        assert state.timeout_minutes == 10
        assert (project_root / ".ai" / "STATE.json").exists()

    def test_init_uses_registry_limits(self, store):
        """Test that init respects an overlay for bootstrap."""
        state, _ = store.init(RuleRegistry({"bootstrap": {"timeout_minutes": 30}}))
        assert state.timeout_minutes == 30

    def test_init_keeps_existing_state(self, store):
        """Test that a second init leaves the state untouched."""
        state, _ = store.init()
        state.unit_id = "US-001"
        store.write(state)

        again, created = store.init()

        assert created is False
        assert again.unit_id == "US-001"

    def test_write_then_read(self, store):
        """Test that a written state reads back equal."""
        state = TaskState(
            unit_id="US-001",
            step=Step.IMPL,
            max_attempts=5,
            status=TaskStatus.PASS,
            tests=ResultTally(passed=42, failed=2, skipped=0),
        )
        store.write(state)

        assert store.read() == state

    def test_document_layout(self, store):
        """Test the on-disk field names."""
        store.write(TaskState(unit_id="US-001", tests=ResultTally(passed=1, failed=0, skipped=0)))

        data = json.loads(store.state_file.read_text())

        assert data["unit_id"] == "US-001"
        assert data["step"] == "bootstrap"
        assert data["status"] == "pending"
        assert data["tests"] == {"pass": 1, "fail": 0, "skip": 0}
        assert data["dispatched_at"] is None

    def test_corrupt_json(self, store):
        """Test that unparseable state raises a validation error."""
        store.state_file.parent.mkdir(parents=True)
        store.state_file.write_text("{not json")

        with pytest.raises(StateValidationError):
            store.read()

    def test_undecodable_bytes(self, store):
        """Test that a state file that is not UTF-8 raises a validation error."""
        store.state_file.parent.mkdir(parents=True)
        store.state_file.write_bytes(b"\xff\xfe{\"step\": \"bdd\"}")

        with pytest.raises(StateValidationError, match="Corrupt state file"):
            store.read()

    def test_out_of_enum_value(self, store):
        """Test that an unknown step in the file is rejected on read."""
        store.state_file.parent.mkdir(parents=True)
        store.state_file.write_text(json.dumps({"step": "deploy"}))

        with pytest.raises(StateValidationError):
            store.read()

    def test_invalid_state_is_not_written(self, store):
        """Test that a write that fails validation leaves the old file intact."""
        store.init()
        before = store.state_file.read_text()
        state = store.read()
        state.attempt = 5  # exceeds max_attempts=1 while pending

        with pytest.raises(StateValidationError):
            store.write(state)

        assert store.state_file.read_text() == before

    def test_ensure(self, store):
        """Test that ensure creates the state on first use."""
        assert store.exists() is False
        assert store.ensure().step == Step.BOOTSTRAP
        assert store.exists() is True


class TestAtomicWrite:
    """Test cases for atomic_write_text."""

    def test_writes_and_leaves_no_temp_files(self, tmp_path):
        """Test that the target is replaced and no temp file remains."""
        target = tmp_path / "nested" / "file.json"
        atomic_write_text(target, "one")
        atomic_write_text(target, "two")

        assert target.read_text() == "two"
        assert [p.name for p in target.parent.iterdir()] == ["file.json"]
