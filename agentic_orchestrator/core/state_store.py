"""Persistent storage of the per-project task state."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Tuple

from pydantic import ValidationError

from ..models.state import Step, TaskState
from ..services.exceptions import StateNotFoundError, StateValidationError
from .constants import STATE_FILE
from .rules_table import DEFAULT_REGISTRY, RuleRegistry

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via a temp file and ``os.replace``.

    Readers see either the old document or the new one, never a partial write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class StateStore:
    """Reads, validates and writes ``.ai/STATE.json`` for one project."""

    def __init__(self, project_root: Path):
        """Initialize state store.

        Args:
            project_root: Root directory of the project
        """
        self.project_root = Path(project_root)
        self.state_file = self.project_root / STATE_FILE

    def exists(self) -> bool:
        return self.state_file.exists()

    def read(self) -> TaskState:
        """Load and validate the persisted state.

        Raises:
            StateNotFoundError: If the project has not been initialized.
            StateValidationError: If the document is not valid JSON or breaks
                an enum or range constraint.
        """
        if not self.state_file.exists():
            raise StateNotFoundError(
                f"No state found at {self.state_file}. "
                "Run 'orchestrator init' to initialize the project."
            )
        try:
            data = json.loads(self.state_file.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StateValidationError(f"Corrupt state file {self.state_file}: {e}") from e
        return self._validate(data)

    def write(self, state: TaskState) -> TaskState:
        """Validate and atomically replace the persisted state.

        Validation runs on the whole document before anything touches disk,
        so an invalid state leaves the previous file intact.

        Returns:
            The validated state that was written.
        """
        validated = self._validate(state.model_dump(mode="json", by_alias=True))
        atomic_write_text(
            self.state_file,
            validated.model_dump_json(indent=2, by_alias=True) + "\n",
        )
        logger.debug(
            f"Wrote state for {validated.display_unit}: "
            f"step={validated.step.value} status={validated.status.value} "
            f"attempt={validated.attempt}/{validated.max_attempts}"
        )
        return validated

    def init(self, registry: Optional[RuleRegistry] = None) -> Tuple[TaskState, bool]:
        """Create the initial bootstrap state if none exists.

        Returns:
            Tuple of (state, created). An existing state is returned untouched.
        """
        if self.exists():
            return self.read(), False
        rule = (registry or DEFAULT_REGISTRY).rule_for(Step.BOOTSTRAP)
        state = TaskState.initial(rule.max_attempts, rule.timeout_minutes)
        logger.info(f"Initializing state at {self.state_file}")
        return self.write(state), True

    def ensure(self, registry: Optional[RuleRegistry] = None) -> TaskState:
        """Return the current state, creating it on first use."""
        state, _ = self.init(registry)
        return state

    def _validate(self, data: dict) -> TaskState:
        try:
            return TaskState.model_validate(data)
        except ValidationError as e:
            raise StateValidationError(f"Invalid state in {self.state_file}: {e}") from e
