"""Read-only inspection of projects: adoption level, status and discovery."""

import json
import logging
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..services.exceptions import StateValidationError
from .constants import (
    CONSTITUTION_FILE,
    CONTEXT_FILE,
    CORE_FRAMEWORK_FILES,
    HANDOFF_FILE,
    HISTORY_FILE,
    MEMORY_FILE,
    MEMORY_SUMMARY_CHARS,
    PROJECT_MARKERS,
    SDD_FILE,
    STATE_FILE,
)
from .state_store import StateStore

logger = logging.getLogger(__name__)

NEXT_SECTION_PATTERN = re.compile(r"## NEXT.*?(?=## |\Z)", re.DOTALL)


@dataclass
class AdoptionReport:
    """Which framework files a project has, and the resulting tier."""
    has_state: bool
    has_memory: bool
    has_context: bool
    has_constitution: bool
    has_sdd: bool
    has_handoff: bool
    has_history: bool
    level: int  # 0 none, 1 partial, 2 all core files

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class ProjectEntry:
    """A project found while scanning a workspace."""
    name: str
    dir: str
    step: str
    status: str
    unit_id: Optional[str]
    has_framework: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def detect_adoption(project_root: Path) -> AdoptionReport:
    """Check which framework files exist in a project.

    Level 2 means all five core files exist, 1 means some do, 0 none.
    """
    root = Path(project_root)

    def check(relative: str) -> bool:
        return (root / relative).exists()

    core_count = sum(1 for relative in CORE_FRAMEWORK_FILES if check(relative))
    if core_count == len(CORE_FRAMEWORK_FILES):
        level = 2
    elif core_count > 0:
        level = 1
    else:
        level = 0

    return AdoptionReport(
        has_state=check(STATE_FILE),
        has_memory=check(MEMORY_FILE),
        has_context=check(CONTEXT_FILE),
        has_constitution=check(CONSTITUTION_FILE),
        has_sdd=check(SDD_FILE),
        has_handoff=check(HANDOFF_FILE),
        has_history=check(HISTORY_FILE),
        level=level,
    )


def infer_project_name(project_root: Path) -> str:
    """Best-effort project name from package.json or go.mod, else the directory name."""
    root = Path(project_root)
    name = root.resolve().name or "project"

    package_json = root / "package.json"
    if package_json.exists():
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
            if isinstance(data, dict) and data.get("name"):
                name = str(data["name"])
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.debug(f"Could not read {package_json}: {e}")

    go_mod = root / "go.mod"
    if go_mod.exists():
        try:
            for line in go_mod.read_text(encoding="utf-8").splitlines():
                if line.startswith("module "):
                    name = line[len("module "):].strip().split("/")[-1] or name
                    break
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read {go_mod}: {e}")

    return name


def read_memory_summary(project_root: Path) -> Optional[str]:
    """Excerpt of the memory file's NEXT section, if there is one."""
    memory_path = Path(project_root) / MEMORY_FILE
    if not memory_path.exists():
        return None
    text = memory_path.read_text(encoding="utf-8", errors="replace")
    match = NEXT_SECTION_PATTERN.search(text)
    if not match:
        return None
    return match.group(0).strip()[:MEMORY_SUMMARY_CHARS]


def query_status(project_root: Path) -> Dict[str, Any]:
    """Summarize a project's pipeline position without modifying anything.

    Raises:
        StateValidationError: If the state document exists but is corrupt.
    """
    root = Path(project_root)
    adoption = detect_adoption(root)
    summary = {
        "project": infer_project_name(root),
        "memory_summary": read_memory_summary(root),
        "framework": adoption.to_dict(),
    }

    store = StateStore(root)
    if not store.exists():
        summary.update({
            "kind": None,
            "unit_id": None,
            "step": "none",
            "status": "not_initialized",
            "attempt": 0,
            "max_attempts": 0,
            "reason": None,
            "tests": None,
            "failing_tests": [],
            "lint_pass": None,
            "files_changed": [],
            "blocked_by": [],
            "human_note": None,
            "dispatched_at": None,
            "completed_at": None,
        })
        return summary

    state = store.read().model_dump(mode="json", by_alias=True)
    state.pop("timeout_minutes")
    summary.update(state)
    return summary


def list_projects(workspace_root: Path) -> List[ProjectEntry]:
    """Find project directories directly under a workspace root.

    Hidden directories are skipped; so are projects whose state cannot be read.
    """
    workspace = Path(workspace_root)
    if not workspace.is_dir():
        logger.warning(f"Workspace {workspace} is not a directory")
        return []

    projects = []
    for entry in sorted(workspace.iterdir()):
        if entry.name.startswith(".") or not entry.is_dir():
            continue
        if not any((entry / marker).exists() for marker in PROJECT_MARKERS):
            continue

        name = infer_project_name(entry)
        store = StateStore(entry)
        if not store.exists():
            projects.append(ProjectEntry(
                name=name,
                dir=entry.name,
                step="none",
                status="not_initialized",
                unit_id=None,
                has_framework=False,
            ))
            continue

        try:
            state = store.read()
        except (OSError, StateValidationError) as e:
            logger.warning(f"Skipping {entry.name}: {e}")
            continue
        projects.append(ProjectEntry(
            name=name,
            dir=entry.name,
            step=state.step.value,
            status=state.status.value,
            unit_id=state.unit_id,
            has_framework=True,
        ))

    return projects
