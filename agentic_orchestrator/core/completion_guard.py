"""At-most-once application of completion signals.

The environment running the executor may report "finished" more than once
for a single run. Three guards keep the report from being applied twice:

1. A run-scoped marker in ``.ai/runs``. ``<run-id>.lock`` is held with an
   exclusive ``flock`` while the completion is applied; ``<run-id>.done``
   is written only after the notify command succeeds, so a failed
   notification leaves the run eligible for a retry.
2. A cooldown window after the last committed completion, which drops
   near-simultaneous signals regardless of run id.
3. A stale-signal check. A signal that names its run (``run_id``, printed
   by ``dispatch``) is dropped when that run is no longer the current one.
   A signal without a run id is dropped when the report file is the very
   one applied last, i.e. nothing has written a report since.

All of them rely on local files and only hold on a single host.
"""

import fcntl
import hashlib
import json
import logging
import os
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, Optional

from ..models.config import OrchestratorConfig
from ..models.state import TaskState, utc_now
from ..services.exceptions import CompletionInProgressError, NotificationError
from .constants import HANDOFF_FILE, NOTIFY_TIMEOUT, RUNS_DIR
from .dispatch_engine import DispatchEngine
from .rules_table import RuleRegistry
from .state_store import atomic_write_text
from .verification import VerificationResult, run_verification

logger = logging.getLogger(__name__)

LAST_COMPLETION_FILE = "last-completion"
LAST_REPORT_FILE = "last-report"


@dataclass
class CompletionResult:
    """What happened to one completion signal."""
    run_id: str
    applied: bool
    skipped_reason: Optional[str] = None
    state: Optional[TaskState] = None
    verification: Optional[VerificationResult] = None
    notified: bool = False


class CompletionGuard:
    """Applies a completion report at most once per run."""

    def __init__(
        self,
        project_root: Path,
        config: Optional[OrchestratorConfig] = None,
        registry: Optional[RuleRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize completion guard.

        Args:
            project_root: Root directory of the project
            config: Orchestrator settings (cooldown, notify command, timeouts)
            registry: Rule lookup passed to the engine and verification
            clock: Returns the current time; injectable for tests
        """
        self.project_root = Path(project_root)
        self.runs_dir = self.project_root / RUNS_DIR
        self.config = config or OrchestratorConfig()
        self.engine = DispatchEngine(self.project_root, registry, clock)
        self.clock = clock

    @contextmanager
    def _run_lock(self, run_id: str) -> Iterator[None]:
        self.runs_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.runs_dir / f"{run_id}.lock"
        with lock_path.open("a+", encoding="utf-8") as lock_handle:
            try:
                fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                raise CompletionInProgressError(
                    f"Completion for run {run_id} is already being applied"
                )
            try:
                yield
            finally:
                fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)

    def _done_path(self, run_id: str) -> Path:
        return self.runs_dir / f"{run_id}.done"

    def _within_cooldown(self, now: datetime) -> bool:
        if self.config.cooldown_seconds <= 0:
            return False
        marker = self.runs_dir / LAST_COMPLETION_FILE
        if not marker.exists():
            return False
        try:
            last = datetime.fromisoformat(marker.read_text(encoding="utf-8").strip())
        except ValueError:
            logger.warning(f"Ignoring unreadable cooldown marker {marker}")
            return False
        return 0 <= (now - last).total_seconds() < self.config.cooldown_seconds

    def _report_fingerprint(self) -> Optional[str]:
        """Content hash plus modification time of the report file, if any."""
        report_path = self.project_root / HANDOFF_FILE
        if not report_path.exists():
            return None
        digest = hashlib.sha256(report_path.read_bytes()).hexdigest()
        return f"{digest}:{report_path.stat().st_mtime_ns}"

    def _report_already_applied(self, fingerprint: Optional[str]) -> bool:
        marker = self.runs_dir / LAST_REPORT_FILE
        if fingerprint is None or not marker.exists():
            return False
        return marker.read_text(encoding="utf-8").strip() == fingerprint

    def _notify(self, run_id: str, state: TaskState) -> None:
        command = self.config.notify_command
        env = dict(os.environ)
        env.update({
            "ORCHESTRATOR_RUN_ID": run_id,
            "ORCHESTRATOR_UNIT_ID": state.unit_id or "",
            "ORCHESTRATOR_STEP": state.step.value,
            "ORCHESTRATOR_STATUS": state.status.value,
        })
        logger.info(f"Running notify command for {run_id}")
        try:
            completed = subprocess.run(
                command,
                shell=True,
                cwd=str(self.project_root),
                env=env,
                capture_output=True,
                text=True,
                timeout=NOTIFY_TIMEOUT,
            )
        except subprocess.TimeoutExpired as e:
            raise NotificationError(f"Notify command timed out after {NOTIFY_TIMEOUT}s") from e
        if completed.returncode != 0:
            raise NotificationError(
                f"Notify command exited with {completed.returncode}: {completed.stderr.strip()}"
            )

    def _commit(
        self, run_id: str, state: TaskState, now: datetime, fingerprint: Optional[str]
    ) -> None:
        atomic_write_text(
            self._done_path(run_id),
            json.dumps({
                "run_id": run_id,
                "status": state.status.value,
                "committed_at": now.isoformat(),
            }, indent=2),
        )
        atomic_write_text(self.runs_dir / LAST_COMPLETION_FILE, now.isoformat())
        if fingerprint is not None:
            atomic_write_text(self.runs_dir / LAST_REPORT_FILE, fingerprint)
        (self.runs_dir / f"{run_id}.lock").unlink(missing_ok=True)

    def complete(self, notify: bool = True, run_id: Optional[str] = None) -> CompletionResult:
        """Apply the current run's completion report unless already applied.

        Args:
            notify: Run the configured notify command before committing
            run_id: Run the signal belongs to, as printed by ``dispatch``;
                a signal for any run but the current one is dropped

        Returns:
            CompletionResult; ``applied`` is False when the signal was a duplicate

        Raises:
            CompletionInProgressError: Another process holds this run's lock.
            NotificationError: The notify command failed; the run stays uncommitted.
        """
        state = self.engine.store.read()
        current = state.run_id
        now = self.clock()

        if run_id is not None and run_id != current:
            logger.info(f"Signal for run {run_id} arrived while {current} is current, ignoring")
            return CompletionResult(run_id, applied=False, skipped_reason="stale_run")
        if self._done_path(current).exists():
            logger.info(f"Run {current} already completed, ignoring duplicate signal")
            return CompletionResult(current, applied=False, skipped_reason="already_applied")
        if self._within_cooldown(now):
            logger.info(f"Completion for {current} arrived within cooldown, ignoring")
            return CompletionResult(current, applied=False, skipped_reason="cooldown")

        fingerprint = self._report_fingerprint()
        if run_id is None and self._report_already_applied(fingerprint):
            logger.info(f"Report for {current} was already applied to an earlier run, ignoring")
            return CompletionResult(current, applied=False, skipped_reason="stale_run")

        with self._run_lock(current):
            # Another process may have committed between the check and the lock
            if self._done_path(current).exists():
                return CompletionResult(current, applied=False, skipped_reason="already_applied")

            applied = self.engine.apply_report()
            verification = run_verification(
                self.project_root,
                self.engine.registry,
                timeout=self.config.verification_timeout_seconds,
            )
            if verification.command is not None:
                applied = self.engine.store.read()

            notified = False
            if notify and self.config.notify_command:
                self._notify(current, applied)
                notified = True

            self._commit(current, applied, now, fingerprint)

        logger.info(f"Completed run {current}: status={applied.status.value}")
        return CompletionResult(
            current,
            applied=True,
            state=applied,
            verification=verification,
            notified=notified,
        )
