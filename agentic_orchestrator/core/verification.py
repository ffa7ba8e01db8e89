"""Run a step's declared verification command."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .constants import VERIFICATION_TIMEOUT
from .rules_table import DEFAULT_REGISTRY, RuleRegistry
from .state_store import StateStore

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    """Outcome of a verification run."""
    passed: bool
    command: Optional[str] = None  # None when the step declares no command
    returncode: Optional[int] = None
    output: str = ""


def run_verification(
    project_root: Path,
    registry: Optional[RuleRegistry] = None,
    timeout: int = VERIFICATION_TIMEOUT,
) -> VerificationResult:
    """Run the current step's verification command and record ``lint_pass``.

    The result is recorded as a flag only; step and status are left alone.
    A step without a command passes trivially and nothing is written.

    Args:
        project_root: Root directory of the project (also the working directory)
        registry: Rule lookup used to find the command
        timeout: Seconds before the command is killed and counted as failed

    Returns:
        VerificationResult describing the run
    """
    store = StateStore(Path(project_root))
    state = store.read()
    rule = (registry or DEFAULT_REGISTRY).rule_for(state.step)
    command = rule.verification_command
    if not command:
        logger.debug(f"No verification command for step {state.step.value}")
        return VerificationResult(passed=True)

    logger.info(f"Running verification for {state.step.value}: {command}")
    try:
        completed = subprocess.run(
            command,
            shell=True,
            cwd=str(store.project_root),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        result = VerificationResult(
            passed=completed.returncode == 0,
            command=command,
            returncode=completed.returncode,
            output=(completed.stdout or "") + (completed.stderr or ""),
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"Verification command timed out after {timeout}s")
        result = VerificationResult(passed=False, command=command, output=f"Timed out after {timeout}s")

    if not result.passed:
        logger.warning(f"Verification failed for {state.step.value} (exit {result.returncode})")

    state.lint_pass = result.passed
    store.write(state)
    return result
