"""Per-project orchestrator configuration model."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.constants import DEFAULT_COOLDOWN_SECONDS, VERIFICATION_TIMEOUT


class OrchestratorConfig(BaseModel):
    """Settings read from .ai/orchestrator.json."""

    model_config = ConfigDict(extra="forbid")

    notify_command: Optional[str] = Field(
        None, description="Shell command run after a completion is applied"
    )
    cooldown_seconds: int = Field(
        DEFAULT_COOLDOWN_SECONDS, ge=0,
        description="Window in which duplicate completion signals are ignored",
    )
    verification_timeout_seconds: int = Field(
        VERIFICATION_TIMEOUT, gt=0,
        description="Timeout for a step's verification command",
    )
    write_executor_guide: bool = Field(
        True, description="Write CLAUDE.md on init when it does not exist"
    )
