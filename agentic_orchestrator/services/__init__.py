"""Service layer errors shared by the orchestrator."""

from .exceptions import (
    OrchestratorError,
    StateNotFoundError,
    StateValidationError,
    RuleLookupError,
    ReviewGateError,
    ConfigError,
    CompletionInProgressError,
    NotificationError,
)

__all__ = [
    "OrchestratorError",
    "StateNotFoundError",
    "StateValidationError",
    "RuleLookupError",
    "ReviewGateError",
    "ConfigError",
    "CompletionInProgressError",
    "NotificationError",
]
