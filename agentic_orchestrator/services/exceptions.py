"""Custom exceptions for the orchestrator."""


class OrchestratorError(Exception):
    """Base exception for all orchestrator errors."""

    pass


class StateNotFoundError(OrchestratorError):
    """Exception raised when a project has no persisted state."""

    pass


class StateValidationError(OrchestratorError):
    """Exception raised when persisted state is corrupt or out of range."""

    pass


class RuleLookupError(OrchestratorError):
    """Exception raised when a step has no rule (e.g. the terminal step)."""

    pass


class ReviewGateError(OrchestratorError):
    """Exception raised when approve/reject is used outside the review step."""

    pass


class ConfigError(OrchestratorError):
    """Exception raised for invalid orchestrator config or rule overlays."""

    pass


class CompletionInProgressError(OrchestratorError):
    """Exception raised when another process is applying the same run."""

    pass


class NotificationError(OrchestratorError):
    """Exception raised when the post-completion notify command fails."""

    pass
