"""Models for the orchestrator."""

from .state import Reason, ResultTally, Step, TaskKind, TaskState, TaskStatus
from .rules import FailureRouting, StepRule
from .report import CompletionReport
from .outcome import (
    AlreadyRunning,
    Blocked,
    Completed,
    Dispatched,
    NeedsHuman,
    Outcome,
    TimedOut,
)
from .intent import AutoAction, AutoResult, Intent, IntentType
from .config import OrchestratorConfig

__all__ = [
    'Reason',
    'ResultTally',
    'Step',
    'TaskKind',
    'TaskState',
    'TaskStatus',
    'FailureRouting',
    'StepRule',
    'CompletionReport',
    'AlreadyRunning',
    'Blocked',
    'Completed',
    'Dispatched',
    'NeedsHuman',
    'Outcome',
    'TimedOut',
    'AutoAction',
    'AutoResult',
    'Intent',
    'IntentType',
    'OrchestratorConfig',
]
